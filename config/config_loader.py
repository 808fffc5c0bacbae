"""
Configuration loading for Service Area Mapper.

This module handles loading and validation of the analysis configuration JSON file.

Constants:
    PROJECT_ROOT: Root directory of the project
    CONFIG_DIR: Configuration files directory
    OUTPUT_DIR: Output files directory
    DEFAULT_CONFIG_FILE: Bundled analysis configuration

Functions:
    load_config: Load and validate analysis configuration from JSON
    load_analysis_settings: Service area settings merged with defaults
    load_choropleth_settings: Thematic map settings merged with defaults
"""

import json
from pathlib import Path
from typing import Dict, Optional

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / 'config'
OUTPUT_DIR = PROJECT_ROOT / 'outputs'
DEFAULT_CONFIG_FILE = CONFIG_DIR / 'analysis_config.json'

REQUIRED_KEYS = ('settings', 'layers', 'choropleth')


def load_config(config_path: Optional[Path] = None) -> Dict:
    """
    Load analysis configuration from JSON file.

    Reads analysis_config.json (or the given path) and validates basic structure.

    Parameters:
    -----------
    config_path : Optional[Path]
        Alternate configuration file. Defaults to config/analysis_config.json

    Returns:
    --------
    Dict
        Configuration dictionary with 'settings', 'layers' and 'choropleth' keys

    Raises:
    -------
    FileNotFoundError
        If configuration file doesn't exist
    json.JSONDecodeError
        If configuration file contains invalid JSON
    KeyError
        If required configuration keys are missing
    """
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    for key in REQUIRED_KEYS:
        if key not in config:
            raise KeyError(f"Configuration missing required '{key}' key")

    return config


def load_analysis_settings(config: Dict = None) -> Dict:
    """
    Load service area settings from configuration.

    Args:
        config: Configuration dictionary (optional, will load if not provided)

    Returns:
        Dictionary with analysis settings

    Defaults:
        - target_crs: 'EPSG:3435' (NAD83 / Illinois East, US survey feet)
        - buffer_distance: 1.0
        - buffer_unit: 'mi'
        - circle_vertices: 64
        - keep_buffer_attributes: True
        - zone_id_field: 'zip'
        - clip_to_boundary: True
        - default_zoom: 10

    Note:
        Values in the 'settings' section override the defaults, so older
        config files without newer keys keep working.
    """
    if config is None:
        config = load_config()

    defaults = {
        'target_crs': 'EPSG:3435',
        'buffer_distance': 1.0,
        'buffer_unit': 'mi',
        'circle_vertices': 64,
        'keep_buffer_attributes': True,
        'zone_id_field': 'zip',
        'clip_to_boundary': True,
        'default_zoom': 10
    }

    return {**defaults, **config.get('settings', {})}


def load_choropleth_settings(config: Dict = None) -> Dict:
    """
    Load thematic map settings from configuration.

    Defaults:
        - scheme: 'quantiles'
        - k: 5
        - cmap: 'YlOrRd'
        - id_field: 'GEOID'
        - name_field: 'NAME'
    """
    if config is None:
        config = load_config()

    defaults = {
        'scheme': 'quantiles',
        'k': 5,
        'cmap': 'YlOrRd',
        'id_field': 'GEOID',
        'name_field': 'NAME',
        'fill_opacity': 0.7
    }

    return {**defaults, **config.get('choropleth', {})}
