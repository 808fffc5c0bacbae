"""
Output generation module for Service Area Mapper.

This module saves the rendered map and every workflow layer to the output
directory. Creates a timestamped directory with the map, one vector file per
layer, metadata, and a coverage report.

Functions:
    layer_suffix: Pick the file format that keeps every field name intact
    generate_output: Save map, layer files, metadata, and XLSX report
"""

import json
from pathlib import Path
from datetime import datetime
from typing import Dict, Optional
import folium
import geopandas as gpd
from config.config_loader import OUTPUT_DIR
from core.exceptions import WriteError
from geometry_input.writer import write_features
from utils.logger import get_logger
from utils.xlsx_generator import generate_coverage_report

logger = get_logger(__name__)

# dBASE headers hold at most 10 characters per field name
DBF_FIELD_NAME_LIMIT = 10


def layer_suffix(gdf: gpd.GeoDataFrame) -> str:
    """Shapefile unless a field name would be truncated, else GeoPackage."""
    long_names = [
        str(c) for c in gdf.columns
        if c != gdf.geometry.name and len(str(c)) > DBF_FIELD_NAME_LIMIT
    ]
    if long_names:
        logger.debug(f"  - Field names longer than {DBF_FIELD_NAME_LIMIT} characters: {', '.join(long_names)}")
        return '.gpkg'
    return '.shp'


def generate_output(
    map_obj,
    layers: Dict[str, gpd.GeoDataFrame],
    metadata: Dict,
    output_name: Optional[str] = None,
    output_dir: Optional[Path] = None
) -> Path:
    """
    Generate output directory with map, layer files, metadata, and report.

    Creates an output directory containing:
    - index.html (interactive map) or map.png (static map)
    - metadata.json: Inputs, CRS, buffer settings, and coverage statistics
    - data/<layer>.shp: One shapefile bundle per layer, or data/<layer>.gpkg
      when a field name is longer than a shapefile allows
    - Coverage_Report_YYYYMMDD_HHMMSS.xlsx: When zone coverage was computed

    Parameters:
    -----------
    map_obj : folium.Map or matplotlib Figure
        Rendered map
    layers : Dict[str, gpd.GeoDataFrame]
        Workflow layers (layer key -> GeoDataFrame)
    metadata : Dict
        Pipeline metadata
    output_name : Optional[str]
        Custom output directory name (defaults to timestamped name)
    output_dir : Optional[Path]
        Parent directory (defaults to PROJECT_ROOT/outputs)

    Returns:
    --------
    Path
        Path to output directory

    Raises:
    -------
    WriteError
        If the directory, a layer file, the map, or metadata.json cannot be written
    """
    logger.info("=" * 80)
    logger.info("Generating Output Files")
    logger.info("=" * 80)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    if output_name is None:
        output_name = f"service_area_{timestamp}"

    output_path = Path(output_dir or OUTPUT_DIR) / output_name
    data_path = output_path / 'data'

    try:
        data_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(f"Cannot create output directory {output_path}: {e}") from e

    logger.info(f"Output directory: {output_path}")

    files = {}
    for layer_name, gdf in layers.items():
        if gdf.empty:
            logger.info(f"  - Skipping {layer_name} (0 features)")
            continue
        layer_file = write_features(gdf, data_path / f'{layer_name}{layer_suffix(gdf)}')
        files[layer_name] = str(layer_file.relative_to(output_path))

    try:
        if isinstance(map_obj, folium.Map):
            map_file = output_path / 'index.html'
            map_obj.save(str(map_file))
        else:
            map_file = output_path / 'map.png'
            map_obj.savefig(map_file, dpi=150, bbox_inches='tight')
        logger.info(f"  - Saved map: {map_file.name}")

        summary = {
            'generated_at': datetime.now().isoformat(),
            'files': files,
            **metadata
        }
        with open(output_path / 'metadata.json', 'w', encoding='utf-8') as f:
            json.dump(summary, f, indent=2, default=str)
        logger.info("  - Saved metadata.json")
    except OSError as e:
        raise WriteError(f"Failed to write output files to {output_path}: {e}") from e

    if 'zone_coverage' in layers and 'coverage' in metadata:
        generate_coverage_report(
            layers['zone_coverage'],
            metadata['coverage']['zone_id_field'],
            output_path,
            timestamp
        )

    logger.info("")
    logger.info("=" * 80)
    logger.info("✓ Output Generation Complete")
    logger.info("=" * 80)
    logger.info(f"Files saved to: {output_path}")
    logger.info(f"  - data/ ({len(files)} layer files)")
    logger.info("=" * 80)

    return output_path
