"""
Configuration package for Service Area Mapper.

This package contains configuration loading and validation.

Modules:
    config_loader: Load analysis and choropleth settings from JSON
"""

__version__ = '1.0.0'
