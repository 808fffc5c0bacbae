"""
Core modules for Service Area Mapper.

This package contains the error taxonomy plus the presentation side of the
workflow: thematic classification, map rendering, and output generation.

Modules:
    exceptions: Error kinds shared by every stage
    classification: Percentages and mapclassify classification schemes
    map_builder: Interactive (folium) and static (matplotlib) map rendering
    output_generator: Save layers, map, metadata, and XLSX coverage report
"""

__version__ = '1.0.0'
