"""
Geometry Input Processing Package

This package provides the buffer-and-aggregate workflow for Service Area Mapper:
load vector files, standardize their CRS, buffer points into service areas,
and dissolve the buffers into one coverage geometry.

Modules:
    load_input: Read geospatial files and detect geometry types
    reprojection: Resolve, canonicalize, and transform CRSs
    buffering: Buffer point collections in their projected CRS
    dissolve: Union polygon collections and repair invalid geometries
    coverage: Clip coverage to a boundary and summarize it per zone
    writer: Persist collections to shapefile, GeoJSON, or GeoPackage
    pipeline: Orchestrate the complete workflow

Usage:
    from geometry_input.pipeline import process_service_areas

    layers, metadata = process_service_areas(
        'path/to/clinics.geojson',
        zones_path='path/to/zips.shp'
    )
"""

from geometry_input.load_input import load_features
from geometry_input.reprojection import reproject, canonicalize_crs, crs_matches
from geometry_input.buffering import buffer_points, convert_distance
from geometry_input.dissolve import union_polygons
from geometry_input.writer import write_features
from geometry_input.pipeline import process_service_areas

__all__ = [
    'load_features',
    'reproject',
    'canonicalize_crs',
    'crs_matches',
    'buffer_points',
    'convert_distance',
    'union_polygons',
    'write_features',
    'process_service_areas'
]
