"""
Service Area Pipeline

Orchestrates the complete service-area workflow:
1. Load point, zone and boundary files
2. Reproject every collection to one target CRS
3. Buffer each point into a service-area disc
4. Dissolve the discs into a single coverage geometry
5. Optionally clip the coverage to the boundary
6. Summarize coverage per zone

Each stage returns a new collection; the loaded inputs are never modified.
Any stage failure propagates, so callers get either the complete result or
an exception.
"""

from typing import Dict, Optional, Tuple
import geopandas as gpd

from config.config_loader import load_analysis_settings
from core.exceptions import SchemaError
from geometry_input.load_input import (
    load_features,
    detect_geometry_type,
    validate_input_geometry,
    extract_geometry_metadata
)
from geometry_input.reprojection import reproject, resolve_crs, canonicalize_crs
from geometry_input.buffering import buffer_points, convert_distance, calculate_buffer_area
from geometry_input.dissolve import union_polygons, union_to_frame, count_parts
from geometry_input.coverage import clip_to_boundary, summarize_coverage, count_points_per_zone
from utils.logger import get_logger

logger = get_logger(__name__)


def _load_standardized(file_path: str,
                       target_crs,
                       expected_type: str,
                       label: str) -> Tuple[gpd.GeoDataFrame, dict]:
    """
    Load one input file, validate it, and reproject it to the target CRS.

    Returns:
        Tuple of (reprojected GeoDataFrame, metadata dict)
    """
    logger.info(f"[{label}]")
    gdf = load_features(file_path)

    is_valid, error_msg = validate_input_geometry(gdf)
    if not is_valid:
        raise SchemaError(f"{label} validation failed: {error_msg}", stage='load')

    geom_type = detect_geometry_type(gdf)
    if geom_type != expected_type:
        raise SchemaError(f"{label} must contain {expected_type} features, found '{geom_type}'", stage='load')

    metadata = extract_geometry_metadata(gdf, file_path)

    # Reproject even when the tags look equivalent; the output tag must be the target exactly
    standardized = reproject(gdf, target_crs)
    metadata['canonical_crs'] = canonicalize_crs(gdf.crs)

    return standardized, metadata


def process_service_areas(points_path: str,
                          zones_path: Optional[str] = None,
                          boundary_path: Optional[str] = None,
                          settings: Optional[Dict] = None) -> Tuple[Dict[str, gpd.GeoDataFrame], dict]:
    """
    Run the buffer-and-aggregate workflow.

    Args:
        points_path: Point file (e.g. clinic locations)
        zones_path: Zone polygon file (e.g. zip codes), optional
        boundary_path: Boundary polygon file (e.g. city limits), optional
        settings: Analysis settings; defaults from config/analysis_config.json

    Returns:
        Tuple of (layers, metadata)
        - layers: 'points', 'buffers', 'service_area', plus 'zones',
          'zone_coverage' and 'boundary' when those inputs are given
        - metadata: Inputs, CRS, buffer distance, areas, coverage counts

    Raises:
        FormatError, SchemaError, ProjectionError, UnitError: from the stages

    Example:
        >>> layers, metadata = process_service_areas(
        ...     'data/methadone_clinics.geojson',
        ...     zones_path='data/chicago_zips.shp',
        ...     boundary_path='data/chicago_boundary.shp'
        ... )
        >>> metadata['service_area']['geometry_type']
        'Polygon'
    """
    if settings is None:
        settings = load_analysis_settings()

    target_crs = resolve_crs(settings['target_crs'])

    logger.info("=" * 80)
    logger.info("SERVICE AREA PIPELINE")
    logger.info("=" * 80)
    logger.info(f"Target CRS: {canonicalize_crs(target_crs)} ({target_crs.name})")

    layers: Dict[str, gpd.GeoDataFrame] = {}
    metadata = {'target_crs': canonicalize_crs(target_crs), 'inputs': {}}

    points, metadata['inputs']['points'] = _load_standardized(points_path, target_crs, 'point', 'Points')
    layers['points'] = points

    zones = boundary = None
    if zones_path:
        zones, metadata['inputs']['zones'] = _load_standardized(zones_path, target_crs, 'polygon', 'Zones')
        layers['zones'] = zones
    if boundary_path:
        boundary, metadata['inputs']['boundary'] = _load_standardized(boundary_path, target_crs, 'polygon', 'Boundary')
        layers['boundary'] = boundary

    radius = convert_distance(settings['buffer_distance'], settings['buffer_unit'], target_crs)
    buffers = buffer_points(
        points,
        radius,
        keep_attributes=settings['keep_buffer_attributes'],
        vertices=settings['circle_vertices']
    )
    layers['buffers'] = buffers

    service_area = union_polygons(buffers)
    if boundary is not None and settings['clip_to_boundary']:
        service_area = clip_to_boundary(service_area, boundary)
    layers['service_area'] = union_to_frame(service_area, target_crs)

    metadata['buffer'] = {
        'distance': settings['buffer_distance'],
        'unit': settings['buffer_unit'],
        'radius_crs_units': radius,
        'circle_vertices': settings['circle_vertices'],
        'attributes_kept': settings['keep_buffer_attributes']
    }
    metadata['service_area'] = {
        'geometry_type': service_area.geom_type,
        'parts': count_parts(service_area),
        'clipped_to_boundary': boundary is not None and settings['clip_to_boundary'],
        'area': calculate_buffer_area(service_area, target_crs)
    }

    if zones is not None:
        id_field = settings['zone_id_field']
        coverage = summarize_coverage(zones, service_area, id_field)
        counts = count_points_per_zone(points, zones, id_field)
        coverage['point_count'] = counts['point_count'].values
        layers['zone_coverage'] = coverage
        metadata['coverage'] = {
            'zone_id_field': id_field,
            'zones_total': len(coverage),
            'zones_covered': int(coverage['covered'].sum()),
            'zones_without_points': int((coverage['point_count'] == 0).sum())
        }

    logger.info("=" * 80)
    logger.info("SERVICE AREA PIPELINE COMPLETE")
    logger.info("=" * 80)
    logger.info(f"  ✓ Points: {len(points)} → Buffers: {len(buffers)}")
    logger.info(f"  ✓ Service area: {service_area.geom_type} ({count_parts(service_area)} part(s))")
    logger.info(f"  ✓ Area: ~{metadata['service_area']['area']['area_sq_miles']:.2f} sq miles")
    if 'coverage' in metadata:
        logger.info(f"  ✓ Zones covered: {metadata['coverage']['zones_covered']} of "
                    f"{metadata['coverage']['zones_total']}")
    logger.info("=" * 80)

    return layers, metadata
