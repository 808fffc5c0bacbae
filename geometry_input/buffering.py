"""
Geometry Buffering Module

Builds service-area discs around point features. Buffers are constructed in
the collection's own projected CRS, so the radius is a length in that CRS's
linear unit; angular (degree-based) collections are rejected rather than
producing distorted ellipses.
"""

import math
from typing import Any
import geopandas as gpd
from shapely.geometry.base import BaseGeometry
from core.exceptions import SchemaError
from geometry_input.reprojection import get_linear_unit
from utils.logger import get_logger

logger = get_logger(__name__)

# Constants
FEET_TO_METERS = 0.3048
US_FEET_TO_METERS = 1200 / 3937
METERS_PER_MILE = 1609.344
SQ_METERS_PER_SQ_MILE = METERS_PER_MILE ** 2

DEFAULT_CIRCLE_VERTICES = 64
# 32 vertices keeps the inscribed polygon's area within 1% of the true circle
MIN_CIRCLE_VERTICES = 32

DISTANCE_UNITS = {
    'm': 1.0,
    'km': 1000.0,
    'ft': FEET_TO_METERS,
    'us-ft': US_FEET_TO_METERS,
    'mi': METERS_PER_MILE,
}


def convert_distance(value: float, unit: str, crs: Any) -> float:
    """
    Convert a distance into the linear unit of a CRS.

    Args:
        value: Distance magnitude
        unit: One of 'm', 'km', 'ft', 'us-ft', 'mi'
        crs: Target CRS (must have linear units)

    Returns:
        Distance expressed in the CRS unit

    Example:
        >>> convert_distance(1, 'mi', 'EPSG:3435')  # Illinois East, US survey feet
        5279.98944...
    """
    if unit not in DISTANCE_UNITS:
        raise ValueError(f"Unknown distance unit '{unit}'. Expected one of: {', '.join(DISTANCE_UNITS)}")

    unit_name, metres_per_crs_unit = get_linear_unit(crs)
    converted = value * DISTANCE_UNITS[unit] / metres_per_crs_unit

    logger.debug(f"  - Distance: {value} {unit} = {converted:.4f} {unit_name}")
    return converted


def _validate_circle_vertices(vertices: int) -> int:
    if vertices < MIN_CIRCLE_VERTICES or vertices % 4 != 0:
        raise ValueError(
            f"Circle vertex count must be a multiple of 4 and at least {MIN_CIRCLE_VERTICES}, got {vertices}"
        )
    return vertices // 4


def buffer_points(gdf: gpd.GeoDataFrame,
                  radius: float,
                  keep_attributes: bool = True,
                  vertices: int = DEFAULT_CIRCLE_VERTICES) -> gpd.GeoDataFrame:
    """
    Buffer every point in a collection into a discretized circle.

    Process:
    1. Check that every feature is a non-null Point
    2. Check that the CRS has a linear unit
    3. Buffer each point by radius with vertices/4 segments per quarter circle
    4. Carry attributes over (or drop them) as requested

    Args:
        gdf: Point collection in a projected CRS
        radius: Buffer radius in the CRS linear unit (must be > 0)
        keep_attributes: Copy the source point's attributes onto its buffer.
                         When False the output holds geometry only.
        vertices: Vertices per full circle (multiple of 4, >= 32)

    Returns:
        GeoDataFrame with one Polygon per input point, same order, index and CRS

    Raises:
        SchemaError: If any feature is not a Point
        UnitError: If the CRS is missing or angular
        ValueError: If radius or vertices are out of range
    """
    try:
        radius = float(radius)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Buffer radius must be a positive number, got {radius!r}") from e
    if not math.isfinite(radius) or radius <= 0:
        raise ValueError(f"Buffer radius must be a positive number, got {radius}")

    quad_segs = _validate_circle_vertices(vertices)

    if gdf.geometry.isna().any():
        raise SchemaError(f"Cannot buffer {int(gdf.geometry.isna().sum())} null geometries", stage='buffer')

    geom_types = set(gdf.geometry.geom_type.unique())
    if geom_types - {'Point'}:
        raise SchemaError(
            f"Buffering requires Point features, found: {sorted(geom_types - {'Point'})}",
            stage='buffer'
        )

    unit_name, _ = get_linear_unit(gdf.crs)

    logger.info(f"Buffering {len(gdf)} point(s) by {radius} {unit_name}...")

    buffered_geoms = gdf.geometry.buffer(radius, quad_segs=quad_segs)

    if keep_attributes:
        result = gdf.copy()
        result[gdf.geometry.name] = buffered_geoms
    else:
        result = gpd.GeoDataFrame(geometry=buffered_geoms, crs=gdf.crs)

    logger.info(f"  ✓ Created {len(result)} buffer polygon(s) ({vertices} vertices per circle)")

    return result


def calculate_buffer_area(buffered_geom: BaseGeometry, crs: Any) -> dict:
    """
    Calculate area of a buffered geometry for validation and reporting.

    Args:
        buffered_geom: Polygon or MultiPolygon in a projected CRS
        crs: CRS of the geometry (must have linear units)

    Returns:
        Dictionary with area in CRS units, square kilometres and square miles
    """
    unit_name, metres_per_unit = get_linear_unit(crs)

    area_crs_units = buffered_geom.area
    area_sq_m = area_crs_units * metres_per_unit ** 2
    area_sq_miles = area_sq_m / SQ_METERS_PER_SQ_MILE

    area_info = {
        'area_crs_units': area_crs_units,
        'crs_unit': unit_name,
        'area_sq_km': round(area_sq_m / 1e6, 4),
        'area_sq_miles': round(area_sq_miles, 4)
    }

    logger.debug(f"  - Buffered area: ~{area_sq_miles:.2f} sq miles ({area_sq_m / 1e6:.2f} sq km)")

    if area_sq_miles > 1000:
        logger.warning(f"Large buffer area detected: {area_sq_miles:.1f} sq miles")
        logger.warning("Check that the buffer distance unit matches the CRS unit")

    return area_info
