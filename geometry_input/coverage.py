"""
Service Area Coverage Module

Relates a dissolved service area to administrative polygons: clip it to a
city boundary, measure how much of each zone (zip code) it covers, and count
how many source points fall in each zone.
"""

from typing import Union
import geopandas as gpd
from shapely.errors import GEOSException
from shapely.geometry.base import BaseGeometry
from core.exceptions import ProjectionError, SchemaError
from geometry_input.dissolve import extract_polygonal, repair_invalid_geometry, union_polygons
from geometry_input.reprojection import crs_matches, get_linear_unit
from utils.logger import get_logger

logger = get_logger(__name__)


def _require_same_crs(left: gpd.GeoDataFrame, right: gpd.GeoDataFrame, operation: str) -> None:
    if left.crs is None or right.crs is None or not crs_matches(left.crs, right.crs):
        raise ProjectionError(
            f"{operation} requires both collections in the same CRS, got "
            f"'{getattr(left.crs, 'name', None)}' and '{getattr(right.crs, 'name', None)}'"
        )


def _require_field(gdf: gpd.GeoDataFrame, field: str) -> None:
    if field not in gdf.columns:
        raise SchemaError(
            f"Field '{field}' not found. Available fields: {', '.join(map(str, gdf.columns))}",
            stage='coverage'
        )


def clip_to_boundary(geom: BaseGeometry,
                     boundary: Union[gpd.GeoDataFrame, BaseGeometry]) -> BaseGeometry:
    """
    Clip a service area to a boundary polygon.

    Args:
        geom: Dissolved service area
        boundary: Boundary polygon, or a polygon collection that is dissolved first

    Returns:
        Polygonal intersection (Polygon, MultiPolygon, or empty Polygon)
    """
    if isinstance(boundary, gpd.GeoDataFrame):
        boundary = union_polygons(boundary)

    logger.info("Clipping service area to boundary...")
    clipped = extract_polygonal(geom.intersection(boundary))
    logger.info(f"  - Kept {clipped.area / geom.area * 100 if geom.area else 0:.1f}% of service area")

    return clipped


def summarize_coverage(zones: gpd.GeoDataFrame,
                       coverage_geom: BaseGeometry,
                       id_field: str) -> gpd.GeoDataFrame:
    """
    Measure how much of each zone lies inside the service area.

    Args:
        zones: Zone polygons (e.g. zip codes) in a projected CRS
        coverage_geom: Dissolved service area in the same CRS
        id_field: Zone identifier column

    Returns:
        GeoDataFrame with columns [id_field, zone_area, covered_area,
        pct_covered, covered, geometry], one row per zone, input order kept

    Raises:
        SchemaError: If id_field is missing or a zone cannot be repaired and overlaid
        UnitError: If the zones' CRS is angular (areas would be meaningless)
    """
    _require_field(zones, id_field)
    get_linear_unit(zones.crs)

    logger.info(f"Summarizing service area coverage for {len(zones)} zone(s)...")

    result = zones[[id_field, zones.geometry.name]].copy()

    # Zip-code layers often carry self-intersecting rings
    zone_geoms = gpd.GeoSeries(
        [None if g is None else extract_polygonal(repair_invalid_geometry(g)) for g in zones.geometry],
        index=zones.index,
        crs=zones.crs
    )
    result[zones.geometry.name] = zone_geoms

    try:
        result['zone_area'] = zone_geoms.area
        result['covered_area'] = zone_geoms.intersection(coverage_geom).area
    except GEOSException as e:
        logger.error(f"Coverage overlay failed: {e}")
        raise SchemaError(f"Coverage overlay failed: {e}", stage='coverage') from e

    zone_area = result['zone_area'].where(result['zone_area'] > 0)
    result['pct_covered'] = (result['covered_area'] / zone_area * 100).fillna(0.0).clip(upper=100.0)
    result['covered'] = result['covered_area'] > 0

    covered = int(result['covered'].sum())
    logger.info(f"  ✓ {covered} of {len(result)} zone(s) intersect the service area")
    logger.debug(f"  - Uncovered zones: {result.loc[~result['covered'], id_field].tolist()}")

    return result


def count_points_per_zone(points: gpd.GeoDataFrame,
                          zones: gpd.GeoDataFrame,
                          id_field: str) -> gpd.GeoDataFrame:
    """
    Count source points falling inside each zone.

    Args:
        points: Point collection
        zones: Zone polygons in the same CRS
        id_field: Zone identifier column

    Returns:
        Copy of zones with an integer 'point_count' column (0 for empty zones)
    """
    _require_field(zones, id_field)
    _require_same_crs(points, zones, "Point-in-zone counting")

    joined = gpd.sjoin(
        points[[points.geometry.name]],
        zones[[id_field, zones.geometry.name]],
        how='inner',
        predicate='within'
    )
    counts = joined.groupby(id_field).size()

    result = zones.copy()
    result['point_count'] = result[id_field].map(counts).fillna(0).astype(int)

    logger.info(f"  - {int(result['point_count'].sum())} point(s) located in "
                f"{int((result['point_count'] > 0).sum())} zone(s)")

    return result
