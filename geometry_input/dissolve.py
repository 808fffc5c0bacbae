"""
Geometry Dissolve Module

Handles dissolving polygon collections into a single unified geometry
and repairing invalid geometries.
"""

from typing import Iterable, Union
import geopandas as gpd
from shapely import make_valid
from shapely.geometry import Polygon, MultiPolygon, GeometryCollection
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from core.exceptions import SchemaError
from utils.logger import get_logger

logger = get_logger(__name__)

PolygonLike = Union[Polygon, MultiPolygon]


def repair_invalid_geometry(geom: BaseGeometry) -> BaseGeometry:
    """
    Repair invalid geometries using make_valid() or buffer(0) technique.

    Common issues fixed:
    - Self-intersecting polygons
    - Duplicate vertices
    - Invalid ring orientations
    - Topology errors from CRS transformations

    Args:
        geom: Potentially invalid Shapely geometry

    Returns:
        Valid Shapely geometry

    Note:
        Uses shapely's make_valid() which applies OGC standards for fixing
        invalid geometries. Falls back to buffer(0) if make_valid fails.
    """
    if geom.is_valid:
        return geom

    logger.warning(f"Invalid geometry detected: {geom.geom_type}")

    try:
        repaired = make_valid(geom)
        logger.info("  ✓ Geometry repaired using make_valid()")
        return repaired

    except Exception as e:
        logger.warning(f"make_valid() failed: {e}, trying buffer(0)...")

        try:
            repaired = geom.buffer(0)
            logger.info("  ✓ Geometry repaired using buffer(0)")
            return repaired

        except Exception as e2:
            logger.error(f"All repair attempts failed: {e2}")
            raise SchemaError(f"Cannot repair invalid geometry: {e2}", stage='union') from e2


def extract_polygonal(geom: BaseGeometry) -> PolygonLike:
    """
    Keep only the polygonal parts of a geometry.

    make_valid() and unary_union() can return a GeometryCollection holding
    stray lines or points along collapsed edges; only areas matter here.

    Returns:
        Polygon (single part, possibly empty) or MultiPolygon
    """
    if isinstance(geom, (Polygon, MultiPolygon)):
        polygons = [geom] if isinstance(geom, Polygon) else list(geom.geoms)
    elif isinstance(geom, GeometryCollection):
        polygons = []
        for part in geom.geoms:
            if isinstance(part, Polygon):
                polygons.append(part)
            elif isinstance(part, MultiPolygon):
                polygons.extend(part.geoms)
    else:
        polygons = []

    polygons = [p for p in polygons if not p.is_empty]

    if not polygons:
        return Polygon()
    if len(polygons) == 1:
        return polygons[0]
    return MultiPolygon(polygons)


def count_parts(geom: BaseGeometry) -> int:
    """Number of disjoint polygon parts (0 for an empty geometry)."""
    if geom.is_empty:
        return 0
    if hasattr(geom, 'geoms'):
        return len(geom.geoms)
    return 1


def _as_geometry_list(features) -> list:
    if isinstance(features, gpd.GeoDataFrame):
        return list(features.geometry)
    if isinstance(features, gpd.GeoSeries):
        return list(features)
    if isinstance(features, BaseGeometry):
        return [features]
    return list(features)


def union_polygons(features: Union[gpd.GeoDataFrame, gpd.GeoSeries, Iterable[BaseGeometry]]) -> PolygonLike:
    """
    Dissolve a polygon collection into one geometry covering their union.

    Uses shapely.ops.unary_union to merge all features, handling:
    - Overlapping polygons → one Polygon with interior seams removed
    - Disjoint clusters → MultiPolygon with one part per cluster
    - MultiPolygon inputs → merged with everything else

    Attributes are discarded. The result is normalized, so the same set of
    inputs gives the same coordinates regardless of input order.

    Args:
        features: GeoDataFrame, GeoSeries or iterable of shapely geometries

    Returns:
        Polygon or MultiPolygon (empty Polygon for empty input)

    Raises:
        SchemaError: If any input is null or not a Polygon/MultiPolygon

    Example:
        Input: 3 overlapping buffer discs
        Output: 1 Polygon
    """
    geoms = _as_geometry_list(features)

    if not geoms:
        logger.warning("Union requested on an empty collection, returning empty Polygon")
        return Polygon()

    for geom in geoms:
        if geom is None:
            raise SchemaError("Cannot union a null geometry", stage='union')
        if not isinstance(geom, (Polygon, MultiPolygon)):
            raise SchemaError(
                f"Union requires Polygon or MultiPolygon features, found: {geom.geom_type}",
                stage='union'
            )

    logger.info(f"Dissolving {len(geoms)} polygon(s) into single geometry...")

    try:
        dissolved = unary_union([repair_invalid_geometry(g) for g in geoms])
    except SchemaError:
        raise
    except Exception as e:
        logger.error(f"Failed to dissolve geometries: {e}")
        raise SchemaError(f"Geometry dissolve failed: {e}", stage='union') from e

    dissolved = extract_polygonal(repair_invalid_geometry(dissolved))
    dissolved = dissolved.normalize()

    logger.info(f"  - Result: {dissolved.geom_type} ({count_parts(dissolved)} part(s))")
    logger.debug(f"  - Is valid: {dissolved.is_valid}")

    return dissolved


def union_to_frame(geom: BaseGeometry, crs) -> gpd.GeoDataFrame:
    """Wrap a dissolved geometry as a single-row GeoDataFrame for writing and rendering."""
    return gpd.GeoDataFrame([{'geometry': geom}], geometry='geometry', crs=crs)
