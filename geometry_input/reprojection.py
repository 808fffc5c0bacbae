"""
Coordinate Reference System Module

Resolves CRS identifiers, canonicalizes equivalent encodings, and reprojects
feature collections. Two encodings of the same geodetic system (an EPSG code
and the WKT read from a .prj file, for example) compare unequal as raw tags;
canonicalize_crs() maps both to one identifier and reproject() always stamps
its output with the exact target CRS.
"""

from typing import Any, Tuple
import numpy as np
import geopandas as gpd
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError
from core.exceptions import ProjectionError, UnitError
from utils.logger import get_logger

logger = get_logger(__name__)

# Constants
WGS84 = 'EPSG:4326'
CONUS_ALBERS = 'EPSG:5070'  # Albers Equal Area Conic for CONUS
WEB_MERCATOR = 'EPSG:3857'  # Web Mercator for global coverage
AUTHORITY_MIN_CONFIDENCE = 70

ANGULAR_UNITS = ('degree', 'radian', 'grad', 'arc-second', 'arc-minute')


def resolve_crs(crs_like: Any) -> CRS:
    """
    Resolve any CRS representation into a pyproj CRS.

    Accepts authority strings ('EPSG:3435'), EPSG integers, WKT, PROJ strings,
    dictionaries and CRS objects.

    Raises:
        ProjectionError: If the input is None or cannot be resolved
    """
    if crs_like is None:
        raise ProjectionError("CRS is not defined")

    if isinstance(crs_like, CRS):
        return crs_like

    try:
        return CRS.from_user_input(crs_like)
    except CRSError as e:
        raise ProjectionError(f"Cannot resolve CRS '{crs_like}': {e}") from e


def canonicalize_crs(crs_like: Any) -> str:
    """
    Map any CRS representation to a canonical identifier.

    Returns 'AUTHORITY:CODE' (e.g. 'EPSG:3435') when pyproj can match the
    definition to an authority entry, otherwise the WKT2 string.

    Example:
        >>> canonicalize_crs(4326)
        'EPSG:4326'
        >>> canonicalize_crs(CRS.from_epsg(4326).to_wkt())
        'EPSG:4326'
    """
    crs = resolve_crs(crs_like)

    authority = crs.to_authority(min_confidence=AUTHORITY_MIN_CONFIDENCE)
    if authority is not None:
        return f"{authority[0]}:{authority[1]}"

    logger.debug(f"No authority match for CRS '{crs.name}', using WKT as identifier")
    return crs.to_wkt()


def crs_matches(crs_a: Any, crs_b: Any) -> bool:
    """Return True when both CRS representations canonicalize to the same identifier."""
    return canonicalize_crs(crs_a) == canonicalize_crs(crs_b)


def get_linear_unit(crs_like: Any) -> Tuple[str, float]:
    """
    Return the linear unit of a CRS and its length in metres.

    Args:
        crs_like: Any CRS representation

    Returns:
        Tuple of (unit_name, metres_per_unit), e.g. ('US survey foot', 0.3048006096)

    Raises:
        UnitError: If the CRS is missing, geographic, or uses angular axis units
    """
    if crs_like is None:
        raise UnitError("Collection has no CRS, so its distance unit is unknown")

    crs = resolve_crs(crs_like)

    if crs.is_geographic:
        raise UnitError(
            f"CRS '{crs.name}' is geographic (angular units); "
            "reproject to a projected CRS with linear units before measuring distances"
        )

    if not crs.axis_info:
        raise UnitError(f"CRS '{crs.name}' declares no axes, so its unit is unknown")

    axis = crs.axis_info[0]
    unit_name = axis.unit_name or ''
    if not unit_name or any(angular in unit_name.lower() for angular in ANGULAR_UNITS):
        raise UnitError(f"CRS '{crs.name}' uses non-linear unit '{unit_name}'")

    return unit_name, float(axis.unit_conversion_factor)


def is_linear_crs(crs_like: Any) -> bool:
    """Return True if distances in this CRS are expressed in a linear unit."""
    try:
        get_linear_unit(crs_like)
    except UnitError:
        return False
    return True


def reproject(gdf: gpd.GeoDataFrame, target_crs: Any) -> gpd.GeoDataFrame:
    """
    Transform every coordinate of a collection into the target CRS.

    The source collection is not modified. Attribute columns pass through
    unchanged and the output CRS tag is the resolved target itself, so an
    equivalent-but-differently-encoded source tag is replaced.

    Args:
        gdf: Feature collection with a defined CRS
        target_crs: Any resolvable CRS representation

    Returns:
        New GeoDataFrame in target_crs

    Raises:
        ProjectionError: If either CRS cannot be resolved or any coordinate
                         falls outside the transform's domain
    """
    if gdf.crs is None:
        raise ProjectionError("Cannot reproject a collection with no source CRS")

    source = resolve_crs(gdf.crs)
    target = resolve_crs(target_crs)

    logger.info(f"Reprojecting {len(gdf)} feature(s): {source.name} → {target.name}")

    try:
        projected = gdf.to_crs(target)
    except Exception as e:
        logger.error(f"CRS transformation failed: {e}")
        raise ProjectionError(f"CRS transformation failed: {e}") from e

    if not projected.empty:
        coords = projected.geometry.get_coordinates().to_numpy()
        if not np.isfinite(coords).all():
            bad = int((~np.isfinite(coords)).any(axis=1).sum())
            raise ProjectionError(
                f"Transform from '{source.name}' to '{target.name}' is undefined for "
                f"{bad} coordinate(s) (outside the projection's domain)"
            )

    projected = projected.set_crs(target, allow_override=True)

    logger.debug(f"  - Output CRS: {canonicalize_crs(projected.crs)}")
    return projected


def select_projected_crs(gdf: gpd.GeoDataFrame) -> CRS:
    """
    Select appropriate projected CRS for accurate distance-based buffering.

    Strategy:
    1. Calculate the collection's bounding-box centre in lon/lat
    2. Determine UTM zone from centre longitude
    3. Determine hemisphere (North/South) from centre latitude
    4. Return appropriate WGS84 UTM CRS
    5. Fallback to Albers Equal Area (CONUS) or Web Mercator (global)

    Args:
        gdf: Feature collection with a defined CRS

    Returns:
        Projected CRS with metre units

    Note:
        UTM zones provide best accuracy for localized areas such as a city.
    """
    source = resolve_crs(gdf.crs)
    minx, miny, maxx, maxy = gdf.total_bounds
    x, y = (minx + maxx) / 2, (miny + maxy) / 2

    if source.is_geographic and crs_matches(source, WGS84):
        lon, lat = x, y
    else:
        transformer = Transformer.from_crs(source, CRS.from_epsg(4326), always_xy=True)
        lon, lat = transformer.transform(x, y)

    if np.isfinite(lon) and np.isfinite(lat) and -180 <= lon <= 180:
        # UTM zones are 6 degrees wide, starting at -180°
        utm_zone = min(int((lon + 180) / 6) + 1, 60)
        epsg_code = (32600 if lat >= 0 else 32700) + utm_zone
        logger.info(f"  - Selected UTM Zone {utm_zone}{'N' if lat >= 0 else 'S'} (EPSG:{epsg_code})")
        return CRS.from_epsg(epsg_code)

    logger.warning(f"Could not determine UTM zone from centre ({lon}, {lat})")

    # CONUS approximate bounds: lon -125 to -66, lat 24 to 49
    if -125 <= lon <= -66 and 24 <= lat <= 49:
        logger.info("  - Using fallback: Albers Equal Area Conic (EPSG:5070) for CONUS")
        return CRS.from_string(CONUS_ALBERS)

    logger.info("  - Using fallback: Web Mercator (EPSG:3857) for global coverage")
    return CRS.from_string(WEB_MERCATOR)
