"""
Geometry Input Loading Module

Handles reading geospatial files and detecting geometry types.
Supports shapefile bundles, GeoJSON, GeoPackage and zipped shapefiles
through GeoPandas. The CRS stored in the file is kept exactly as read.
"""

import geopandas as gpd
import zipfile
import tempfile
from pathlib import Path
from typing import List, Set, Tuple
from core.exceptions import FormatError, MissingCompanionError
from utils.logger import get_logger

logger = get_logger(__name__)

# A shapefile is only complete with geometry, index, attribute table and CRS metadata
SHAPEFILE_COMPANIONS = ('.shp', '.shx', '.dbf', '.prj')
SUPPORTED_SUFFIXES = {'.shp', '.geojson', '.json', '.gpkg', '.zip'}

GEOMETRY_FAMILIES = {
    'Point': 'point',
    'MultiPoint': 'point',
    'LineString': 'line',
    'MultiLineString': 'line',
    'Polygon': 'polygon',
    'MultiPolygon': 'polygon',
}


def find_missing_companions(shp_path: Path) -> List[str]:
    """
    List the companion files missing from a shapefile bundle.

    Matching is case-insensitive on the suffix, so 'zips.SHX' satisfies '.shx'.

    Args:
        shp_path: Path to the .shp member of the bundle

    Returns:
        Missing suffixes, e.g. ['.dbf']; empty when the bundle is complete
    """
    siblings = {}
    if shp_path.parent.exists():
        for candidate in shp_path.parent.iterdir():
            if candidate.stem == shp_path.stem:
                siblings[candidate.suffix.lower()] = candidate

    return [suffix for suffix in SHAPEFILE_COMPANIONS if suffix not in siblings]


def _check_shapefile_bundle(shp_path: Path) -> None:
    missing = find_missing_companions(shp_path)
    if missing:
        raise MissingCompanionError(
            f"Shapefile bundle '{shp_path.name}' is missing companion file(s): {', '.join(missing)}",
            missing=missing
        )


def load_features(file_path: str) -> gpd.GeoDataFrame:
    """
    Load geospatial file and return GeoDataFrame with original CRS.

    Supports: Shapefile (all four of .shp/.shx/.dbf/.prj required),
    GeoJSON, GeoPackage, and ZIP archives holding one shapefile bundle.

    Args:
        file_path: Path to geospatial file

    Returns:
        GeoDataFrame with geometries in the CRS declared by the file

    Raises:
        FormatError: If the file is absent, unreadable, empty, or has no CRS
        MissingCompanionError: If a shapefile companion file is missing
    """
    file_path_obj = Path(file_path)

    if not file_path_obj.exists():
        raise FormatError(f"Input file not found: {file_path}")

    suffix = file_path_obj.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise FormatError(f"Unrecognized vector format '{suffix}' for file: {file_path}")

    logger.info(f"Loading features from: {file_path}")

    try:
        if suffix == '.zip':
            logger.info("  - Detected ZIP file, extracting to read shapefile...")
            with tempfile.TemporaryDirectory() as tmpdir:
                with zipfile.ZipFile(file_path, 'r') as zip_ref:
                    zip_ref.extractall(tmpdir)
                shp_files = sorted(Path(tmpdir).rglob('*.shp'))
                if not shp_files:
                    raise FormatError("No shapefile (.shp) found in ZIP archive")
                if len(shp_files) > 1:
                    logger.warning(f"  - Multiple shapefiles found in ZIP, using first: {shp_files[0].name}")
                _check_shapefile_bundle(shp_files[0])
                gdf = gpd.read_file(shp_files[0])
        else:
            if suffix == '.shp':
                _check_shapefile_bundle(file_path_obj)
            gdf = gpd.read_file(file_path_obj)
    except FormatError:
        raise
    except zipfile.BadZipFile as e:
        raise FormatError("Invalid ZIP file - file appears to be corrupted") from e
    except Exception as e:
        logger.error(f"Failed to read geospatial file: {e}")
        raise FormatError(f"Failed to read geospatial file: {e}") from e

    if gdf.empty:
        raise FormatError(f"Input file contains no features: {file_path}")

    if gdf.crs is None:
        raise FormatError(
            f"Input file has no Coordinate Reference System (CRS) defined: {file_path}. "
            "Please assign a CRS to your data before using it as input."
        )

    logger.info(f"  - Loaded {len(gdf)} feature(s)")
    logger.info(f"  - Original CRS: {gdf.crs.name}")
    logger.debug(f"  - Geometry types: {gdf.geometry.geom_type.unique().tolist()}")

    return gdf


def geometry_families(gdf: gpd.GeoDataFrame) -> Set[str]:
    """Geometry families present, ignoring nulls ('Polygon' and 'MultiPolygon' are one family)."""
    return {GEOMETRY_FAMILIES.get(t, 'unknown') for t in gdf.geometry.geom_type.dropna().unique()}


def detect_geometry_type(gdf: gpd.GeoDataFrame) -> str:
    """
    Classify a collection as 'point', 'line', 'polygon', 'mixed' or 'unknown'.

    Multi-part types count as their single-part family, so a zip-code layer
    holding both Polygons and MultiPolygons is 'polygon'.
    """
    families = geometry_families(gdf)

    if len(families) > 1:
        logger.warning(f"Mixed geometry types detected: {sorted(families)}")
        return 'mixed'
    if not families:
        return 'unknown'

    detected_type = families.pop()
    if detected_type == 'unknown':
        logger.warning(f"Unsupported geometry type(s): {gdf.geometry.geom_type.unique().tolist()}")
    logger.debug(f"  - Detected geometry type: {detected_type}")
    return detected_type


def validate_input_geometry(gdf: gpd.GeoDataFrame) -> Tuple[bool, str]:
    """
    Check that a loaded collection can enter the workflow.

    Returns:
        Tuple of (is_valid, error_message); the message is '' when valid
    """
    try:
        geometry = gdf.geometry
    except AttributeError:
        return False, "Collection has no geometry column"

    if gdf.empty:
        return False, "Collection contains no features"
    if gdf.crs is None:
        return False, "Collection has no CRS defined"

    null_count = int(geometry.isna().sum())
    if null_count:
        return False, f"Collection contains {null_count} null geometries"

    if 'unknown' in geometry_families(gdf):
        unsupported = sorted(set(geometry.geom_type.unique()) - set(GEOMETRY_FAMILIES))
        return False, f"Unsupported geometry types: {unsupported}"

    return True, ""


def extract_geometry_metadata(gdf: gpd.GeoDataFrame, file_path: str) -> dict:
    """Summary of a loaded input for metadata.json."""
    return {
        'original_file': Path(file_path).name,
        'original_crs': gdf.crs.to_string() if gdf.crs is not None else None,
        'feature_count': len(gdf),
        'geometry_type': detect_geometry_type(gdf),
        'invalid_geometries': int((~gdf.geometry.is_valid).sum()),
        'attribute_fields': [c for c in gdf.columns if c != gdf.geometry.name],
        'bounds': gdf.total_bounds.tolist()
    }
