"""
Feature Writing Module

Persists feature collections back to disk. A shapefile holds a single
geometry family, so point and polygon features must be written separately.
"""

from pathlib import Path
from typing import Optional
import geopandas as gpd
from core.exceptions import SchemaError, WriteError
from geometry_input.load_input import geometry_families
from utils.logger import get_logger

logger = get_logger(__name__)

DRIVERS_BY_SUFFIX = {
    '.shp': 'ESRI Shapefile',
    '.geojson': 'GeoJSON',
    '.json': 'GeoJSON',
    '.gpkg': 'GPKG',
}


def write_features(gdf: gpd.GeoDataFrame, path, driver: Optional[str] = None) -> Path:
    """
    Write a feature collection to file, overwriting any existing output.

    Args:
        gdf: Feature collection to write
        path: Destination path; the suffix selects the driver unless given
        driver: Explicit OGR driver name (optional)

    Returns:
        Path of the written file

    Raises:
        SchemaError: If the collection mixes geometry families (e.g. points and polygons)
        WriteError: If the file cannot be written (permissions, disk, driver failure)
    """
    path = Path(path)

    if driver is None:
        driver = DRIVERS_BY_SUFFIX.get(path.suffix.lower())
        if driver is None:
            raise WriteError(f"Cannot infer output format from suffix '{path.suffix}'")

    families = geometry_families(gdf)
    if len(families) > 1:
        raise SchemaError(
            f"Cannot write mixed geometry types to one file: {sorted(families)}",
            stage='write'
        )

    if driver == 'ESRI Shapefile':
        # DBF tables have no boolean type
        bool_columns = [c for c in gdf.columns if gdf[c].dtype == bool]
        if bool_columns:
            gdf = gdf.astype({c: int for c in bool_columns})

    logger.info(f"  - Writing {len(gdf)} feature(s) to {path.name} ({driver})")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        gdf.to_file(path, driver=driver)
    except Exception as e:
        logger.error(f"Failed to write {path}: {e}")
        raise WriteError(f"Failed to write {path}: {e}") from e

    return path
