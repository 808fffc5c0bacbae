"""Shared pytest fixtures for the Service Area Mapper test suite."""

from pathlib import Path

import geopandas as gpd
import pytest
from shapely.geometry import Point, box

# ---------------------------------------------------------------------------
# CRS constants
# ---------------------------------------------------------------------------

WGS84 = "EPSG:4326"
IL_EAST_FT = "EPSG:3435"  # NAD83 / Illinois East (ftUS)
UTM_16N = "EPSG:32616"  # WGS 84 / UTM zone 16N (metres)

# Chicago-area clinic locations (lon, lat). The first two are ~800 m apart,
# the third is ~15 km south.
CLINIC_COORDS = [(-87.65, 41.88), (-87.64, 41.88), (-87.60, 41.75)]

# Zip-code stand-ins: A holds clinics 1-2, B holds clinic 3, C is far north.
ZIP_BOXES = {
    "60601": (-87.70, 41.85, -87.60, 41.91),
    "60617": (-87.62, 41.72, -87.55, 41.78),
    "60018": (-87.90, 42.00, -87.85, 42.05),
}


# ---------------------------------------------------------------------------
# In-memory collections
# ---------------------------------------------------------------------------


@pytest.fixture()
def clinics_wgs84() -> gpd.GeoDataFrame:
    """Three clinic points in EPSG:4326."""
    return gpd.GeoDataFrame(
        {
            "Name": ["North Clinic", "Loop Clinic", "South Clinic"],
            "Zip": ["60601", "60601", "60617"],
        },
        geometry=[Point(xy) for xy in CLINIC_COORDS],
        crs=WGS84,
    )


@pytest.fixture()
def zips_wgs84() -> gpd.GeoDataFrame:
    """Three zip-code boxes in EPSG:4326."""
    return gpd.GeoDataFrame(
        {"zip": list(ZIP_BOXES)},
        geometry=[box(*bounds) for bounds in ZIP_BOXES.values()],
        crs=WGS84,
    )


@pytest.fixture()
def boundary_wgs84() -> gpd.GeoDataFrame:
    """A city boundary enclosing every zip box."""
    return gpd.GeoDataFrame(
        {"name": ["Chicago"]},
        geometry=[box(-88.0, 41.6, -87.5, 42.1)],
        crs=WGS84,
    )


@pytest.fixture()
def origin_point_ft() -> gpd.GeoDataFrame:
    """A single point at the origin of a US-feet projected CRS."""
    return gpd.GeoDataFrame({"name": ["origin"]}, geometry=[Point(0, 0)], crs=IL_EAST_FT)


@pytest.fixture()
def analysis_settings() -> dict:
    """Analysis settings equivalent to the bundled configuration."""
    return {
        "target_crs": IL_EAST_FT,
        "buffer_distance": 1.0,
        "buffer_unit": "mi",
        "circle_vertices": 64,
        "keep_buffer_attributes": True,
        "zone_id_field": "zip",
        "clip_to_boundary": True,
        "default_zoom": 10,
    }


# ---------------------------------------------------------------------------
# On-disk fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clinics_geojson(tmp_path: Path, clinics_wgs84: gpd.GeoDataFrame) -> Path:
    path = tmp_path / "clinics.geojson"
    clinics_wgs84.to_file(path, driver="GeoJSON")
    return path


@pytest.fixture()
def zips_shapefile(tmp_path: Path, zips_wgs84: gpd.GeoDataFrame) -> Path:
    path = tmp_path / "zips.shp"
    zips_wgs84.to_file(path, driver="ESRI Shapefile")
    return path


@pytest.fixture()
def boundary_geojson(tmp_path: Path, boundary_wgs84: gpd.GeoDataFrame) -> Path:
    path = tmp_path / "boundary.geojson"
    boundary_wgs84.to_file(path, driver="GeoJSON")
    return path
