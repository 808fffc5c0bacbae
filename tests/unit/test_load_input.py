"""Unit tests for geometry_input.load_input."""

import zipfile
from pathlib import Path

import geopandas as gpd
import pytest
from shapely.geometry import LineString, Point, box

from core.exceptions import FormatError, MissingCompanionError, SchemaError
from geometry_input.load_input import (
    detect_geometry_type,
    extract_geometry_metadata,
    find_missing_companions,
    geometry_families,
    load_features,
    validate_input_geometry,
)
from geometry_input.reprojection import crs_matches


class TestLoadFeatures:
    def test_loads_shapefile_bundle(self, zips_shapefile: Path) -> None:
        gdf = load_features(str(zips_shapefile))
        assert len(gdf) == 3
        assert set(gdf["zip"]) == {"60601", "60617", "60018"}
        assert gdf.crs is not None

    def test_geojson_embedded_crs_is_honored(self, tmp_path: Path, clinics_wgs84) -> None:
        path = tmp_path / "clinics_ft.geojson"
        clinics_wgs84.to_crs("EPSG:3435").to_file(path, driver="GeoJSON")

        gdf = load_features(str(path))

        assert crs_matches(gdf.crs, "EPSG:3435")
        assert len(gdf) == 3

    def test_crs_is_kept_as_read(self, zips_shapefile: Path) -> None:
        gdf = load_features(str(zips_shapefile))
        assert gdf.crs == gpd.read_file(zips_shapefile).crs

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FormatError, match="not found"):
            load_features(str(tmp_path / "nope.shp"))

    def test_unrecognized_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "clinics.txt"
        path.write_text("name,lat,lon\n")
        with pytest.raises(FormatError, match="Unrecognized"):
            load_features(str(path))

    def test_malformed_geojson(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.geojson"
        path.write_text("{this is not json")
        with pytest.raises(FormatError):
            load_features(str(path))

    @pytest.mark.parametrize("suffix", [".dbf", ".shx", ".prj"])
    def test_missing_companion_file(self, zips_shapefile: Path, suffix: str) -> None:
        zips_shapefile.with_suffix(suffix).unlink()

        with pytest.raises(MissingCompanionError) as exc_info:
            load_features(str(zips_shapefile))

        assert isinstance(exc_info.value, FormatError)
        assert isinstance(exc_info.value, SchemaError)
        assert exc_info.value.missing == [suffix]

    def test_zip_archive(self, tmp_path: Path, zips_shapefile: Path) -> None:
        archive = tmp_path / "zips.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            for member in zips_shapefile.parent.glob("zips.*"):
                zf.write(member, arcname=member.name)

        gdf = load_features(str(archive))
        assert len(gdf) == 3

    def test_zip_without_shapefile(self, tmp_path: Path) -> None:
        archive = tmp_path / "empty.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("readme.txt", "nothing here")

        with pytest.raises(FormatError, match="No shapefile"):
            load_features(str(archive))

    def test_corrupt_zip(self, tmp_path: Path) -> None:
        archive = tmp_path / "corrupt.zip"
        archive.write_bytes(b"not a zip file")
        with pytest.raises(FormatError, match="Invalid ZIP"):
            load_features(str(archive))


class TestFindMissingCompanions:
    def test_complete_bundle(self, zips_shapefile: Path) -> None:
        assert find_missing_companions(zips_shapefile) == []

    def test_suffix_case_is_ignored(self, zips_shapefile: Path) -> None:
        dbf = zips_shapefile.with_suffix(".dbf")
        dbf.rename(dbf.with_suffix(".DBF"))
        assert find_missing_companions(zips_shapefile) == []


class TestDetectGeometryType:
    def test_points(self, clinics_wgs84) -> None:
        assert detect_geometry_type(clinics_wgs84) == "point"

    def test_polygons(self, zips_wgs84) -> None:
        assert detect_geometry_type(zips_wgs84) == "polygon"

    def test_mixed(self) -> None:
        gdf = gpd.GeoDataFrame(geometry=[Point(0, 0), box(0, 0, 1, 1)], crs="EPSG:3435")
        assert detect_geometry_type(gdf) == "mixed"

    def test_lines(self) -> None:
        gdf = gpd.GeoDataFrame(geometry=[LineString([(0, 0), (1, 1)])], crs="EPSG:3435")
        assert detect_geometry_type(gdf) == "line"


class TestValidateInputGeometry:
    def test_valid(self, clinics_wgs84) -> None:
        assert validate_input_geometry(clinics_wgs84) == (True, "")

    def test_empty(self) -> None:
        gdf = gpd.GeoDataFrame(geometry=[], crs="EPSG:4326")
        is_valid, message = validate_input_geometry(gdf)
        assert not is_valid
        assert "no features" in message

    def test_no_crs(self) -> None:
        gdf = gpd.GeoDataFrame(geometry=[Point(0, 0)])
        is_valid, message = validate_input_geometry(gdf)
        assert not is_valid
        assert "CRS" in message

    def test_null_geometry(self) -> None:
        gdf = gpd.GeoDataFrame({"name": ["a", "b"]}, geometry=[Point(0, 0), None], crs="EPSG:4326")
        is_valid, message = validate_input_geometry(gdf)
        assert not is_valid
        assert "null" in message


def test_extract_geometry_metadata(clinics_wgs84) -> None:
    metadata = extract_geometry_metadata(clinics_wgs84, "/data/clinics.geojson")

    assert metadata["original_file"] == "clinics.geojson"
    assert metadata["feature_count"] == 3
    assert metadata["geometry_type"] == "point"
    assert len(metadata["bounds"]) == 4


def test_geometry_families_merge_multipart(zips_wgs84) -> None:
    multi = gpd.GeoDataFrame(
        geometry=[box(0, 0, 1, 1), box(0, 0, 1, 1).union(box(3, 3, 4, 4))],
        crs="EPSG:3435",
    )
    assert geometry_families(multi) == {"polygon"}
    assert geometry_families(zips_wgs84) == {"polygon"}
