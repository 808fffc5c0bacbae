"""Unit tests for geometry_input.buffering."""

import math
import warnings

import geopandas as gpd
import pytest
from shapely.geometry import Point, box

from core.exceptions import SchemaError, UnitError
from geometry_input.buffering import (
    calculate_buffer_area,
    convert_distance,
    buffer_points,
)


class TestBufferPoints:
    def test_area_within_one_percent(self, origin_point_ft) -> None:
        buffers = buffer_points(origin_point_ft, 5280)
        expected = math.pi * 5280 ** 2
        assert abs(buffers.geometry.iloc[0].area - expected) / expected < 0.01

    def test_default_vertex_count(self, origin_point_ft) -> None:
        disc = buffer_points(origin_point_ft, 100).geometry.iloc[0]
        # closed ring repeats the first vertex
        assert len(disc.exterior.coords) == 65

    def test_no_deprecated_buffer_arguments(self, origin_point_ft) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            warnings.simplefilter("error", FutureWarning)
            disc = buffer_points(origin_point_ft, 100).geometry.iloc[0]
        assert len(disc.exterior.coords) == 65

    def test_custom_vertex_count(self, origin_point_ft) -> None:
        disc = buffer_points(origin_point_ft, 100, vertices=32).geometry.iloc[0]
        assert len(disc.exterior.coords) == 33

    def test_buffers_contain_their_points(self, clinics_wgs84) -> None:
        points = clinics_wgs84.to_crs("EPSG:3435")
        buffers = buffer_points(points, 500)
        for point, disc in zip(points.geometry, buffers.geometry):
            assert disc.contains(point)

    def test_order_index_and_crs_preserved(self, clinics_wgs84) -> None:
        points = clinics_wgs84.to_crs("EPSG:3435").set_index("Name", drop=False)
        buffers = buffer_points(points, 500)
        assert list(buffers.index) == list(points.index)
        assert buffers.crs == points.crs
        assert (buffers.geom_type == "Polygon").all()

    def test_attributes_kept(self, clinics_wgs84) -> None:
        buffers = buffer_points(clinics_wgs84.to_crs("EPSG:3435"), 500)
        assert list(buffers["Zip"]) == ["60601", "60601", "60617"]

    def test_attributes_dropped(self, clinics_wgs84) -> None:
        buffers = buffer_points(clinics_wgs84.to_crs("EPSG:3435"), 500, keep_attributes=False)
        assert list(buffers.columns) == ["geometry"]
        assert len(buffers) == 3

    def test_source_not_modified(self, origin_point_ft) -> None:
        buffer_points(origin_point_ft, 100)
        assert origin_point_ft.geom_type.iloc[0] == "Point"

    def test_empty_collection(self) -> None:
        gdf = gpd.GeoDataFrame(geometry=gpd.GeoSeries([], dtype="geometry"), crs="EPSG:3435")
        assert buffer_points(gdf, 100).empty

    def test_angular_crs_rejected(self, clinics_wgs84) -> None:
        with pytest.raises(UnitError):
            buffer_points(clinics_wgs84, 0.01)

    def test_polygon_input_rejected(self) -> None:
        gdf = gpd.GeoDataFrame(geometry=[box(0, 0, 1, 1)], crs="EPSG:3435")
        with pytest.raises(SchemaError, match="Point") as exc_info:
            buffer_points(gdf, 10)
        assert exc_info.value.stage == "buffer"

    def test_null_geometry_rejected(self) -> None:
        gdf = gpd.GeoDataFrame(geometry=[Point(0, 0), None], crs="EPSG:3435")
        with pytest.raises(SchemaError, match="null"):
            buffer_points(gdf, 10)

    @pytest.mark.parametrize("radius", [0, -5, float("nan"), float("inf"), "wide"])
    def test_invalid_radius(self, origin_point_ft, radius) -> None:
        with pytest.raises(ValueError, match="radius"):
            buffer_points(origin_point_ft, radius)

    @pytest.mark.parametrize("vertices", [16, 30, 66])
    def test_invalid_vertex_count(self, origin_point_ft, vertices) -> None:
        with pytest.raises(ValueError, match="vertex"):
            buffer_points(origin_point_ft, 10, vertices=vertices)


class TestConvertDistance:
    def test_mile_to_us_feet(self) -> None:
        assert convert_distance(1, "mi", "EPSG:3435") == pytest.approx(5279.98944, rel=1e-6)

    def test_kilometres_to_metres(self) -> None:
        assert convert_distance(2.5, "km", "EPSG:32616") == pytest.approx(2500.0)

    def test_unknown_unit(self) -> None:
        with pytest.raises(ValueError, match="Unknown distance unit"):
            convert_distance(1, "furlong", "EPSG:32616")

    def test_angular_crs(self) -> None:
        with pytest.raises(UnitError):
            convert_distance(1, "mi", "EPSG:4326")


def test_calculate_buffer_area_square_mile() -> None:
    side = 1609.344
    area = calculate_buffer_area(box(0, 0, side, side), "EPSG:32616")

    assert area["crs_unit"] == "metre"
    assert area["area_sq_miles"] == pytest.approx(1.0, abs=1e-4)
    assert area["area_sq_km"] == pytest.approx(2.59, abs=1e-3)
