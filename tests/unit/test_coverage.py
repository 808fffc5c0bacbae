"""Unit tests for geometry_input.coverage."""

import math

import geopandas as gpd
import pytest
from shapely.errors import GEOSException
from shapely.geometry import Point, Polygon, box

from core.exceptions import ProjectionError, SchemaError, UnitError
from geometry_input.coverage import clip_to_boundary, count_points_per_zone, summarize_coverage

UTM_16N = "EPSG:32616"


@pytest.fixture()
def zones_utm() -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {"zip": ["near", "far"]},
        geometry=[box(0, 0, 1000, 1000), box(5000, 0, 6000, 1000)],
        crs=UTM_16N,
    )


@pytest.fixture()
def disc_utm():
    return Point(500, 500).buffer(200, quad_segs=16)


class TestSummarizeCoverage:
    def test_percent_covered(self, zones_utm, disc_utm) -> None:
        summary = summarize_coverage(zones_utm, disc_utm, "zip")

        expected_pct = math.pi * 200 ** 2 / 1000 ** 2 * 100
        assert summary["pct_covered"].iloc[0] == pytest.approx(expected_pct, rel=0.01)
        assert summary["pct_covered"].iloc[1] == 0.0
        assert list(summary["covered"]) == [True, False]

    def test_columns_and_order(self, zones_utm, disc_utm) -> None:
        summary = summarize_coverage(zones_utm, disc_utm, "zip")
        assert list(summary["zip"]) == ["near", "far"]
        assert {"zone_area", "covered_area", "pct_covered", "covered"} <= set(summary.columns)

    def test_fully_covered_caps_at_100(self, zones_utm) -> None:
        summary = summarize_coverage(zones_utm, box(-10, -10, 7000, 1010), "zip")
        assert list(summary["pct_covered"]) == [100.0, 100.0]

    def test_missing_id_field(self, zones_utm, disc_utm) -> None:
        with pytest.raises(SchemaError, match="zcta"):
            summarize_coverage(zones_utm, disc_utm, "zcta")

    def test_self_intersecting_zone_is_repaired(self) -> None:
        bowtie = Polygon([(0, 0), (2000, 2000), (2000, 0), (0, 2000)])
        zones = gpd.GeoDataFrame(
            {"zip": ["bowtie", "far"]},
            geometry=[bowtie, box(5000, 0, 6000, 1000)],
            crs=UTM_16N,
        )
        disc = Point(500, 500).buffer(300, quad_segs=16)

        summary = summarize_coverage(zones, disc, "zip")

        # the repaired bowtie is two triangles; the disc centre sits on their shared diagonal
        assert summary["zone_area"].iloc[0] == pytest.approx(2000 ** 2 / 2)
        assert summary["covered_area"].iloc[0] == pytest.approx(disc.area / 2, rel=1e-6)
        assert summary.geometry.is_valid.all()
        assert list(summary["covered"]) == [True, False]

    def test_overlay_failure_is_wrapped(self, zones_utm, disc_utm, monkeypatch) -> None:
        def failing_intersection(self, other, *args, **kwargs):
            raise GEOSException("TopologyException: side location conflict")

        monkeypatch.setattr(gpd.GeoSeries, "intersection", failing_intersection)
        with pytest.raises(SchemaError, match="side location conflict") as exc_info:
            summarize_coverage(zones_utm, disc_utm, "zip")
        assert exc_info.value.stage == "coverage"

    def test_geographic_zones_rejected(self, zips_wgs84, disc_utm) -> None:
        with pytest.raises(UnitError):
            summarize_coverage(zips_wgs84, disc_utm, "zip")


class TestCountPointsPerZone:
    def test_counts(self, zones_utm) -> None:
        points = gpd.GeoDataFrame(geometry=[Point(100, 100), Point(900, 900), Point(3000, 500)], crs=UTM_16N)
        counted = count_points_per_zone(points, zones_utm, "zip")
        assert list(counted["point_count"]) == [2, 0]

    def test_crs_mismatch(self, zones_utm, clinics_wgs84) -> None:
        with pytest.raises(ProjectionError, match="same CRS"):
            count_points_per_zone(clinics_wgs84, zones_utm, "zip")

    def test_missing_id_field(self, zones_utm) -> None:
        points = gpd.GeoDataFrame(geometry=[Point(100, 100)], crs=UTM_16N)
        with pytest.raises(SchemaError):
            count_points_per_zone(points, zones_utm, "zcta")


class TestClipToBoundary:
    def test_clip_to_quadrant(self, disc_utm) -> None:
        clipped = clip_to_boundary(disc_utm, box(500, 500, 1000, 1000))
        assert clipped.area == pytest.approx(disc_utm.area / 4, rel=1e-6)

    def test_boundary_collection_is_dissolved(self, disc_utm) -> None:
        boundary = gpd.GeoDataFrame(
            geometry=[box(0, 0, 500, 1000), box(500, 0, 1000, 1000)],
            crs=UTM_16N,
        )
        assert clip_to_boundary(disc_utm, boundary).area == pytest.approx(disc_utm.area)

    def test_outside_boundary_is_empty(self, disc_utm) -> None:
        assert clip_to_boundary(disc_utm, box(5000, 5000, 6000, 6000)).is_empty
