"""End-to-end tests for the service_area_mapper entry points."""

from pathlib import Path

import geopandas as gpd
import pytest
from shapely.geometry import box

import service_area_mapper
from utils.logger import setup_logging


@pytest.fixture(autouse=True)
def logs_in_tmp(tmp_path: Path, monkeypatch):
    log_dir = tmp_path / "logs"
    monkeypatch.setattr(service_area_mapper, "setup_logging", lambda: setup_logging(log_dir=log_dir))
    return log_dir


class TestMain:
    def test_success(self, tmp_path: Path, clinics_geojson, zips_shapefile, boundary_geojson) -> None:
        output_path = service_area_mapper.main(
            str(clinics_geojson),
            zones_file=str(zips_shapefile),
            boundary_file=str(boundary_geojson),
            output_name="clinics",
            output_dir=tmp_path / "outputs",
        )

        assert output_path == tmp_path / "outputs" / "clinics"
        assert (output_path / "index.html").exists()
        assert (output_path / "metadata.json").exists()

    def test_failure_returns_none(self, tmp_path: Path, logs_in_tmp: Path) -> None:
        result = service_area_mapper.main(str(tmp_path / "missing.geojson"), output_dir=tmp_path / "outputs")

        assert result is None
        log_text = "".join(p.read_text(encoding="utf-8") for p in logs_in_tmp.glob("*.log"))
        assert "WORKFLOW FAILED" in log_text
        assert "Failed stage: load (FormatError)" in log_text


class TestMainChoropleth:
    def test_success(self, tmp_path: Path) -> None:
        regions = gpd.GeoDataFrame(
            {
                "NAME": ["Cook", "DuPage", "Lake", "Will"],
                "hispanic": [1300, 150, 160, 130],
                "total": [5200, 930, 710, 690],
            },
            geometry=[box(i, 41, i + 1, 42) for i in range(-91, -87)],
            crs="EPSG:4326",
        )
        regions_file = tmp_path / "counties.geojson"
        regions.to_file(regions_file, driver="GeoJSON")

        output_path = service_area_mapper.main_choropleth(
            str(regions_file), "hispanic", "total",
            scheme="equal_interval", output_name="choropleth",
            render_mode="plot", output_dir=tmp_path / "outputs",
        )

        assert (output_path / "map.png").exists()
        regions_layer = output_path / "data" / "regions.gpkg"
        assert regions_layer.exists()
        assert not (output_path / "data" / "regions.shp").exists()
        assert "pct_hispanic" in gpd.read_file(regions_layer).columns

    def test_bad_column_returns_none(self, tmp_path: Path, clinics_geojson) -> None:
        assert service_area_mapper.main_choropleth(
            str(clinics_geojson), "hispanic", "total", output_dir=tmp_path / "outputs"
        ) is None
