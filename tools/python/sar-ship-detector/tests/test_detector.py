"""
Tests: Ship Detector Tool and CLI
=================================
Uses small synthetic GeoTIFFs written to pytest's ``tmp_path`` so no
real Sentinel-1 or water-occurrence data is needed.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import numpy as np
import pytest
import rasterio
from click.testing import CliRunner
from rasterio.transform import from_origin

from sar_ship_detector.cli import EXIT_NO_ACQUISITION, main
from sar_ship_detector.config import AcquisitionQuery, DetectionConfig
from sar_ship_detector.detector import DATE_TAG, ShipDetectorTool
from shared.python.exceptions import (
    BandIndexError,
    InputValidationError,
    NoAcquisitionAvailableError,
)

CRS_UTM31 = "EPSG:32631"

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _write(path: Path, data: np.ndarray, pixel: float, tags: dict | None = None) -> Path:
    with rasterio.open(
        path, "w", driver="GTiff", height=data.shape[0], width=data.shape[1], count=1,
        dtype="float32", crs=CRS_UTM31, transform=from_origin(500_000, 4_000_000, pixel, pixel),
    ) as dst:
        dst.write(data.astype(np.float32), 1)
        if tags:
            dst.update_tags(**tags)
    return path


@pytest.fixture()
def intensity_tif(tmp_path: Path) -> Path:
    """10 m sea scene with one 3x3 bright target, dated via tag."""
    data = np.full((20, 20), -12.0, dtype=np.float32)
    data[8:11, 8:11] = 4.0
    return _write(tmp_path / "s1_vv_db.tif", data, 10.0, {DATE_TAG: "2025-07-10T17:42:11"})


@pytest.fixture()
def occurrence_tif(tmp_path: Path) -> Path:
    """20 m water-occurrence raster covering the same extent."""
    return _write(tmp_path / "occurrence.tif", np.full((10, 10), 95.0), 20.0)


@pytest.fixture()
def config() -> DetectionConfig:
    return DetectionConfig(
        water_occurrence_min=90, threshold_db=0.0, min_length_m=20.0,
        morph_radius_px=0, min_pixels=5,
    )


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------


class TestShipDetectorTool:
    def test_run_writes_every_output(
        self, tmp_path: Path, intensity_tif: Path, occurrence_tif: Path, config: DetectionConfig,
    ) -> None:
        out = tmp_path / "out"
        tool = ShipDetectorTool(intensity_tif, out, occurrence_tif, config)
        tool.run()

        assert set(tool.output_files) == {"candidates", "polygons", "mask", "diagnostics", "quicklook"}
        assert all(p.exists() for p in tool.output_files.values())
        assert tool.result is not None
        assert tool.result.acquisition_date == date(2025, 7, 10)

    def test_candidates_are_wgs84_points(
        self, tmp_path: Path, intensity_tif: Path, occurrence_tif: Path, config: DetectionConfig,
    ) -> None:
        tool = ShipDetectorTool(intensity_tif, tmp_path / "out", occurrence_tif, config, quicklook=False)
        tool.run()

        collection = json.loads(tool.output_files["candidates"].read_text())
        [feature] = collection["features"]
        lon, lat = feature["geometry"]["coordinates"]
        assert lon == pytest.approx(3.0, abs=0.01)
        assert 36.0 < lat < 36.3
        assert feature["properties"] == {"acq_date": "2025-07-10", "length_m": 42.43}
        assert "quicklook" not in tool.output_files

    def test_mask_classes(
        self, tmp_path: Path, intensity_tif: Path, occurrence_tif: Path, config: DetectionConfig,
    ) -> None:
        tool = ShipDetectorTool(intensity_tif, tmp_path / "out", occurrence_tif, config, quicklook=False)
        tool.run()

        with rasterio.open(tool.output_files["mask"]) as src:
            layer = src.read(1)
            assert src.tags()["ACQUISITION_DATE"] == "2025-07-10"
        assert layer[9, 9] == 2
        assert layer[0, 0] == 1
        assert int((layer == 2).sum()) == 9

    def test_diagnostics_json(
        self, tmp_path: Path, intensity_tif: Path, occurrence_tif: Path, config: DetectionConfig,
    ) -> None:
        tool = ShipDetectorTool(intensity_tif, tmp_path / "out", occurrence_tif, config, quicklook=False)
        tool.run()

        payload = json.loads(tool.output_files["diagnostics"].read_text())
        assert payload["diagnostics"]["candidates_filtered"] == 1
        assert payload["diagnostics"]["water_mask_empty"] is False
        assert payload["config"]["water_occurrence_min"] == 90
        assert payload["acquisition_id"] is None

    def test_explicit_date_overrides_tag(
        self, tmp_path: Path, intensity_tif: Path, occurrence_tif: Path, config: DetectionConfig,
    ) -> None:
        tool = ShipDetectorTool(
            intensity_tif, tmp_path / "out", occurrence_tif, config,
            acquisition_date=date(2025, 7, 11), quicklook=False,
        )
        tool.run()
        assert tool.result.candidates[0].acquisition_date == date(2025, 7, 11)

    def test_missing_date_raises(self, tmp_path: Path, occurrence_tif: Path) -> None:
        undated = _write(tmp_path / "undated.tif", np.zeros((4, 4)), 10.0)
        tool = ShipDetectorTool(undated, tmp_path / "out", occurrence_tif)
        with pytest.raises(InputValidationError):
            tool.run()

    def test_missing_input_raises(self, tmp_path: Path, occurrence_tif: Path) -> None:
        tool = ShipDetectorTool(tmp_path / "nope.tif", tmp_path / "out", occurrence_tif)
        with pytest.raises(InputValidationError):
            tool.run()

    def test_bad_band_raises(self, tmp_path: Path, intensity_tif: Path, occurrence_tif: Path) -> None:
        tool = ShipDetectorTool(intensity_tif, tmp_path / "out", occurrence_tif, band=3)
        with pytest.raises(BandIndexError):
            tool.run()

    def test_manifest_needs_query(self, tmp_path: Path, occurrence_tif: Path) -> None:
        manifest = tmp_path / "scenes.json"
        manifest.write_text(json.dumps({"scenes": []}))
        tool = ShipDetectorTool(manifest, tmp_path / "out", occurrence_tif)
        with pytest.raises(InputValidationError):
            tool.run()

    def test_process_without_date_raises(self, tmp_path: Path, occurrence_tif: Path) -> None:
        undated = _write(tmp_path / "undated.tif", np.zeros((4, 4)), 10.0)
        tool = ShipDetectorTool(undated, tmp_path / "out", occurrence_tif)
        with pytest.raises(InputValidationError, match="validate_inputs"):
            tool.process()

    def test_process_manifest_without_query_raises(self, tmp_path: Path, occurrence_tif: Path) -> None:
        manifest = tmp_path / "scenes.json"
        manifest.write_text(json.dumps({"scenes": []}))
        tool = ShipDetectorTool(manifest, tmp_path / "out", occurrence_tif)
        with pytest.raises(InputValidationError, match="acquisition query"):
            tool.process()

    def test_manifest_picks_scene(
        self, tmp_path: Path, intensity_tif: Path, occurrence_tif: Path, config: DetectionConfig,
    ) -> None:
        manifest = tmp_path / "scenes.json"
        manifest.write_text(json.dumps({"scenes": [
            {"id": "S1A_0701", "path": "missing.tif", "date": "2025-07-01T17:42:00"},
            {"id": "S1A_0710", "path": intensity_tif.name, "date": "2025-07-10T17:42:11"},
        ]}))
        tool = ShipDetectorTool(
            manifest, tmp_path / "out", occurrence_tif, config,
            query=AcquisitionQuery(date(2025, 7, 9), window_days=5), quicklook=False,
        )
        tool.run()

        assert tool.result.acquisition.scene_id == "S1A_0710"
        payload = json.loads(tool.output_files["diagnostics"].read_text())
        assert payload["acquisition_id"] == "S1A_0710"

    def test_manifest_without_match_raises(
        self, tmp_path: Path, occurrence_tif: Path,
    ) -> None:
        manifest = tmp_path / "scenes.json"
        manifest.write_text(json.dumps({"scenes": [{"path": "a.tif", "date": "2025-01-01"}]}))
        tool = ShipDetectorTool(
            manifest, tmp_path / "out", occurrence_tif,
            query=AcquisitionQuery(date(2025, 7, 10)),
        )
        with pytest.raises(NoAcquisitionAvailableError):
            tool.run()
        assert not (tmp_path / "out" / "ships_candidates.geojson").exists()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestCli:
    def test_single_scene_run(self, tmp_path: Path, intensity_tif: Path, occurrence_tif: Path) -> None:
        out = tmp_path / "cli_out"
        result = CliRunner().invoke(main, [
            "--intensity", str(intensity_tif),
            "--occurrence", str(occurrence_tif),
            "--output-dir", str(out),
            "--water-occ-min", "90", "--min-length", "20",
            "--morph-radius", "0", "--no-quicklook",
        ])
        assert result.exit_code == 0, result.output
        assert "ships raw=1" in result.output
        assert (out / "ships_candidates.geojson").exists()
        assert not (out / "ships_quicklook.png").exists()

    def test_no_acquisition_exit_code(self, tmp_path: Path, occurrence_tif: Path) -> None:
        manifest = tmp_path / "scenes.json"
        manifest.write_text(json.dumps({"scenes": [{"path": "a.tif", "date": "2025-01-01"}]}))
        result = CliRunner().invoke(main, [
            "--manifest", str(manifest),
            "--target-date", "2025-07-10",
            "--occurrence", str(occurrence_tif),
            "--output-dir", str(tmp_path / "cli_out"),
        ])
        assert result.exit_code == EXIT_NO_ACQUISITION
        assert "No acquisition" in result.output

    def test_intensity_and_manifest_are_exclusive(self, tmp_path: Path, occurrence_tif: Path) -> None:
        result = CliRunner().invoke(main, [
            "--occurrence", str(occurrence_tif),
            "--output-dir", str(tmp_path / "cli_out"),
        ])
        assert result.exit_code != 0
        assert "exactly one" in result.output

    def test_bad_parameter_exit_code(
        self, tmp_path: Path, intensity_tif: Path, occurrence_tif: Path,
    ) -> None:
        result = CliRunner().invoke(main, [
            "--intensity", str(intensity_tif),
            "--occurrence", str(occurrence_tif),
            "--output-dir", str(tmp_path / "cli_out"),
            "--water-occ-min", "150",
        ])
        assert result.exit_code == 1
        assert "water_occurrence_min" in result.output
