"""
Tests: Acquisition Selection
============================
Closest-in-time scene selection, the search filters, and the JSON
manifest catalog.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path

import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin

from sar_ship_detector.acquisition import Acquisition, ManifestCatalog, select_closest
from sar_ship_detector.config import AcquisitionQuery
from shared.python.exceptions import (
    ConfigurationError,
    InputValidationError,
    NoAcquisitionAvailableError,
)

TARGET = date(2025, 7, 10)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _scene(scene_id: str, when: str, **kwargs) -> Acquisition:
    return Acquisition(scene_id=scene_id, acquired=datetime.fromisoformat(when), **kwargs)


def _write_scene(path: Path, bands: int = 2) -> None:
    data = np.stack([np.full((4, 4), -10.0 - i, dtype=np.float32) for i in range(bands)])
    with rasterio.open(
        path, "w", driver="GTiff", height=4, width=4, count=bands, dtype="float32",
        crs="EPSG:32631", transform=from_origin(500_000, 4_000_000, 10, 10),
    ) as dst:
        dst.write(data)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


class TestSelectClosest:
    def test_closest_scene_in_window_wins(self) -> None:
        scenes = [
            _scene("a", "2025-07-01T10:00:00"),
            _scene("b", "2025-07-12T06:00:00"),
            _scene("c", "2025-07-21T10:00:00"),
        ]
        chosen = select_closest(scenes, AcquisitionQuery(TARGET, window_days=10))
        assert chosen.scene_id == "b"

    def test_result_is_within_window(self) -> None:
        scenes = [_scene("far", "2025-06-01T00:00:00"), _scene("near", "2025-07-15T00:00:00")]
        query = AcquisitionQuery(TARGET, window_days=5)
        chosen = select_closest(scenes, query)
        assert abs((chosen.date - TARGET).days) <= query.window_days

    def test_window_is_inclusive_of_whole_end_day(self) -> None:
        scenes = [_scene("edge", "2025-07-20T23:00:00")]
        assert select_closest(scenes, AcquisitionQuery(TARGET, window_days=10)).scene_id == "edge"

    def test_day_after_window_is_excluded(self) -> None:
        scenes = [_scene("late", "2025-07-21T00:30:00")]
        with pytest.raises(NoAcquisitionAvailableError):
            select_closest(scenes, AcquisitionQuery(TARGET, window_days=10))

    def test_ties_keep_catalog_order(self) -> None:
        scenes = [_scene("before", "2025-07-09T00:00:00"), _scene("after", "2025-07-11T00:00:00")]
        assert select_closest(scenes, AcquisitionQuery(TARGET)).scene_id == "before"

    def test_orbit_pass_filter(self) -> None:
        scenes = [
            _scene("asc", "2025-07-10T06:00:00", orbit_pass="ASCENDING"),
            _scene("desc", "2025-07-11T18:00:00", orbit_pass="DESCENDING"),
        ]
        query = AcquisitionQuery(TARGET, orbit_pass="DESCENDING")
        assert select_closest(scenes, query).scene_id == "desc"

    def test_missing_polarisation_is_skipped(self) -> None:
        scenes = [
            _scene("vh", "2025-07-10T06:00:00", polarisations=("VH",)),
            _scene("vv", "2025-07-13T06:00:00", polarisations=("VV", "VH")),
        ]
        assert select_closest(scenes, AcquisitionQuery(TARGET)).scene_id == "vv"

    def test_other_instrument_mode_is_skipped(self) -> None:
        scenes = [
            _scene("ew", "2025-07-10T06:00:00", instrument_mode="EW"),
            _scene("iw", "2025-07-12T06:00:00"),
        ]
        assert select_closest(scenes, AcquisitionQuery(TARGET)).scene_id == "iw"

    def test_footprint_must_intersect_bbox(self) -> None:
        scenes = [
            _scene("elsewhere", "2025-07-10T06:00:00", bbox=(10.0, 50.0, 11.0, 51.0)),
            _scene("here", "2025-07-12T06:00:00", bbox=(103.5, 1.0, 104.5, 2.0)),
        ]
        query = AcquisitionQuery(TARGET, bbox=(103.6, 1.15, 104.1, 1.35))
        assert select_closest(scenes, query).scene_id == "here"

    def test_empty_window_raises_with_details(self) -> None:
        with pytest.raises(NoAcquisitionAvailableError) as excinfo:
            select_closest([], AcquisitionQuery(TARGET, window_days=3, orbit_pass="ASCENDING"))
        err = excinfo.value
        assert err.target_date == TARGET
        assert err.window_days == 3
        assert err.orbit_pass == "ASCENDING"

    def test_invalid_pass_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            AcquisitionQuery(TARGET, orbit_pass="SIDEWAYS").validate()  # type: ignore[arg-type]

    def test_negative_window_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            AcquisitionQuery(TARGET, window_days=-1).validate()


# ---------------------------------------------------------------------------
# Manifest catalog
# ---------------------------------------------------------------------------


class TestManifestCatalog:
    def test_loads_scenes_and_resolves_relative_paths(self, tmp_path: Path) -> None:
        _write_scene(tmp_path / "scene.tif")
        manifest = tmp_path / "scenes.json"
        manifest.write_text(json.dumps({"scenes": [{
            "id": "S1A_20250712", "path": "scene.tif", "date": "2025-07-12T06:00:00",
            "orbit_pass": "DESCENDING", "polarisations": ["VV", "VH"],
        }]}))

        catalog = ManifestCatalog(manifest)
        [scene] = catalog.scenes
        assert scene.path == tmp_path / "scene.tif"
        assert scene.polarisations == ("VV", "VH")
        assert catalog.search(AcquisitionQuery(TARGET)) == [scene]

    def test_load_reads_polarisation_band(self, tmp_path: Path) -> None:
        _write_scene(tmp_path / "scene.tif")
        scene = _scene(
            "s", "2025-07-12T06:00:00", polarisations=("VV", "VH"), path=tmp_path / "scene.tif",
        )
        assert np.all(scene.load("VV").data == -10.0)
        assert np.all(scene.load("VH").data == -11.0)

    def test_load_without_band_raises(self, tmp_path: Path) -> None:
        scene = _scene("s", "2025-07-12T06:00:00", path=tmp_path / "scene.tif")
        with pytest.raises(InputValidationError):
            scene.load("HH")

    def test_bare_list_manifest(self, tmp_path: Path) -> None:
        manifest = tmp_path / "scenes.json"
        manifest.write_text(json.dumps([{"path": "a.tif", "date": "2025-07-09"}]))
        [scene] = ManifestCatalog(manifest).scenes
        assert scene.scene_id == "a"
        assert scene.date == date(2025, 7, 9)

    def test_malformed_entry_raises(self, tmp_path: Path) -> None:
        manifest = tmp_path / "scenes.json"
        manifest.write_text(json.dumps({"scenes": [{"path": "a.tif"}]}))
        with pytest.raises(InputValidationError):
            ManifestCatalog(manifest)

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        manifest = tmp_path / "scenes.json"
        manifest.write_text("{not json")
        with pytest.raises(InputValidationError):
            ManifestCatalog(manifest)
