"""
acquisition.py
==============
Pick the one SAR scene a detection run works on.

Any object with a ``search(query)`` method returning :class:`Acquisition`
records can act as a catalog.  :class:`ManifestCatalog` is the local
implementation: a JSON manifest listing GeoTIFF scenes and their
metadata::

    {
      "scenes": [
        {"id": "S1A_20250708", "path": "s1a_20250708_vv.tif",
         "date": "2025-07-08T17:42:11", "orbit_pass": "DESCENDING",
         "instrument_mode": "IW", "polarisations": ["VV", "VH"],
         "bbox": [103.6, 1.15, 104.1, 1.35]}
      ]
    }

Relative paths resolve against the manifest's directory.  Band ``i`` of
the GeoTIFF holds ``polarisations[i - 1]``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Iterable, Protocol, Sequence

from shapely.geometry import box

from shared.python.exceptions import InputValidationError, NoAcquisitionAvailableError
from shared.python.validators import Validators

from sar_ship_detector.config import AcquisitionQuery
from sar_ship_detector.grid import RasterGrid, read_raster

logger = logging.getLogger("shipwatch.sar_ship_detector.acquisition")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Acquisition:
    """Metadata for one candidate scene.

    Attributes:
        scene_id: Catalog identifier.
        acquired: Acquisition start time (UTC, naive).
        orbit_pass: ``"ASCENDING"`` / ``"DESCENDING"``, or ``None`` if unknown.
        instrument_mode: e.g. ``"IW"``.
        polarisations: Bands in file order, e.g. ``("VV", "VH")``.
        path: GeoTIFF holding the scene in dB, or ``None`` for records
            that are not backed by a local file.
        bbox: Footprint ``(min_lon, min_lat, max_lon, max_lat)``, if known.
    """

    scene_id: str
    acquired: datetime
    orbit_pass: str | None = None
    instrument_mode: str = "IW"
    polarisations: tuple[str, ...] = ("VV",)
    path: Path | None = None
    bbox: tuple[float, float, float, float] | None = None

    @property
    def date(self) -> date:
        return self.acquired.date()

    def days_from(self, target: date) -> float:
        """Absolute distance in (fractional) days from midnight of *target*."""
        delta = self.acquired - datetime.combine(target, time.min)
        return abs(delta.total_seconds()) / 86400.0

    def load(self, polarisation: str = "VV") -> RasterGrid:
        """Read the *polarisation* band of this scene.

        Raises:
            InputValidationError: If the scene has no file or lacks the band.
        """
        if self.path is None:
            raise InputValidationError(f"Acquisition '{self.scene_id}' has no raster path.")
        if polarisation not in self.polarisations:
            raise InputValidationError(
                f"Acquisition '{self.scene_id}' has no {polarisation} band "
                f"(available: {', '.join(self.polarisations)})."
            )
        return read_raster(self.path, band=self.polarisations.index(polarisation) + 1)


class AcquisitionCatalog(Protocol):
    """Anything that can list candidate scenes for a query."""

    def search(self, query: AcquisitionQuery) -> list[Acquisition]:
        ...


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def matches(acquisition: Acquisition, query: AcquisitionQuery) -> bool:
    """``True`` if *acquisition* passes every filter of *query*."""
    start = query.target_date - timedelta(days=query.window_days)
    end = query.target_date + timedelta(days=query.window_days)
    if not start <= acquisition.date <= end:
        return False
    if acquisition.instrument_mode != query.instrument_mode:
        return False
    if query.polarisation not in acquisition.polarisations:
        return False
    if query.orbit_pass is not None and acquisition.orbit_pass != query.orbit_pass:
        return False
    if query.bbox is not None and acquisition.bbox is not None:
        if not box(*query.bbox).intersects(box(*acquisition.bbox)):
            return False
    return True


def filter_candidates(
    candidates: Iterable[Acquisition],
    query: AcquisitionQuery,
) -> list[Acquisition]:
    return [a for a in candidates if matches(a, query)]


def select_closest(
    candidates: Sequence[Acquisition],
    query: AcquisitionQuery,
) -> Acquisition:
    """Return the matching scene closest in time to ``query.target_date``.

    Ties keep catalog order.

    Raises:
        NoAcquisitionAvailableError: If no candidate matches the query.
    """
    eligible = filter_candidates(candidates, query)
    logger.info(
        "Candidates within ±%d days of %s: %d",
        query.window_days, query.target_date.isoformat(), len(eligible),
    )
    if not eligible:
        raise NoAcquisitionAvailableError(query.target_date, query.window_days, query.orbit_pass)

    logger.debug("Candidate times: %s", [a.acquired.isoformat() for a in eligible])
    ranked = sorted(eligible, key=lambda a: a.days_from(query.target_date))
    chosen = ranked[0]
    logger.info("Chosen acquisition: %s (%s)", chosen.scene_id, chosen.acquired.isoformat())
    return chosen


# ---------------------------------------------------------------------------
# Local manifest catalog
# ---------------------------------------------------------------------------


class ManifestCatalog:
    """Catalog backed by a JSON manifest of local GeoTIFF scenes.

    Args:
        manifest_path: JSON file with a ``"scenes"`` list (or a bare list).

    Raises:
        InputValidationError: If the manifest is missing or malformed.
    """

    SUPPORTED_EXTENSIONS = [".json"]

    def __init__(self, manifest_path: Path) -> None:
        self.manifest_path = Path(manifest_path)
        Validators.assert_file_exists(self.manifest_path)
        Validators.assert_supported_extension(self.manifest_path, self.SUPPORTED_EXTENSIONS)
        self._scenes = self._load()

    def _load(self) -> list[Acquisition]:
        try:
            raw = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise InputValidationError(
                f"Manifest '{self.manifest_path}' is not valid JSON: {exc}"
            ) from exc

        entries = raw.get("scenes", []) if isinstance(raw, dict) else raw
        if not isinstance(entries, list):
            raise InputValidationError(
                f"Manifest '{self.manifest_path}' must hold a list of scenes."
            )

        base = self.manifest_path.parent
        scenes = []
        for i, entry in enumerate(entries):
            try:
                path = Path(entry["path"])
                scenes.append(
                    Acquisition(
                        scene_id=str(entry.get("id", path.stem)),
                        acquired=datetime.fromisoformat(str(entry["date"])),
                        orbit_pass=entry.get("orbit_pass"),
                        instrument_mode=entry.get("instrument_mode", "IW"),
                        polarisations=tuple(entry.get("polarisations", ["VV"])),
                        path=path if path.is_absolute() else base / path,
                        bbox=tuple(entry["bbox"]) if entry.get("bbox") else None,
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise InputValidationError(
                    f"Manifest '{self.manifest_path}' scene #{i} is malformed: {exc}"
                ) from exc

        logger.debug("Loaded %d scenes from %s", len(scenes), self.manifest_path.name)
        return scenes

    @property
    def scenes(self) -> list[Acquisition]:
        return list(self._scenes)

    def search(self, query: AcquisitionQuery) -> list[Acquisition]:
        """Scenes matching *query*, in manifest order."""
        return filter_candidates(self._scenes, query)
