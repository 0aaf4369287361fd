"""
SAR Ship Detector: Configuration
=================================
Explicit, immutable parameter bundles for one detection run.

Classes:
    DetectionConfig     Thresholds, radii, and resource caps for the pipeline.
    AcquisitionQuery    Search window and filters for picking one scene.

Every pipeline invocation receives its own config value, so parameter
sweeps can run side by side::

    from dataclasses import replace

    base = DetectionConfig(water_occurrence_min=90, threshold_db=-2.0)
    sweep = [replace(base, min_length_m=m) for m in (20, 50, 80)]
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal

from shared.python.exceptions import ConfigurationError
from shared.python.validators import Validators

LimitPolicy = Literal["raise", "truncate"]
OrbitPass = Literal["ASCENDING", "DESCENDING"]

LIMIT_POLICIES = ("raise", "truncate")
ORBIT_PASSES = ("ASCENDING", "DESCENDING")


@dataclass(frozen=True)
class DetectionConfig:
    """Parameters for :class:`~sar_ship_detector.pipeline.ShipDetectionPipeline`.

    Attributes:
        water_occurrence_min: Minimum historical water occurrence (0-100)
            for a pixel to count as water.  80-95 suits ports and coasts;
            lower values only make sense offshore.
        threshold_db: Backscatter threshold in dB.  A pixel is a ship
            candidate when its intensity is strictly greater.
        min_length_m: Minimum bounding-box diagonal in metres for a
            candidate to survive the length filter.
        coast_erode_px: Radius in pixels used to erode the water mask
            away from coastlines.  ``0`` disables erosion.
        morph_radius_px: Radius in pixels for the closing-then-opening
            cleanup of the candidate mask.  ``0`` disables it.
        min_pixels: Minimum 8-connected component size kept by the
            speckle filter.
        connected_count_cap: Upper bound on the per-pixel component size
            reported by the speckle filter.  Components larger than this
            are reported as exactly the cap ("at least cap").
        vector_scale_m: Pixel size in metres used when tracing polygons.
            ``None`` traces at the native grid resolution, which for
            Sentinel-1 GRD is already 10 m.  Ignored (with a warning) on
            geographic grids.
        max_vector_pixels: Maximum number of candidate pixels the
            vectorizer may trace.
        vector_limit_policy: ``"raise"`` fails with
            :class:`~shared.python.exceptions.VectorizationLimitError` when
            the cap is exceeded; ``"truncate"`` keeps whole components in
            raster order until the cap is reached and flags the result
            as partial.
        region_simplify_m: Simplification tolerance (metres) applied to
            the region of interest before rasterizing.  Only used when
            the raster CRS is projected.
        region_buffer_m: Outward buffer (metres) applied to the region of
            interest after simplification.  Only used when the raster
            CRS is projected.
        tile_rows: Row height of tiles for per-pixel and neighbourhood
            operations.  Grids with fewer rows run as one tile.
        max_workers: Thread count for tiled operations.  ``None`` lets
            :class:`concurrent.futures.ThreadPoolExecutor` decide.
    """

    water_occurrence_min: float = 0.0
    threshold_db: float = 0.0
    min_length_m: float = 50.0
    coast_erode_px: int = 2
    morph_radius_px: int = 2
    min_pixels: int = 5
    connected_count_cap: int = 100
    vector_scale_m: float | None = None
    max_vector_pixels: int = 100_000_000
    vector_limit_policy: LimitPolicy = "raise"
    region_simplify_m: float = 10.0
    region_buffer_m: float = 1.0
    tile_rows: int = 1024
    max_workers: int | None = None

    def validate(self) -> None:
        """Check every parameter against its allowed range.

        Raises:
            ConfigurationError: On the first invalid parameter found.
        """
        Validators.assert_in_range("water_occurrence_min", self.water_occurrence_min, 0, 100)
        Validators.assert_in_range("threshold_db", self.threshold_db)
        Validators.assert_in_range("min_length_m", self.min_length_m, 0)
        Validators.assert_int_at_least("coast_erode_px", self.coast_erode_px, 0)
        Validators.assert_int_at_least("morph_radius_px", self.morph_radius_px, 0)
        Validators.assert_int_at_least("min_pixels", self.min_pixels, 1)
        Validators.assert_int_at_least("connected_count_cap", self.connected_count_cap, 1)
        if self.min_pixels > self.connected_count_cap:
            raise ConfigurationError(
                "min_pixels",
                self.min_pixels,
                f"a value <= connected_count_cap ({self.connected_count_cap})",
            )
        if self.vector_scale_m is not None:
            Validators.assert_in_range("vector_scale_m", self.vector_scale_m, 0)
            if self.vector_scale_m == 0:
                raise ConfigurationError("vector_scale_m", 0, "a positive pixel size")
        Validators.assert_int_at_least("max_vector_pixels", self.max_vector_pixels, 1)
        Validators.assert_choice("vector_limit_policy", self.vector_limit_policy, LIMIT_POLICIES)
        Validators.assert_in_range("region_simplify_m", self.region_simplify_m, 0)
        Validators.assert_in_range("region_buffer_m", self.region_buffer_m, 0)
        Validators.assert_int_at_least("tile_rows", self.tile_rows, 1)
        if self.max_workers is not None:
            Validators.assert_int_at_least("max_workers", self.max_workers, 1)


@dataclass(frozen=True)
class AcquisitionQuery:
    """Which scene to pick from a catalog.

    Attributes:
        target_date: Date (UTC) the search is centred on.
        window_days: Half-width of the search window.  Scenes acquired
            from ``target_date - window_days`` through
            ``target_date + window_days`` (whole days) are eligible.
        orbit_pass: ``"ASCENDING"``, ``"DESCENDING"``, or ``None`` for both.
        instrument_mode: Required acquisition mode, e.g. ``"IW"``.
        polarisation: Band that must be present, e.g. ``"VV"``.
        bbox: Optional ``(min_lon, min_lat, max_lon, max_lat)``; scenes
            whose footprint does not intersect it are skipped.
    """

    target_date: date
    window_days: int = 10
    orbit_pass: OrbitPass | None = None
    instrument_mode: str = "IW"
    polarisation: str = "VV"
    bbox: tuple[float, float, float, float] | None = None

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` if the window or pass filter is invalid."""
        Validators.assert_int_at_least("window_days", self.window_days, 0)
        if self.orbit_pass is not None:
            Validators.assert_choice("orbit_pass", self.orbit_pass, ORBIT_PASSES)
