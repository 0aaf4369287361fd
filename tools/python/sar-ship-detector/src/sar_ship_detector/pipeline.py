"""
pipeline.py
===========
Eager, single-acquisition ship detection pipeline.

Stages run strictly in order, each one a pure function over in-memory
rasters or vectors:

  1.  Water mask       (occurrence threshold, region clip, coast erosion)
  2.  Threshold        (water-restricted intensity > threshold_db)
  3.  Morphology       (closing, then opening)
  4.  Speckle filter   (drop 8-connected blobs below min_pixels)
  5.  Vectorize        (one polygon per surviving region)
  6.  Length filter    (bbox-diagonal proxy, centroid points)

Nothing is cached between runs, so independent acquisitions or parameter
sweeps can run concurrently on separate :class:`ShipDetectionPipeline`
instances or even on the same one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from shapely.geometry.base import BaseGeometry

from sar_ship_detector.acquisition import Acquisition, AcquisitionCatalog, select_closest
from sar_ship_detector.config import AcquisitionQuery, DetectionConfig
from sar_ship_detector.grid import WGS84, RasterGrid, prepare_region, region_mask, resample_to_grid
from sar_ship_detector.length import ShipCandidate, estimate_candidates, filter_by_length
from sar_ship_detector.morphology import clean_candidates
from sar_ship_detector.speckle import remove_speckle
from sar_ship_detector.threshold import threshold_intensity
from sar_ship_detector.vectorize import VectorizationResult, vectorize_mask
from sar_ship_detector.water import WaterMask, build_water_mask

logger = logging.getLogger("shipwatch.sar_ship_detector.pipeline")


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DetectionDiagnostics:
    """Per-stage counts for one run.

    ``water_mask_empty`` separates "no usable water" (check the occurrence
    threshold, erosion radius, or region) from "water present, no ships".
    """

    water_pixels_raw: int
    water_pixels: int
    candidate_pixels_threshold: int
    candidate_pixels_morphology: int
    candidate_pixels: int
    components: int
    components_kept: int
    polygons: int
    candidates_raw: int
    candidates_filtered: int
    vectorization_partial: bool = False
    dropped_components: int = 0

    @property
    def water_mask_empty(self) -> bool:
        return self.water_pixels == 0


@dataclass(eq=False)
class DetectionResult:
    """Everything one detection run produces."""

    acquisition_date: date
    water: WaterMask
    candidate_mask: RasterGrid
    vectors: VectorizationResult
    candidates_raw: list[ShipCandidate]
    candidates: list[ShipCandidate]
    diagnostics: DetectionDiagnostics
    config: DetectionConfig = field(repr=False)
    acquisition: Acquisition | None = None

    @property
    def polygons(self) -> list[BaseGeometry]:
        return self.vectors.polygons

    @property
    def partial(self) -> bool:
        return self.vectors.partial

    def summary(self) -> str:
        """One-line human-readable summary for logging or display."""
        d = self.diagnostics
        text = (
            f"{self.acquisition_date.isoformat()}: water={d.water_pixels:,} px, "
            f"candidates={d.candidate_pixels:,} px, polygons={d.polygons}, "
            f"ships raw={d.candidates_raw} / >= {self.config.min_length_m:g} m "
            f"= {d.candidates_filtered}"
        )
        if d.vectorization_partial:
            text += f" (PARTIAL: {d.dropped_components} regions dropped)"
        return text


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class ShipDetectionPipeline:
    """Run the six detection stages for one acquisition.

    Args:
        config: Detection parameters.  Validated on construction.

    Example::

        pipeline = ShipDetectionPipeline(DetectionConfig(threshold_db=0, min_length_m=20))
        result = pipeline.run(intensity, occurrence, date(2025, 7, 10))
        for ship in result.candidates:
            print(ship.centroid, ship.length_m)
    """

    def __init__(self, config: DetectionConfig | None = None) -> None:
        self.config = config or DetectionConfig()
        self.config.validate()

    def run(
        self,
        intensity: RasterGrid,
        occurrence: RasterGrid,
        acquisition_date: date,
        region: BaseGeometry | None = None,
        region_crs: object = WGS84,
    ) -> DetectionResult:
        """Detect ship candidates in one intensity raster.

        Args:
            intensity: Backscatter in dB (NaN no-data).
            occurrence: Water occurrence 0-100 on the same grid.
            acquisition_date: Date attached to every candidate.
            region: Region of interest; ``None`` uses the whole grid.
            region_crs: CRS of *region* (default WGS84).

        Returns:
            A :class:`DetectionResult`.

        Raises:
            GridAlignmentError: If *intensity* and *occurrence* are on
                different grids.  Raised before any stage runs.
            VectorizationLimitError: If the vectorization cap is
                exceeded under the ``"raise"`` policy.
        """
        intensity.assert_aligned_with(occurrence, "intensity", "occurrence")
        cfg = self.config
        tiling = dict(tile_rows=cfg.tile_rows, max_workers=cfg.max_workers)

        clip = None
        if region is not None:
            clip = prepare_region(
                region, region_crs, intensity, cfg.region_simplify_m, cfg.region_buffer_m,
            )
        inside = region_mask(clip, intensity)

        # -- 1. Water mask ------------------------------------------------
        water = build_water_mask(
            occurrence, cfg.water_occurrence_min, cfg.coast_erode_px, inside, **tiling,
        )
        if water.is_empty:
            logger.warning(
                "Water mask is empty (occurrence >= %g, %d px erosion; %d px before erosion). "
                "No ships can be detected; check the threshold, erosion radius, or region.",
                cfg.water_occurrence_min, cfg.coast_erode_px, water.raw_pixels,
            )
        else:
            logger.info("Water mask: %d px (%d before erosion)", water.pixels, water.raw_pixels)

        # -- 2. Threshold -------------------------------------------------
        raw_mask = threshold_intensity(intensity, water.eroded, cfg.threshold_db, **tiling)

        # -- 3. Morphology ------------------------------------------------
        cleaned = clean_candidates(raw_mask, cfg.morph_radius_px, **tiling)

        # -- 4. Speckle ---------------------------------------------------
        speckle = remove_speckle(cleaned, cfg.min_pixels, cfg.connected_count_cap)

        # -- 5. Vectorize -------------------------------------------------
        vectors = vectorize_mask(
            speckle.mask,
            region=clip,
            scale=cfg.vector_scale_m,
            max_pixels=cfg.max_vector_pixels,
            limit_policy=cfg.vector_limit_policy,
        )

        # -- 6. Length proxy + filter ------------------------------------
        raw = estimate_candidates(vectors.polygons, acquisition_date, vectors.crs)
        kept = filter_by_length(raw, cfg.min_length_m)

        diagnostics = DetectionDiagnostics(
            water_pixels_raw=water.raw_pixels,
            water_pixels=water.pixels,
            candidate_pixels_threshold=raw_mask.true_count(),
            candidate_pixels_morphology=cleaned.true_count(),
            candidate_pixels=speckle.mask.true_count(),
            components=speckle.components,
            components_kept=speckle.kept,
            polygons=len(vectors.polygons),
            candidates_raw=len(raw),
            candidates_filtered=len(kept),
            vectorization_partial=vectors.partial,
            dropped_components=vectors.dropped_components,
        )
        if not water.is_empty and not kept:
            logger.info("Water present but no ship candidates >= %g m.", cfg.min_length_m)
        logger.info("Ship candidates (raw): %d", len(raw))
        logger.info("Ship candidates (>= %g m): %d", cfg.min_length_m, len(kept))

        return DetectionResult(
            acquisition_date=acquisition_date,
            water=water,
            candidate_mask=speckle.mask,
            vectors=vectors,
            candidates_raw=raw,
            candidates=kept,
            diagnostics=diagnostics,
            config=cfg,
        )


def detect_from_catalog(
    catalog: AcquisitionCatalog,
    query: AcquisitionQuery,
    occurrence: RasterGrid,
    config: DetectionConfig | None = None,
    region: BaseGeometry | None = None,
    region_crs: object = WGS84,
    resample_occurrence: bool = False,
) -> DetectionResult:
    """Pick the closest scene from *catalog*, then run the pipeline on it.

    The acquisition check happens first: when the window is empty no
    raster is read and no stage runs.

    Args:
        catalog: Source of candidate scenes.
        query: Target date, window, and filters.
        occurrence: Water-occurrence grid.
        config: Detection parameters.
        region: Region of interest.
        region_crs: CRS of *region*.
        resample_occurrence: Resample *occurrence* onto the scene's grid
            (nearest neighbour) instead of requiring it to be aligned.

    Raises:
        NoAcquisitionAvailableError: If no scene matches *query*.
    """
    query.validate()
    pipeline = ShipDetectionPipeline(config)
    acquisition = select_closest(catalog.search(query), query)
    intensity = acquisition.load(query.polarisation)
    if resample_occurrence:
        occurrence = resample_to_grid(occurrence, intensity)
    result = pipeline.run(intensity, occurrence, acquisition.date, region, region_crs)
    result.acquisition = acquisition
    return result

