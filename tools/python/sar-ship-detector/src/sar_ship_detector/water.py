"""
water.py
========
Water mask from a historical water-occurrence raster (e.g. JRC Global
Surface Water ``occurrence``, values 0-100).

A pixel is water when ``occurrence >= water_occurrence_min`` and it lies
inside the region of interest.  The mask is then eroded inward from the
coast so mixed land/water pixels along shorelines cannot turn into
bright false detections.

Occurrence no-data counts as land: it is never water, and it erodes
neighbouring water like any other land pixel.  Pixels outside the
region are treated as unknown rather than land, so the region boundary
itself does not erode the mask.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from sar_ship_detector.grid import RasterGrid
from sar_ship_detector.morphology import erode
from sar_ship_detector.tiling import DEFAULT_TILE_ROWS

logger = logging.getLogger("shipwatch.sar_ship_detector.water")


@dataclass(frozen=True, eq=False)
class WaterMask:
    """Water mask before and after coastline erosion.

    Attributes:
        raw: Thresholded and region-clipped mask.
        eroded: ``raw`` after erosion; this is what the detector uses.
        erode_px: Radius that produced ``eroded``.
    """

    raw: RasterGrid
    eroded: RasterGrid
    erode_px: int

    @property
    def raw_pixels(self) -> int:
        return self.raw.true_count()

    @property
    def pixels(self) -> int:
        return self.eroded.true_count()

    @property
    def is_empty(self) -> bool:
        return self.pixels == 0


def threshold_occurrence(
    occurrence: RasterGrid,
    water_occurrence_min: float,
    inside: np.ndarray | None = None,
) -> RasterGrid:
    """Select pixels with ``occurrence >= water_occurrence_min``.

    Args:
        occurrence: Float grid with values in ``[0, 100]``, NaN for no-data.
        water_occurrence_min: Threshold in ``[0, 100]``.
        inside: Optional boolean region mask on the same grid.
    """
    values = occurrence.data
    with np.errstate(invalid="ignore"):
        water = np.isfinite(values) & (values >= water_occurrence_min)
    if inside is not None:
        water &= inside
    return occurrence.with_data(water)


def build_water_mask(
    occurrence: RasterGrid,
    water_occurrence_min: float,
    erode_px: int,
    inside: np.ndarray | None = None,
    tile_rows: int = DEFAULT_TILE_ROWS,
    max_workers: int | None = None,
) -> WaterMask:
    """Threshold the occurrence raster and erode the result from the coast.

    Args:
        occurrence: Water-occurrence grid (0-100, NaN no-data).
        water_occurrence_min: Minimum occurrence for water.
        erode_px: Coastline erosion radius in pixels (``0`` = none).
        inside: Region-of-interest mask; ``None`` means the whole grid.
        tile_rows: Strip height for tiled erosion.
        max_workers: Thread pool size for tiled erosion.

    Returns:
        A :class:`WaterMask` holding both the raw and the eroded mask.
    """
    raw = threshold_occurrence(occurrence, water_occurrence_min, inside)
    if erode_px == 0:
        eroded = raw
    else:
        # outside the region is "don't care", so it must not erode water
        outside = np.zeros(raw.shape, dtype=bool) if inside is None else ~inside
        eroded_data = erode(
            raw.data | outside, erode_px, tile_rows=tile_rows, max_workers=max_workers,
        ) & raw.data
        eroded = raw.with_data(eroded_data)

    mask = WaterMask(raw=raw, eroded=eroded, erode_px=erode_px)
    logger.debug(
        "Water mask: occurrence >= %g → %d px raw, %d px after %d px erosion",
        water_occurrence_min, mask.raw_pixels, mask.pixels, erode_px,
    )
    return mask
