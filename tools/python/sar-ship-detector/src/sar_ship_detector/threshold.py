"""
threshold.py
============
Restrict the backscatter raster to water and pick out bright pixels.

Pixels outside the water mask are set to no-data first, so they can
never become candidates whatever their intensity.  A candidate is a
water pixel whose intensity (dB) is strictly greater than the threshold.
"""

from __future__ import annotations

import logging

import numpy as np

from sar_ship_detector.grid import RasterGrid
from sar_ship_detector.tiling import DEFAULT_TILE_ROWS, apply_tiled

logger = logging.getLogger("shipwatch.sar_ship_detector.threshold")


def mask_to_water(intensity: RasterGrid, water: RasterGrid) -> RasterGrid:
    """Return *intensity* with every non-water pixel set to NaN.

    Raises:
        GridAlignmentError: If the two grids are not aligned.
    """
    intensity.assert_aligned_with(water, "intensity", "water mask")
    restricted = np.where(water.data, intensity.data, np.nan).astype(np.float32)
    return intensity.with_data(restricted)


def threshold_intensity(
    intensity: RasterGrid,
    water: RasterGrid,
    threshold_db: float,
    tile_rows: int = DEFAULT_TILE_ROWS,
    max_workers: int | None = None,
) -> RasterGrid:
    """Raw candidate mask: water pixels brighter than *threshold_db*.

    Args:
        intensity: Single-band backscatter grid in dB, NaN for no-data.
        water: Boolean water mask aligned with *intensity*.
        threshold_db: Strict lower bound on candidate intensity.
        tile_rows: Strip height for tiled execution.
        max_workers: Thread pool size for tiled execution.

    Raises:
        GridAlignmentError: If the two grids are not aligned.
    """
    restricted = mask_to_water(intensity, water)

    def _bright(values: np.ndarray) -> np.ndarray:
        with np.errstate(invalid="ignore"):
            return np.isfinite(values) & (values > threshold_db)

    candidates = apply_tiled(
        _bright, restricted.data, tile_rows=tile_rows, max_workers=max_workers,
    )
    logger.debug(
        "Threshold > %g dB: %d candidate px of %d water px",
        threshold_db, int(np.count_nonzero(candidates)), water.true_count(),
    )
    return intensity.with_data(candidates)
