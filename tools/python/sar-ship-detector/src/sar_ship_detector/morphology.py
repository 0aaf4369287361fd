"""
morphology.py
=============
Binary erosion / dilation over a disk neighbourhood, and the
closing-then-opening cleanup applied to the candidate mask.

Neighbourhood
-------------
A pixel belongs to the radius-``r`` neighbourhood when its centre lies
within ``r`` pixels of the centre pixel (``dx² + dy² <= r²``).  Radius 0
is the centre pixel alone, so both operations become the identity.

Grid edges
----------
Pixels beyond the grid edge are ignored: erosion treats them as ``True``
and dilation as ``False``.  With this pairing erosion and dilation are
adjoint on the finite grid, which is what makes opening, closing, and
the close-then-open filter idempotent right up to the edge.
"""

from __future__ import annotations

import logging
from functools import lru_cache

import numpy as np
from scipy.ndimage import binary_dilation, binary_erosion

from sar_ship_detector.grid import RasterGrid
from sar_ship_detector.tiling import DEFAULT_TILE_ROWS, apply_tiled

logger = logging.getLogger("shipwatch.sar_ship_detector.morphology")


@lru_cache(maxsize=16)
def disk_footprint(radius: int) -> np.ndarray:
    """Boolean ``(2r+1, 2r+1)`` disk used by every morphological operation."""
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")
    y, x = np.ogrid[-radius: radius + 1, -radius: radius + 1]
    footprint = (x * x + y * y) <= radius * radius
    footprint.setflags(write=False)
    return footprint


def erode(
    mask: np.ndarray,
    radius: int,
    tile_rows: int = DEFAULT_TILE_ROWS,
    max_workers: int | None = None,
) -> np.ndarray:
    """Keep a pixel only if every in-grid pixel of its neighbourhood is set."""
    mask = np.asarray(mask, dtype=bool)
    if radius == 0:
        return mask.copy()
    footprint = disk_footprint(radius)

    def _erode(strip: np.ndarray) -> np.ndarray:
        return binary_erosion(strip, structure=footprint, border_value=1)

    return apply_tiled(_erode, mask, halo=radius, tile_rows=tile_rows, max_workers=max_workers)


def dilate(
    mask: np.ndarray,
    radius: int,
    tile_rows: int = DEFAULT_TILE_ROWS,
    max_workers: int | None = None,
) -> np.ndarray:
    """Set a pixel if any pixel of its neighbourhood is set."""
    mask = np.asarray(mask, dtype=bool)
    if radius == 0:
        return mask.copy()
    footprint = disk_footprint(radius)

    def _dilate(strip: np.ndarray) -> np.ndarray:
        return binary_dilation(strip, structure=footprint, border_value=0)

    return apply_tiled(_dilate, mask, halo=radius, tile_rows=tile_rows, max_workers=max_workers)


def closing(mask: np.ndarray, radius: int, **tiling) -> np.ndarray:
    """Dilate then erode: fills gaps and merges nearby fragments."""
    return erode(dilate(mask, radius, **tiling), radius, **tiling)


def opening(mask: np.ndarray, radius: int, **tiling) -> np.ndarray:
    """Erode then dilate: strips thin protrusions and isolated pixels."""
    return dilate(erode(mask, radius, **tiling), radius, **tiling)


def clean_candidates(
    candidates: RasterGrid,
    radius: int,
    tile_rows: int = DEFAULT_TILE_ROWS,
    max_workers: int | None = None,
) -> RasterGrid:
    """Smooth a candidate mask with a closing followed by an opening.

    Closing runs first so small real targets are consolidated before the
    opening gets a chance to erase them.  Radius 0 passes the mask
    through unchanged.

    Args:
        candidates: Boolean candidate mask.
        radius: Neighbourhood radius in pixels (``>= 0``).
        tile_rows: Strip height for tiled execution.
        max_workers: Thread pool size for tiled execution.

    Returns:
        The cleaned mask on the same grid.
    """
    if radius == 0:
        logger.debug("Morphological cleanup disabled (radius 0).")
        return candidates
    tiling = dict(tile_rows=tile_rows, max_workers=max_workers)
    closed = closing(candidates.data, radius, **tiling)
    cleaned = opening(closed, radius, **tiling)
    logger.debug(
        "Morphology r=%d: %d → %d candidate px",
        radius, int(np.count_nonzero(candidates.data)), int(np.count_nonzero(cleaned)),
    )
    return candidates.with_data(cleaned)
