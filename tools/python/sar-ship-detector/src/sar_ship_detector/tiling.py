"""
tiling.py
=========
Row-tile execution for per-pixel and neighbourhood raster operations.

The grid is cut into full-width horizontal strips.  Each strip is
processed together with ``halo`` extra rows above and below, and only the
strip's own rows are kept, so any operation whose footprint reaches at
most ``halo`` rows gives exactly the same answer as a whole-grid pass.

Connected-component labeling must NOT go through here: a component that
spans a strip boundary would be split.  Labeling runs as one pass over
the full grid in :mod:`~sar_ship_detector.speckle`.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import numpy as np

logger = logging.getLogger("shipwatch.sar_ship_detector.tiling")

DEFAULT_TILE_ROWS = 1024


def row_spans(rows: int, tile_rows: int) -> list[tuple[int, int]]:
    """Split ``range(rows)`` into consecutive ``(start, stop)`` spans."""
    return [(start, min(start + tile_rows, rows)) for start in range(0, rows, tile_rows)]


def apply_tiled(
    func: Callable[..., np.ndarray],
    *arrays: np.ndarray,
    halo: int = 0,
    tile_rows: int = DEFAULT_TILE_ROWS,
    max_workers: int | None = None,
) -> np.ndarray:
    """Apply *func* strip by strip over one or more equally shaped arrays.

    Args:
        func: Called as ``func(*strips)``; must return an array with the
            same number of rows as the strips it receives.
        *arrays: 2-D input arrays sharing one shape.
        halo: Rows of context added on each side of every strip.  Must be
            at least the vertical reach of *func*'s neighbourhood.
        tile_rows: Strip height.  Inputs with this many rows or fewer
            run in a single call.
        max_workers: Thread pool size (``None`` = executor default).

    Returns:
        The strip results stacked back into one array.
    """
    if not arrays:
        raise ValueError("apply_tiled() needs at least one array.")
    rows = arrays[0].shape[0]
    if any(a.shape != arrays[0].shape for a in arrays):
        raise ValueError("apply_tiled() arrays must share one shape.")
    if rows <= tile_rows:
        return func(*arrays)

    spans = row_spans(rows, tile_rows)

    def _run(span: tuple[int, int]) -> np.ndarray:
        start, stop = span
        lo = max(0, start - halo)
        hi = min(rows, stop + halo)
        result = func(*(a[lo:hi] for a in arrays))
        return result[start - lo: stop - lo]

    logger.debug("Running %s over %d strips (halo=%d)", getattr(func, "__name__", func), len(spans), halo)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        parts = list(pool.map(_run, spans))
    return np.concatenate(parts, axis=0)
