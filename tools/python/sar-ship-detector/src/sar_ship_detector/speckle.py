"""
speckle.py
==========
8-connected component labeling and small-blob (speckle) removal.

Labeling is a single whole-grid pass (``scipy.ndimage.label``); it is
never split into tiles, because independent per-tile labels would cut
components that straddle tile boundaries.

Component size cap
------------------
:func:`connected_pixel_count` reports each pixel's component size
clipped to ``max_size``.  A value equal to ``max_size`` therefore means
"at least ``max_size`` pixels", not an exact count.  The speckle filter
only needs to know whether a component reaches ``min_pixels``, so the
cap never changes its decision as long as ``min_pixels <= max_size``
(enforced by :meth:`DetectionConfig.validate`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy.ndimage import label as ndi_label

from sar_ship_detector.grid import RasterGrid

logger = logging.getLogger("shipwatch.sar_ship_detector.speckle")

EIGHT_CONNECTED = np.ones((3, 3), dtype=bool)
DEFAULT_COUNT_CAP = 100


def label_components(mask: np.ndarray) -> tuple[np.ndarray, int]:
    """Label 8-connected ``True`` regions.

    Returns:
        ``(labels, n)``: an ``int32`` array with 0 for background and
        ``1..n`` numbered in raster-scan order of each component's first
        pixel, and the component count.
    """
    labels, n = ndi_label(np.asarray(mask, dtype=bool), structure=EIGHT_CONNECTED)  # type: ignore[misc]
    return labels.astype(np.int32, copy=False), int(n)


def component_sizes(labels: np.ndarray, n: int) -> np.ndarray:
    """Exact pixel count per label; index 0 is the background."""
    return np.bincount(labels.ravel(), minlength=n + 1)


def connected_pixel_count(
    mask: np.ndarray,
    max_size: int = DEFAULT_COUNT_CAP,
) -> np.ndarray:
    """Per-pixel size of the pixel's component, clipped to *max_size*.

    Background pixels get 0.
    """
    labels, n = label_components(mask)
    capped = np.minimum(component_sizes(labels, n), max_size)
    capped[0] = 0
    return capped[labels]


@dataclass(frozen=True, eq=False)
class SpeckleResult:
    """Output of :func:`remove_speckle`.

    Attributes:
        mask: Candidate mask with small components removed.
        components: Components found before filtering.
        kept: Components that reached ``min_pixels``.
    """

    mask: RasterGrid
    components: int
    kept: int

    @property
    def dropped(self) -> int:
        return self.components - self.kept


def remove_speckle(
    candidates: RasterGrid,
    min_pixels: int,
    max_size: int = DEFAULT_COUNT_CAP,
) -> SpeckleResult:
    """Drop every 8-connected component smaller than *min_pixels*.

    Args:
        candidates: Boolean candidate mask.
        min_pixels: Minimum component size kept (``>= 1``).
        max_size: Size cap of the component count (see module docs).

    Returns:
        A :class:`SpeckleResult` with the filtered mask and counts.
    """
    labels, n = label_components(candidates.data)
    sizes = np.minimum(component_sizes(labels, n), max_size)
    keep_label = sizes >= min_pixels
    keep_label[0] = False
    kept_mask = keep_label[labels]
    kept = int(np.count_nonzero(keep_label))

    logger.debug(
        "Speckle filter (min %d px, cap %d): kept %d of %d components",
        min_pixels, max_size, kept, n,
    )
    return SpeckleResult(mask=candidates.with_data(kept_mask), components=n, kept=kept)
