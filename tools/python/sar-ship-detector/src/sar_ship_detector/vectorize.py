"""
vectorize.py
============
Trace each 8-connected region of the candidate mask into a polygon.

Resource limit
--------------
``max_pixels`` caps the number of candidate (``True``) pixels traced in
one call.  What happens when a mask exceeds it is an explicit policy:

* ``"raise"``    -- fail with :class:`VectorizationLimitError`; nothing
  is traced.
* ``"truncate"`` -- keep whole components in raster-scan order while the
  running pixel total stays within the cap, drop the rest, and return a
  result flagged ``partial=True`` with the number of dropped components.

Either way, detections are never lost silently.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np
from rasterio.crs import CRS
from rasterio.features import shapes
from rasterio.transform import from_origin
from shapely import get_parts
from shapely.geometry import MultiPolygon, Polygon, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import make_valid

from shared.python.exceptions import RasterError, VectorizationLimitError

from sar_ship_detector.grid import RasterGrid
from sar_ship_detector.speckle import component_sizes, label_components

logger = logging.getLogger("shipwatch.sar_ship_detector.vectorize")


@dataclass(frozen=True, eq=False)
class VectorizationResult:
    """Polygons traced from one mask.

    Attributes:
        polygons: One geometry per traced 8-connected region, in
            raster-scan order, in the mask's CRS.
        crs: CRS of the polygon coordinates.
        traced_pixels: Candidate pixels that were traced.
        partial: ``True`` when the pixel cap forced truncation.
        dropped_components: Regions left out by truncation.
    """

    polygons: list[BaseGeometry] = field(default_factory=list)
    crs: CRS | None = None
    traced_pixels: int = 0
    partial: bool = False
    dropped_components: int = 0

    def __len__(self) -> int:
        return len(self.polygons)


def resample_mask(mask: RasterGrid, scale: float) -> RasterGrid:
    """Nearest-neighbour resample of a north-up mask to *scale* pixel size.

    The output grid keeps the input's top-left corner and covers its
    full extent.
    """
    t = mask.transform
    if t.b != 0 or t.d != 0 or t.e >= 0:
        raise RasterError("Mask resampling needs a north-up, unrotated transform.")
    px_x, px_y = mask.pixel_size
    width = max(1, math.ceil(mask.width * px_x / scale))
    height = max(1, math.ceil(mask.height * px_y / scale))
    cols = np.minimum(((np.arange(width) + 0.5) * scale // px_x).astype(int), mask.width - 1)
    rows = np.minimum(((np.arange(height) + 0.5) * scale // px_y).astype(int), mask.height - 1)
    data = mask.data[np.ix_(rows, cols)]
    return RasterGrid(data, from_origin(t.c, t.f, scale, scale), mask.crs)


def polygonal_part(geom: BaseGeometry) -> BaseGeometry | None:
    """Union of the areal pieces of *geom*, or ``None`` if it has none.

    Clipping along a pixel edge can leave zero-area ``LineString`` or
    ``Point`` pieces in a ``GeometryCollection``; those are dropped.
    """
    pieces = [
        part for part in get_parts(geom)
        if isinstance(part, (Polygon, MultiPolygon)) and part.area > 0
    ]
    if not pieces:
        return None
    return pieces[0] if len(pieces) == 1 else unary_union(pieces)


def vectorize_mask(
    mask: RasterGrid,
    region: BaseGeometry | None = None,
    scale: float | None = None,
    max_pixels: int = 100_000_000,
    limit_policy: str = "raise",
) -> VectorizationResult:
    """Convert every 8-connected region of *mask* into a polygon.

    Args:
        mask: Boolean candidate mask.
        region: Region of interest in the mask's CRS.  Polygons are
            clipped to it; ``None`` skips clipping.
        scale: Tracing pixel size in metres.  ``None`` or the native
            pixel size traces the mask as-is.
        max_pixels: Cap on candidate pixels traced (see module docs).
        limit_policy: ``"raise"`` or ``"truncate"``.

    Raises:
        VectorizationLimitError: If the cap is exceeded under ``"raise"``.
    """
    grid = mask
    if scale is not None and not math.isclose(scale, mask.pixel_size[0]):
        if mask.is_geographic:
            logger.warning(
                "Vector scale %g m ignored on geographic grid; tracing at native resolution.",
                scale,
            )
        else:
            grid = resample_mask(mask, scale)
            logger.debug("Resampled mask to %g m for tracing: %r", scale, grid)

    labels, n = label_components(grid.data)
    sizes = component_sizes(labels, n)
    sizes[0] = 0
    total = int(sizes.sum())

    partial = False
    dropped = 0
    traced = total
    if total > max_pixels:
        if limit_policy != "truncate":
            raise VectorizationLimitError(total, max_pixels)
        running = np.cumsum(sizes[1:])
        n_keep = int(np.count_nonzero(running <= max_pixels))
        labels = np.where(labels <= n_keep, labels, 0).astype(np.int32)
        traced = int(running[n_keep - 1]) if n_keep else 0
        dropped = n - n_keep
        partial = True
        logger.warning(
            "Vectorization truncated: %d px exceeds cap of %d; traced %d of %d regions "
            "(%d dropped). Result is partial.",
            total, max_pixels, n_keep, n, dropped,
        )

    traced_geoms: dict[int, BaseGeometry] = {}
    for geojson, value in shapes(labels, mask=labels > 0, connectivity=8, transform=grid.transform):
        key = int(value)
        geom = shape(geojson)
        traced_geoms[key] = geom if key not in traced_geoms else traced_geoms[key].union(geom)

    polygons: list[BaseGeometry] = []
    for key in sorted(traced_geoms):
        geom = traced_geoms[key]
        # diagonal-only joins trace as self-touching rings
        if not geom.is_valid:
            geom = make_valid(geom)
        if region is not None:
            geom = geom.intersection(region)
        areal = polygonal_part(geom)
        if areal is None:
            continue
        polygons.append(areal)

    logger.debug("Vectorized %d regions (%d px traced)", len(polygons), traced)
    return VectorizationResult(
        polygons=polygons,
        crs=grid.crs,
        traced_pixels=traced,
        partial=partial,
        dropped_components=dropped,
    )
