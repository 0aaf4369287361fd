"""
length.py
=========
Length proxy, centroid points, and the minimum-length filter.

The length proxy is the diagonal of a polygon's axis-aligned bounding
box, measured between its lower-left and upper-right corners.  It is a
deliberately coarse stand-in for vessel length: a ship lying diagonally
across the grid reads longer than it is.  No oriented or principal-axis
fit is attempted.

Distances are geodesic (WGS84 ellipsoid) on geographic grids and
Euclidean in CRS linear units, converted to metres, on projected ones.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from pyproj import Geod
from rasterio.crs import CRS
from rasterio.errors import CRSError
from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

logger = logging.getLogger("shipwatch.sar_ship_detector.length")

_GEOD = Geod(ellps="WGS84")


@dataclass(frozen=True)
class ShipCandidate:
    """One vectorized bright target, reduced to a point.

    Attributes:
        centroid: Representative point in the raster CRS.
        length_m: Bounding-box diagonal in metres (always finite, ``>= 0``).
        acquisition_date: Date of the scene the target was found in.
        polygon_index: Position of the source polygon in the vectorizer
            output.
    """

    centroid: Point
    length_m: float
    acquisition_date: date
    polygon_index: int = -1

    def to_properties(self) -> dict:
        """Attribute dict used for vector export."""
        return {
            "acq_date": self.acquisition_date.isoformat(),
            "length_m": round(self.length_m, 2),
        }


def _metres_per_unit(crs: CRS | None) -> float:
    if crs is None:
        return 1.0
    try:
        return float(crs.linear_units_factor[1])
    except CRSError:
        logger.debug("No linear unit factor for %s; assuming metres.", crs)
        return 1.0


def bbox_diagonal_length(geom: BaseGeometry, crs: CRS | None = None) -> float:
    """Distance in metres between opposite corners of *geom*'s bounding box.

    Empty geometries measure ``0.0``; a single point or a degenerate
    sliver measures the extent it has.
    """
    if geom.is_empty:
        return 0.0
    minx, miny, maxx, maxy = geom.bounds
    if crs is not None and crs.is_geographic:
        _, _, distance = _GEOD.inv(minx, miny, maxx, maxy)
    else:
        distance = math.hypot(maxx - minx, maxy - miny) * _metres_per_unit(crs)
    distance = abs(float(distance))
    return distance if math.isfinite(distance) else 0.0


def estimate_candidates(
    polygons: Sequence[BaseGeometry],
    acquisition_date: date,
    crs: CRS | None = None,
) -> list[ShipCandidate]:
    """Build one :class:`ShipCandidate` per polygon, in input order."""
    candidates = []
    for index, geom in enumerate(polygons):
        candidates.append(
            ShipCandidate(
                centroid=geom.centroid,
                length_m=bbox_diagonal_length(geom, crs),
                acquisition_date=acquisition_date,
                polygon_index=index,
            )
        )
    return candidates


def filter_by_length(
    candidates: Sequence[ShipCandidate],
    min_length_m: float,
) -> list[ShipCandidate]:
    """Keep candidates with ``length_m >= min_length_m``, preserving order.

    The returned objects are the same instances as in *candidates*.
    """
    kept = [c for c in candidates if c.length_m >= min_length_m]
    logger.debug(
        "Length filter >= %g m: kept %d of %d candidates",
        min_length_m, len(kept), len(candidates),
    )
    return kept
