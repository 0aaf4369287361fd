"""
Tests: Length Proxy and Filter
==============================
Bounding-box diagonal in projected and geographic CRSs, and the
order-preserving minimum-length filter.
"""

from __future__ import annotations

import math
from datetime import date

import pytest
from pyproj import Geod
from rasterio.crs import CRS
from shapely.geometry import GeometryCollection, Point, Polygon, box

from sar_ship_detector.length import (
    ShipCandidate,
    bbox_diagonal_length,
    estimate_candidates,
    filter_by_length,
)

DAY = date(2025, 7, 10)


class TestBboxDiagonal:
    def test_projected_metres(self) -> None:
        length = bbox_diagonal_length(box(0, 0, 100, 20), CRS.from_epsg(32631))
        assert length == pytest.approx(math.hypot(100, 20), rel=1e-9)

    def test_no_crs_is_treated_as_metres(self) -> None:
        assert bbox_diagonal_length(box(0, 0, 30, 40)) == pytest.approx(50.0)

    def test_feet_are_converted_to_metres(self) -> None:
        # EPSG:2263 is NY Long Island in US survey feet
        length = bbox_diagonal_length(box(0, 0, 100, 0.0001), CRS.from_epsg(2263))
        assert length == pytest.approx(30.48, rel=1e-3)

    def test_geographic_is_geodesic(self) -> None:
        geom = box(3.0, 36.0, 3.002, 36.001)
        _, _, expected = Geod(ellps="WGS84").inv(3.0, 36.0, 3.002, 36.001)
        length = bbox_diagonal_length(geom, CRS.from_epsg(4326))
        assert length == pytest.approx(expected, rel=1e-9)
        assert 150 < length < 250

    def test_diagonal_polygon_reads_longer_than_it_is(self) -> None:
        # a 100 m x 10 m hull rotated 45 degrees
        hull = Polygon([(0, 7), (7, 0), (78, 71), (71, 78)])
        assert bbox_diagonal_length(hull) > 100

    def test_point_measures_zero(self) -> None:
        assert bbox_diagonal_length(Point(5, 5)) == 0.0

    def test_empty_geometry_measures_zero(self) -> None:
        assert bbox_diagonal_length(GeometryCollection()) == 0.0


class TestCandidates:
    def test_one_candidate_per_polygon_in_order(self) -> None:
        polygons = [box(0, 0, 10, 10), box(100, 100, 160, 180)]
        candidates = estimate_candidates(polygons, DAY)
        assert [c.polygon_index for c in candidates] == [0, 1]
        assert candidates[1].length_m == pytest.approx(100.0)
        assert candidates[1].centroid.equals(Point(130, 140))

    def test_properties_carry_date_and_length(self) -> None:
        candidate = ShipCandidate(Point(0, 0), 42.4264, DAY)
        assert candidate.to_properties() == {"acq_date": "2025-07-10", "length_m": 42.43}


class TestLengthFilter:
    def _candidates(self) -> list[ShipCandidate]:
        return [ShipCandidate(Point(i, 0), length, DAY, i) for i, length in enumerate([10, 60, 50, 49.9, 200])]

    def test_keeps_at_or_above_minimum(self) -> None:
        kept = filter_by_length(self._candidates(), 50)
        assert [c.length_m for c in kept] == [60, 50, 200]

    def test_returns_same_instances_in_order(self) -> None:
        candidates = self._candidates()
        kept = filter_by_length(candidates, 50)
        assert all(any(k is c for c in candidates) for k in kept)
        assert [k.polygon_index for k in kept] == sorted(k.polygon_index for k in kept)

    @pytest.mark.parametrize("minimum", [0, 10, 55, 1000])
    def test_every_kept_candidate_meets_minimum(self, minimum: float) -> None:
        kept = filter_by_length(self._candidates(), minimum)
        assert all(c.length_m >= minimum for c in kept)

    def test_zero_minimum_keeps_everything(self) -> None:
        assert len(filter_by_length(self._candidates(), 0)) == 5
