"""Tests for spatial utility functions."""

import math

import pytest

from planviz.dwg_parser.elements import BoundingBox
from planviz.dwg_parser.spatial_utils import (
    arc_points,
    distance,
    fraction_inside,
    rectangle_extent,
)


class TestRectangleExtent:
    """Tests for rectangle_extent function."""

    def test_axis_aligned_rectangle(self):
        width, height, center = rectangle_extent([(0, 0), (900, 0), (900, 2100), (0, 2100)])
        assert (width, height) == (900, 2100)
        assert center == (450, 1050)

    def test_rotated_square_uses_bounds(self):
        width, height, _ = rectangle_extent([(1, 0), (2, 1), (1, 2), (0, 1)])
        assert (width, height) == (2, 2)

    def test_too_few_vertices(self):
        assert rectangle_extent([(0, 0), (1, 1)]) is None


class TestArcPoints:
    """Tests for arc_points function."""

    def test_quarter_arc_endpoints(self):
        points = arc_points((0, 0), 10, 0, math.pi / 2, segments=4)
        assert len(points) == 5
        assert points[0] == pytest.approx((10, 0))
        assert points[-1] == pytest.approx((0, 10))

    def test_wraps_past_zero(self):
        points = arc_points((0, 0), 1, 3 * math.pi / 2, math.pi / 2, segments=2)
        # sweeps counter-clockwise through angle 0
        assert points[1] == pytest.approx((1, 0))

    def test_full_circle_when_equal(self):
        points = arc_points((0, 0), 1, 0, 0, segments=4)
        assert points[2] == pytest.approx((-1, 0))


class TestFractionInside:
    def test_partial(self):
        box = BoundingBox(0, 0, 10, 10)
        assert fraction_inside([(5, 5), (10, 10), (20, 5), (-1, 0)], box) == 0.5

    def test_no_points(self):
        assert fraction_inside([], BoundingBox(0, 0, 1, 1)) == 1.0


def test_distance():
    assert distance((0, 0), (3, 4)) == 5.0
