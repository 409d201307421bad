# File: tests/unit/test_rectangle.py
"""
Unit tests for rectangle verification and corner extraction.
"""

import math

import pytest

from profwall.core.models import ArcSegment, LineSegment, Point3D, PolyCurve
from profwall.geometry.rectangle import extract_corners, is_rectangle
from tests.conftest import loop


def P(x, y, z=0.0):
    return Point3D(x=x, y=y, z=z)


class TestIsRectangle:
    """Tests for is_rectangle."""

    def test_unit_square(self, unit_square):
        assert is_rectangle(unit_square)

    def test_none_is_not_a_rectangle(self):
        assert not is_rectangle(None)

    def test_open_loop_is_rejected(self):
        curve = PolyCurve.by_points([P(0, 0), P(1, 0), P(1, 1), P(0, 1)], closed=False)
        assert not is_rectangle(curve)

    def test_three_segments_rejected(self):
        assert not is_rectangle(loop((0, 0, 0), (1, 0, 0), (0, 1, 0)))

    def test_five_segments_rejected(self):
        # Right angles everywhere except the split edge, still five segments
        assert not is_rectangle(loop((0, 0, 0), (1, 0, 0), (1, 1, 0), (0.5, 1, 0), (0, 1, 0)))

    def test_parallelogram_rejected(self):
        assert not is_rectangle(loop((0, 0, 0), (2, 0, 0), (3, 1, 0), (1, 1, 0)))

    def test_curved_edge_rejected(self):
        curve = PolyCurve(segments=[
            LineSegment(start=P(0, 0), end=P(1, 0)),
            ArcSegment(start=P(1, 0), mid=P(1.2, 0.5), end=P(1, 1)),
            LineSegment(start=P(1, 1), end=P(0, 1)),
            LineSegment(start=P(0, 1), end=P(0, 0)),
        ])
        assert curve.is_closed
        assert not is_rectangle(curve)

    def test_rotated_vertical_rectangle(self):
        dx, dy = 2 * math.cos(math.radians(30)), 2 * math.sin(math.radians(30))
        curve = loop((0, 0, 0), (dx, dy, 0), (dx, dy, 1.5), (0, 0, 1.5))
        assert is_rectangle(curve)

    def test_small_angle_error_rejected(self):
        # 0.01 degrees off square at the far corners
        skew = math.tan(math.radians(0.01))
        curve = loop((0, 0, 0), (1, 0, 0), (1 + skew, 1, 0), (skew, 1, 0))
        assert not is_rectangle(curve)

    def test_custom_angle_tolerance(self):
        skew = math.tan(math.radians(0.01))
        curve = loop((0, 0, 0), (1, 0, 0), (1 + skew, 1, 0), (skew, 1, 0))
        assert is_rectangle(curve, angle_tolerance=0.1)


class TestExtractCorners:
    """Tests for extract_corners."""

    def test_unit_square_returns_diagonal(self, unit_square):
        corners = extract_corners(unit_square)

        assert corners is not None
        assert corners.diagonal() == pytest.approx(math.sqrt(2))

    def test_vertical_rectangle_third_point_is_diagonal(self):
        curve = loop((0, 0, 0), (1, 0, 0), (1, 0, 2), (0, 0, 2))
        corners = extract_corners(curve)

        assert corners.corner0 == P(0, 0, 0)
        assert corners.corner1 == P(1, 0, 2)

    def test_vertical_rectangle_fourth_point_is_diagonal(self):
        # Third point by elevation sits straight above the lowest corner
        curve = loop((0, 0, 0), (0, 0, 2), (1, 0, 2), (1, 0, 0))
        corners = extract_corners(curve)

        assert corners.corner0 == P(0, 0, 0)
        assert corners.corner1 == P(1, 0, 2)
        assert corners.diagonal() == pytest.approx(math.sqrt(5))

    def test_non_four_segment_loop_fails(self):
        assert extract_corners(loop((0, 0, 0), (1, 0, 0), (0, 1, 0))) is None

    def test_none_fails(self):
        assert extract_corners(None) is None
