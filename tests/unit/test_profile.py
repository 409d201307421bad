# File: tests/unit/test_profile.py
"""
Unit tests for wall profile checks and plane frames.
"""

import numpy as np
import pytest

from profwall.core.models import GeometryError, Point3D, PolyCurve
from profwall.geometry.profile import (
    frame_from_plane,
    is_vertical_profile,
    profile_frame,
    to_plane_coordinates,
)
from tests.conftest import loop


def test_vertical_profile_accepted(wall_profile):
    assert is_vertical_profile(wall_profile)


def test_horizontal_profile_rejected(unit_square):
    assert not is_vertical_profile(unit_square)


def test_slanted_profile_rejected():
    # Top edge leans 1 cm out of plane over 3 m
    slanted = loop((0, 0, 0), (4, 0, 0), (4, 0.01, 3), (0, 0.01, 3))
    assert slanted.is_planar
    assert not is_vertical_profile(slanted)


def test_open_profile_rejected():
    points = [Point3D(x=0, y=0, z=0), Point3D(x=4, y=0, z=0), Point3D(x=4, y=0, z=3)]
    assert not is_vertical_profile(PolyCurve.by_points(points, closed=False))


def test_none_profile_rejected():
    assert not is_vertical_profile(None)


def test_frame_is_orthonormal_with_up_axis(wall_profile):
    frame = profile_frame(wall_profile)

    assert frame.x_dir.z == pytest.approx(0.0, abs=1e-12)
    assert frame.y_dir.z == pytest.approx(1.0)
    assert frame.x_dir.dot(frame.normal) == pytest.approx(0.0, abs=1e-12)
    assert frame.origin == Point3D(x=0, y=0, z=0)


def test_plane_coordinates_preserve_dimensions(wall_profile):
    frame = profile_frame(wall_profile)
    coords = to_plane_coordinates(wall_profile.tessellate(), frame)

    width = coords[:, 0].max() - coords[:, 0].min()
    height = coords[:, 1].max() - coords[:, 1].min()
    assert width == pytest.approx(4.0)
    assert height == pytest.approx(3.0)
    assert np.allclose(coords[0], [0.0, 0.0])


def test_horizontal_plane_has_no_frame(unit_square):
    with pytest.raises(GeometryError):
        frame_from_plane(unit_square.base_plane())
