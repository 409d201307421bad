"""
Wall profile checks and plane frames.

A wall profile is a closed, planar loop standing upright. The frame derived
from it is used to write the 2D profile that gets extruded into the wall.
"""

from typing import List, NamedTuple, Optional

import numpy as np
from loguru import logger

from profwall.core.models import GeometryError, Plane, Point3D, PolyCurve, Vector3D

VERTICAL_NORMAL_TOLERANCE = 0.0001


class PlaneFrame(NamedTuple):
    """Orthonormal frame lying in a profile plane."""
    origin: Point3D
    x_dir: Vector3D  # horizontal, in plane
    y_dir: Vector3D  # normal x x_dir, points up for vertical planes
    normal: Vector3D


def is_vertical_profile(
    profile: Optional[PolyCurve],
    tolerance: float = VERTICAL_NORMAL_TOLERANCE,
) -> bool:
    """
    Check that a profile is closed, planar and stands in a vertical plane.

    Args:
        profile: Candidate wall profile
        tolerance: Maximum |z| of the plane normal

    Returns:
        True if the profile can be turned into a wall
    """
    if profile is None:
        return False

    if not profile.is_closed or not profile.is_planar:
        logger.debug(f"Profile rejected: closed={profile.is_closed}, planar={profile.is_planar}")
        return False

    normal = profile.base_plane().normal
    if abs(normal.z) > tolerance:
        logger.debug(f"Profile rejected: plane normal z={normal.z:.6f} is not horizontal")
        return False

    return True


def frame_from_plane(plane: Plane, origin: Optional[Point3D] = None) -> PlaneFrame:
    """
    Build an in-plane frame with a horizontal x axis.

    Raises:
        GeometryError: If the plane is horizontal (no horizontal in-plane axis
            is defined by the up vector)
    """
    normal = plane.normal.normalized()
    up = Vector3D.z_axis()

    x_dir = up.cross(normal)
    if x_dir.length < 1e-9:
        raise GeometryError("Plane is horizontal; wall profiles must be vertical")
    x_dir = x_dir.normalized()
    y_dir = normal.cross(x_dir).normalized()

    return PlaneFrame(
        origin=origin or plane.origin,
        x_dir=x_dir,
        y_dir=y_dir,
        normal=normal,
    )


def profile_frame(profile: PolyCurve) -> PlaneFrame:
    """Frame for a vertical profile, anchored at its first vertex."""
    return frame_from_plane(profile.base_plane(), origin=profile.curves()[0].start_point)


def to_plane_coordinates(points: List[Point3D], frame: PlaneFrame) -> np.ndarray:
    """
    Project points onto a frame.

    Returns:
        (n, 2) array of in-plane coordinates
    """
    coords = np.array([p.as_array() for p in points]) - frame.origin.as_array()
    axes = np.stack([frame.x_dir.as_array(), frame.y_dir.as_array()], axis=1)
    return coords @ axes
