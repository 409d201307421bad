"""
Rectangle checks for opening profiles.

Openings are cut from rectangular loops drawn in the wall plane. The loop is
verified first, then two diagonally opposite corners are picked to size the
opening.
"""

from typing import Optional

from loguru import logger

from profwall.core.models import (
    GeometryError,
    PolyCurve,
    RectangleCorners,
    Vector3D,
)

LENGTH_TOLERANCE = 0.001  # chord vs. curve length, model units
ANGLE_TOLERANCE = 0.001  # degrees
VERTICAL_TOLERANCE = 0.01  # radians


def is_rectangle(
    loop: Optional[PolyCurve],
    length_tolerance: float = LENGTH_TOLERANCE,
    angle_tolerance: float = ANGLE_TOLERANCE,
) -> bool:
    """
    Check whether a closed loop is a rectangle.

    The loop must have exactly four straight segments and every corner must
    be a right angle. Opposite sides being equal follows from the angles.

    Args:
        loop: Closed curve loop to check
        length_tolerance: Allowed difference between chord and curve length
        angle_tolerance: Allowed deviation from 90 degrees

    Returns:
        True if the loop is a rectangle
    """
    if loop is None:
        return False

    if not loop.is_closed:
        return False

    if loop.number_of_curves != 4:
        return False

    curves = loop.curves()
    vectors = [Vector3D.by_two_points(c.start_point, c.end_point) for c in curves]

    # A curved edge has a chord shorter than its length
    try:
        for curve, vector in zip(curves, vectors):
            if abs(vector.length - curve.length()) > length_tolerance:
                logger.debug(f"Segment is not straight: chord={vector.length:.6f}, "
                             f"length={curve.length():.6f}")
                return False
    except GeometryError as e:
        logger.debug(f"Degenerate segment in loop: {e}")
        return False

    for i in range(4):
        angle = vectors[i].reverse().angle_with_vector(vectors[(i + 1) % 4])
        if abs(angle - 90.0) > angle_tolerance:
            logger.debug(f"Corner {i} is {angle:.4f} degrees")
            return False

    return True


def extract_corners(
    loop: Optional[PolyCurve],
    vertical_tolerance: float = VERTICAL_TOLERANCE,
) -> Optional[RectangleCorners]:
    """
    Pick two diagonally opposite corners of a rectangular loop.

    Start points are sorted by elevation and the lowest one is kept. Of the
    two upper candidates, the third point is the diagonal unless it sits
    straight above the lowest corner, in which case the fourth one is.

    Assumes the rectangle lies in a vertical plane (wall openings).

    Args:
        loop: Rectangular loop, normally already passed through is_rectangle()
        vertical_tolerance: Angle (radians) under which an edge counts as vertical

    Returns:
        RectangleCorners, or None if the loop does not have four segments
    """
    if loop is None or loop.number_of_curves != 4:
        return None

    points = sorted((c.start_point for c in loop.curves()), key=lambda p: p.z)

    corner0 = points[0]
    to_third = Vector3D.by_two_points(corner0, points[2])
    if to_third.angle_to(Vector3D.z_axis()) > vertical_tolerance:
        return RectangleCorners(corner0=corner0, corner1=points[2])

    return RectangleCorners(corner0=corner0, corner1=points[3])
