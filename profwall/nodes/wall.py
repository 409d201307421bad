"""
Wall and wall opening nodes.

Each node call is identified by a trace key. Rerunning a node replaces the
element it created last time; when the new input is rejected, the old
element is removed and the node returns None.
"""

from typing import List, Optional

from loguru import logger

from profwall.core.models import PolyCurve
from profwall.document.model_document import ModelDocument
from profwall.document.trace import ElementBinder
from profwall.geometry.profile import (
    VERTICAL_NORMAL_TOLERANCE,
    profile_frame,
)
from profwall.geometry.rectangle import (
    ANGLE_TOLERANCE,
    LENGTH_TOLERANCE,
    VERTICAL_TOLERANCE,
    extract_corners,
    is_rectangle,
)
from profwall.nodes.elements import OpeningElement, WallElement


def _delete_traced(document: ModelDocument, binder: ElementBinder, trace_key: str, element) -> None:
    """Remove a previously traced element in its own transaction."""
    if element is not None:
        with document.transactions.transaction():
            document.delete_element(element)
    binder.cleanup_and_set_element_for_trace(trace_key, None)


def wall_by_profile(
    closed_profiles: List[PolyCurve],
    wall_type,
    level,
    document: ModelDocument,
    binder: ElementBinder,
    trace_key: str = "wall_by_profile",
    vertical_tolerance: float = VERTICAL_NORMAL_TOLERANCE,
    arc_segments: int = 16,
) -> Optional[WallElement]:
    """
    Create a wall from closed vertical profiles.

    The first profile is the wall outline; further profiles become holes in
    it. The wall is extruded through the wall type width, centred on the
    profile plane.

    Args:
        closed_profiles: Outline followed by optional inner loops
        wall_type: IfcWallType to use
        level: IfcBuildingStorey to host the wall
        document: Model to write into
        binder: Trace bindings of previous runs
        trace_key: Identifies this node call across runs
        vertical_tolerance: Maximum |z| of the profile plane normal
        arc_segments: Segments used to approximate each arc

    Returns:
        WallElement, or None if the profile was rejected or creation failed
    """
    wall_elem = binder.get_element_from_trace(document, trace_key, "IfcWall")

    if not closed_profiles:
        logger.warning(f"[{trace_key}] No profile given")
        _delete_traced(document, binder, trace_key, wall_elem)
        return None

    closed_profile = closed_profiles[0]
    if closed_profile is None or not closed_profile.is_closed or not closed_profile.is_planar:
        logger.warning(f"[{trace_key}] Wall profile must be closed and planar")
        _delete_traced(document, binder, trace_key, wall_elem)
        return None

    # Verify the wall profile is vertical
    base_plane = closed_profile.base_plane()
    if abs(base_plane.normal.z) > vertical_tolerance:
        logger.warning(f"[{trace_key}] Wall profile is not vertical (normal z={base_plane.normal.z:.6f})")
        _delete_traced(document, binder, trace_key, wall_elem)
        return None

    if any(p is None or not p.is_closed for p in closed_profiles[1:]):
        logger.warning(f"[{trace_key}] Inner wall profiles must be closed")
        _delete_traced(document, binder, trace_key, wall_elem)
        return None

    frame = profile_frame(closed_profile)

    document.transactions.ensure_in_transaction()
    ifc_wall = None
    try:
        if wall_elem is not None:
            document.delete_element(wall_elem)

        ifc_wall = document.create_wall(
            closed_profiles, frame, wall_type, level, arc_segments=arc_segments
        )
        document.add_source_pset(ifc_wall, trace_key)
        wall = WallElement(ifc_wall, frame, document.wall_type_width(wall_type))
    except Exception:
        logger.exception(f"[{trace_key}] Failed to create wall")
        if ifc_wall is not None:
            document.delete_element(ifc_wall)
        document.transactions.transaction_task_done()
        binder.cleanup_and_set_element_for_trace(trace_key, None)
        return None

    document.transactions.transaction_task_done()
    binder.cleanup_and_set_element_for_trace(trace_key, ifc_wall)
    logger.success(f"[{trace_key}] Created wall {wall.guid}")
    return wall


def create_wall_opening(
    wall: Optional[WallElement],
    poly_curve: Optional[PolyCurve],
    document: ModelDocument,
    binder: ElementBinder,
    trace_key: str = "create_wall_opening",
    clearance: float = 0.01,
    length_tolerance: float = LENGTH_TOLERANCE,
    angle_tolerance: float = ANGLE_TOLERANCE,
    vertical_tolerance: float = VERTICAL_TOLERANCE,
) -> Optional[OpeningElement]:
    """
    Cut a rectangular opening into a wall.

    Args:
        wall: Host wall
        poly_curve: Rectangular loop in the wall plane
        document: Model to write into
        binder: Trace bindings of previous runs
        trace_key: Identifies this node call across runs
        clearance: Extra depth beyond each wall face
        length_tolerance: Allowed chord/length difference per edge
        angle_tolerance: Allowed corner deviation from 90 degrees
        vertical_tolerance: Angle (radians) under which an edge counts as vertical

    Returns:
        OpeningElement, or None if the loop was rejected or creation failed
    """
    try:
        opening = binder.get_element_from_trace(document, trace_key, "IfcOpeningElement")

        if wall is None:
            logger.warning(f"[{trace_key}] No host wall")
            _delete_traced(document, binder, trace_key, opening)
            return None

        if not is_rectangle(poly_curve, length_tolerance, angle_tolerance):
            logger.warning(f"[{trace_key}] Rectangle verification failed")
            _delete_traced(document, binder, trace_key, opening)
            return None

        # Find the two corner points
        corners = extract_corners(poly_curve, vertical_tolerance)
        if corners is None:
            logger.warning(f"[{trace_key}] Could not extract rectangle corners")
            _delete_traced(document, binder, trace_key, opening)
            return None

        document.transactions.ensure_in_transaction()
        ifc_opening = None
        try:
            if opening is not None:
                document.delete_element(opening)

            ifc_opening = document.create_opening(
                wall.entity, corners, wall.frame, wall.width, clearance=clearance
            )
            document.add_source_pset(ifc_opening, trace_key)
        except Exception:
            logger.exception(f"[{trace_key}] Failed to create opening")
            if ifc_opening is not None:
                document.delete_element(ifc_opening)
            document.transactions.transaction_task_done()
            binder.cleanup_and_set_element_for_trace(trace_key, None)
            return None

        document.transactions.transaction_task_done()
        binder.cleanup_and_set_element_for_trace(trace_key, ifc_opening)
        logger.success(f"[{trace_key}] Created opening {ifc_opening.GlobalId} in wall {wall.guid}")
        return OpeningElement(ifc_opening, wall, corners)
    except Exception as e:
        logger.error(f"[{trace_key}] Error: {e}")
        raise
