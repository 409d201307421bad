"""
Model building from wall profiles and opening loops.

Runs the wall and opening nodes over a whole drawing. Trace keys are derived
from the order of the inputs, so building again with the same trace file
replaces the elements of the previous build.
"""

from typing import List, Optional, Tuple

import numpy as np
from loguru import logger
from pydantic import BaseModel, Field

from profwall.core.config import Config, get_default_config
from profwall.core.models import PolyCurve
from profwall.document.model_document import ModelDocument
from profwall.document.trace import ElementBinder
from profwall.nodes.elements import OpeningElement, WallElement
from profwall.nodes.wall import create_wall_opening, wall_by_profile


class BuildReport(BaseModel):
    """Outcome of a model build."""
    walls_created: int = 0
    walls_rejected: int = 0
    openings_created: int = 0
    openings_rejected: int = 0
    stale_removed: int = 0
    wall_guids: List[str] = Field(default_factory=list)
    opening_guids: List[str] = Field(default_factory=list)

    def __str__(self) -> str:
        return (f"BuildReport(walls={self.walls_created}/{self.walls_created + self.walls_rejected}, "
                f"openings={self.openings_created}/{self.openings_created + self.openings_rejected})")


def find_host_wall(loop: PolyCurve, walls: List[WallElement], tolerance: float = 0.001) -> Optional[WallElement]:
    """
    Wall whose centre plane is closest to an opening loop.

    Only walls whose body contains the loop's plane offset (half the wall
    width plus tolerance) are candidates.
    """
    centroid = np.mean([c.start_point.as_array() for c in loop.curves()], axis=0)

    best: Optional[WallElement] = None
    best_distance = float("inf")
    for wall in walls:
        distance = abs(float(np.dot(centroid - wall.frame.origin.as_array(), wall.frame.normal.as_array())))
        if distance <= wall.width / 2.0 + tolerance and distance < best_distance:
            best = wall
            best_distance = distance

    return best


class ModelBuilder:
    """
    Builds walls and openings into a model document.

    Strategy: every wall profile goes through wall_by_profile(), then every
    opening loop is cut into the nearest wall by create_wall_opening().
    """

    def __init__(
        self,
        document: Optional[ModelDocument] = None,
        binder: Optional[ElementBinder] = None,
        config: Optional[Config] = None,
        project_name: str = "ProfWall Model",
    ):
        """
        Initialize model builder.

        Args:
            document: Document to build into. A new project is created if None.
            binder: Trace bindings. In-memory bindings are used if None.
            config: Configuration (tolerances, defaults)
            project_name: Project name for a new document
        """
        self.config = config or get_default_config()
        if document is None:
            document = ModelDocument(project_name=project_name)
            document.create_project()
        self.document = document
        self.binder = binder if binder is not None else ElementBinder()

    def _resolve_level_and_type(self) -> Tuple[object, object]:
        """Find or create the configured level and wall type."""
        level_name = self.config.get_geometry_default("level_name", "Level 1")
        level = self.document.find_level(level_name)
        if level is None:
            level = self.document.add_level(
                level_name, float(self.config.get_geometry_default("level_elevation", 0.0))
            )

        type_name = self.config.get_geometry_default("wall_type_name", "Generic")
        wall_type = self.document.find_wall_type(type_name)
        if wall_type is None:
            wall_type = self.document.add_wall_type(
                type_name, float(self.config.get_geometry_default("wall_width", 0.2))
            )

        return level, wall_type

    def build(self, wall_profiles: List[PolyCurve], opening_loops: List[PolyCurve]) -> BuildReport:
        """
        Create walls and openings.

        Args:
            wall_profiles: One closed vertical profile per wall
            opening_loops: Rectangular loops to cut into the walls

        Returns:
            BuildReport with counts and GlobalIds
        """
        logger.info(f"Building {len(wall_profiles)} walls and {len(opening_loops)} openings")

        report = BuildReport()
        level, wall_type = self._resolve_level_and_type()

        length_tol = self.config.get_tolerance("length", 0.001)
        arc_segments = int(self.config.get_geometry_default("arc_segments", 16))

        walls: List[WallElement] = []
        for i, profile in enumerate(wall_profiles):
            wall = wall_by_profile(
                [profile],
                wall_type,
                level,
                self.document,
                self.binder,
                trace_key=f"wall:{i}",
                vertical_tolerance=self.config.get_tolerance("vertical_normal", 0.0001),
                arc_segments=arc_segments,
            )
            if wall is None:
                report.walls_rejected += 1
                continue
            walls.append(wall)
            report.walls_created += 1
            report.wall_guids.append(wall.guid)

        for j, loop in enumerate(opening_loops):
            host = find_host_wall(loop, walls, length_tol)
            if host is None:
                logger.warning(f"Opening {j} does not lie in any wall")

            opening: Optional[OpeningElement] = create_wall_opening(
                host,
                loop,
                self.document,
                self.binder,
                trace_key=f"opening:{j}",
                clearance=float(self.config.get_geometry_default("opening_clearance", 0.01)),
                length_tolerance=length_tol,
                angle_tolerance=self.config.get_tolerance("angle_degrees", 0.001),
                vertical_tolerance=self.config.get_tolerance("vertical_angle", 0.01),
            )
            if opening is None:
                report.openings_rejected += 1
                continue
            report.openings_created += 1
            report.opening_guids.append(opening.guid)

        report.stale_removed = self._remove_stale(len(wall_profiles), len(opening_loops))

        logger.success(f"Build finished: {report}")
        return report

    def _remove_stale(self, wall_count: int, opening_count: int) -> int:
        """Delete elements traced by earlier builds that had more inputs."""
        current = {f"wall:{i}" for i in range(wall_count)}
        current.update(f"opening:{j}" for j in range(opening_count))

        removed = 0
        for key in self.binder.keys():
            if key in current or not key.startswith(("wall:", "opening:")):
                continue
            element = self.binder.get_element_from_trace(self.document, key)
            if element is not None:
                with self.document.transactions.transaction():
                    self.document.delete_element(element)
                removed += 1
            self.binder.cleanup_and_set_element_for_trace(key, None)

        if removed:
            logger.info(f"Removed {removed} elements left over from a previous build")
        return removed


def build_model(
    wall_profiles: List[PolyCurve],
    opening_loops: Optional[List[PolyCurve]] = None,
    document: Optional[ModelDocument] = None,
    binder: Optional[ElementBinder] = None,
    config: Optional[Config] = None,
) -> Tuple[ModelDocument, BuildReport]:
    """
    Convenience function to build walls and openings into a model.

    Args:
        wall_profiles: Closed vertical wall profiles
        opening_loops: Optional rectangular opening loops
        document: Existing document to update (new project if None)
        binder: Trace bindings of previous builds
        config: Configuration

    Returns:
        (document, report)
    """
    builder = ModelBuilder(document=document, binder=binder, config=config)
    report = builder.build(wall_profiles, opening_loops or [])
    return builder.document, report
