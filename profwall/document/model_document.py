"""
IFC4 model document using IfcOpenShell.

Holds the project structure (site, building, levels) and creates, finds and
deletes the wall and opening entities that the nodes manage.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import numpy as np
from loguru import logger

try:
    import ifcopenshell
    import ifcopenshell.api
    import ifcopenshell.guid
    import ifcopenshell.util.element
except ImportError:
    raise ImportError(
        "IfcOpenShell is required for model documents. "
        "Install with: pip install ifcopenshell"
    )

from profwall.core.models import Point3D, PolyCurve, RectangleCorners
from profwall.document.transactions import TransactionManager
from profwall.geometry.profile import PlaneFrame, to_plane_coordinates

WALL_TYPE_PSET = "ProfWall_WallType"
SOURCE_PSET = "ProfWall_Source"


class ModelDocument:
    """
    IFC4 building model that walls and openings are written into.

    All mutations made by the nodes go through `transactions` so each node
    run is a single undoable step.
    """

    def __init__(self, project_name: str = "ProfWall Model"):
        """
        Initialize model document.

        Args:
            project_name: Name of the IFC project
        """
        self.project_name = project_name
        self.ifc_file: Optional[ifcopenshell.file] = None
        self.project = None
        self.site = None
        self.building = None
        self.transactions: Optional[TransactionManager] = None

    def create_project(self) -> ifcopenshell.file:
        """
        Create new IFC4 project structure (project, site, building).

        Returns:
            IfcOpenShell file object
        """
        logger.info(f"Creating IFC4 project: {self.project_name}")

        self.ifc_file = ifcopenshell.api.run("project.create_file", version="IFC4")

        self.project = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcProject",
            name=self.project_name,
        )

        # Coordinates are taken as given, in meters
        ifcopenshell.api.run(
            "unit.assign_unit",
            self.ifc_file,
            length={"is_metric": True, "raw": "METERS"},
        )

        ifcopenshell.api.run(
            "context.add_context",
            self.ifc_file,
            context_type="Model",
        )

        self.site = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcSite",
            name="Site",
        )

        self.building = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcBuilding",
            name="Building",
        )

        ifcopenshell.api.run(
            "aggregate.assign_object",
            self.ifc_file,
            relating_object=self.project,
            products=[self.site],
        )

        ifcopenshell.api.run(
            "aggregate.assign_object",
            self.ifc_file,
            relating_object=self.site,
            products=[self.building],
        )

        self.transactions = TransactionManager(self.ifc_file)

        logger.success("Created IFC project structure")

        return self.ifc_file

    @classmethod
    def open(cls, path: str) -> "ModelDocument":
        """
        Open an existing IFC file written by ModelDocument.write().

        Raises:
            FileNotFoundError: If the file does not exist
            RuntimeError: If the file has no project or building
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"IFC file not found: {file_path}")

        ifc_file = ifcopenshell.open(str(file_path))
        projects = ifc_file.by_type("IfcProject")
        buildings = ifc_file.by_type("IfcBuilding")
        if not projects or not buildings:
            raise RuntimeError(f"{file_path} has no project/building structure")

        document = cls(project_name=projects[0].Name or file_path.stem)
        document.ifc_file = ifc_file
        document.project = projects[0]
        sites = ifc_file.by_type("IfcSite")
        document.site = sites[0] if sites else None
        document.building = buildings[0]
        document.transactions = TransactionManager(ifc_file)

        logger.info(f"Opened IFC file: {file_path}")
        return document

    def _require_project(self) -> None:
        if not self.ifc_file or not self.building:
            raise RuntimeError("Project not created. Call create_project() first.")

    @property
    def body_context(self):
        return self.ifc_file.by_type("IfcGeometricRepresentationContext")[0]

    def add_level(self, name: str, elevation: float = 0.0):
        """
        Add a building storey at the given elevation.

        Args:
            name: Level name (e.g., "Level 1")
            elevation: Elevation in meters

        Returns:
            The created IfcBuildingStorey
        """
        self._require_project()

        storey = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcBuildingStorey",
            name=name,
        )
        storey.Elevation = elevation

        ifcopenshell.api.run(
            "aggregate.assign_object",
            self.ifc_file,
            relating_object=self.building,
            products=[storey],
        )

        logger.debug(f"Added level '{name}' at {elevation:.3f} m")
        return storey

    def add_wall_type(self, name: str, width: float):
        """
        Add a wall type with a fixed width.

        Args:
            name: Type name
            width: Wall thickness in meters

        Returns:
            The created IfcWallType
        """
        self._require_project()

        if width <= 0:
            raise ValueError(f"Wall width must be positive, got {width}")

        wall_type = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcWallType",
            name=name,
        )
        wall_type.PredefinedType = "STANDARD"

        pset = ifcopenshell.api.run(
            "pset.add_pset",
            self.ifc_file,
            product=wall_type,
            name=WALL_TYPE_PSET,
        )
        ifcopenshell.api.run(
            "pset.edit_pset",
            self.ifc_file,
            pset=pset,
            properties={"Width": float(width)},
        )

        logger.debug(f"Added wall type '{name}' ({width:.3f} m)")
        return wall_type

    def find_level(self, name: str):
        """Find a building storey by name."""
        for storey in self.ifc_file.by_type("IfcBuildingStorey"):
            if storey.Name == name:
                return storey
        return None

    def find_wall_type(self, name: str):
        """Find a wall type by name."""
        for wall_type in self.ifc_file.by_type("IfcWallType"):
            if wall_type.Name == name:
                return wall_type
        return None

    @staticmethod
    def wall_type_width(wall_type) -> float:
        """
        Width stored on a wall type.

        Raises:
            ValueError: If the type carries no width
        """
        width = ifcopenshell.util.element.get_pset(wall_type, WALL_TYPE_PSET, "Width")
        if width is None:
            raise ValueError(f"Wall type '{wall_type.Name}' has no width")
        return float(width)

    def get_element(self, guid: Optional[str]):
        """
        Look up an element by GlobalId.

        Returns:
            The entity, or None if it does not exist (e.g. deleted by the user)
        """
        if not guid or not self.ifc_file:
            return None
        try:
            return self.ifc_file.by_guid(guid)
        except RuntimeError:
            return None

    def delete_element(self, element) -> None:
        """Remove a product and its relationships from the model."""
        if element is None:
            return
        guid = element.GlobalId
        ifcopenshell.api.run("root.remove_product", self.ifc_file, product=element)
        logger.debug(f"Deleted element {guid}")

    def _discard_partial(self, element) -> None:
        """Remove a product whose creation failed part way through."""
        logger.warning(f"Discarding partly created {element.is_a()} {element.GlobalId}")
        ifcopenshell.api.run("root.remove_product", self.ifc_file, product=element)

    def create_wall(
        self,
        profiles: List[PolyCurve],
        frame: PlaneFrame,
        wall_type,
        level,
        arc_segments: int = 16,
    ):
        """
        Create a wall from vertical profiles.

        The first profile is the outer boundary, the rest are holes. The
        profile is extruded through the wall type width, centred on the
        profile plane.

        Args:
            profiles: Closed profiles, all lying in the frame's plane
            frame: Frame of the outer profile
            wall_type: IfcWallType providing the width
            level: IfcBuildingStorey that contains the wall
            arc_segments: Segments used to approximate each arc

        Returns:
            The created IfcWall
        """
        self._require_project()

        width = self.wall_type_width(wall_type)

        ifc_wall = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcWall",
            name=wall_type.Name,
        )

        try:
            ifcopenshell.api.run(
                "geometry.edit_object_placement",
                self.ifc_file,
                product=ifc_wall,
                matrix=np.eye(4),
            )

            outer = self._create_closed_polyline(profiles[0], frame, arc_segments)
            if len(profiles) > 1:
                inner = [self._create_closed_polyline(p, frame, arc_segments) for p in profiles[1:]]
                profile = self.ifc_file.createIfcArbitraryProfileDefWithVoids(
                    "AREA", None, outer, inner
                )
            else:
                profile = self.ifc_file.createIfcArbitraryClosedProfileDef("AREA", None, outer)

            origin = frame.origin.as_array() - frame.normal.as_array() * (width / 2.0)
            self._assign_extrusion(ifc_wall, profile, origin, frame, width)

            ifcopenshell.api.run(
                "type.assign_type",
                self.ifc_file,
                related_objects=[ifc_wall],
                relating_type=wall_type,
            )

            ifcopenshell.api.run(
                "spatial.assign_container",
                self.ifc_file,
                relating_structure=level,
                products=[ifc_wall],
            )
        except Exception:
            self._discard_partial(ifc_wall)
            raise

        return ifc_wall

    def create_opening(
        self,
        ifc_wall,
        corners: RectangleCorners,
        frame: PlaneFrame,
        width: float,
        clearance: float = 0.01,
    ):
        """
        Cut a rectangular opening through a wall.

        The corners are projected onto the wall plane; the opening box spans
        them and runs through the wall width plus clearance on both faces.

        Returns:
            The created IfcOpeningElement
        """
        self._require_project()

        normal = frame.normal.as_array()

        def _on_plane(point: Point3D) -> np.ndarray:
            p = point.as_array()
            return p - normal * float(np.dot(p - frame.origin.as_array(), normal))

        c0 = _on_plane(corners.corner0)
        c1 = _on_plane(corners.corner1)
        diagonal = c1 - c0
        du = float(np.dot(diagonal, frame.x_dir.as_array()))
        dv = float(np.dot(diagonal, frame.y_dir.as_array()))

        opening = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcOpeningElement",
            name="Opening",
        )
        opening.PredefinedType = "OPENING"

        try:
            ifcopenshell.api.run(
                "geometry.edit_object_placement",
                self.ifc_file,
                product=opening,
                matrix=np.eye(4),
            )

            points = [(0.0, 0.0), (du, 0.0), (du, dv), (0.0, dv), (0.0, 0.0)]
            polyline = self.ifc_file.createIfcPolyline(
                [self.ifc_file.createIfcCartesianPoint(p) for p in points]
            )
            profile = self.ifc_file.createIfcArbitraryClosedProfileDef("AREA", None, polyline)

            depth = width + 2.0 * clearance
            origin = c0 - normal * (depth / 2.0)
            self._assign_extrusion(opening, profile, origin, frame, depth)

            self.ifc_file.create_entity(
                "IfcRelVoidsElement",
                GlobalId=ifcopenshell.guid.new(),
                RelatingBuildingElement=ifc_wall,
                RelatedOpeningElement=opening,
            )
        except Exception:
            self._discard_partial(opening)
            raise

        return opening

    def add_source_pset(self, ifc_element, trace_key: str) -> None:
        """
        Record which node run produced an element.

        Args:
            ifc_element: IFC entity
            trace_key: Trace id of the node call
        """
        pset = ifcopenshell.api.run(
            "pset.add_pset",
            self.ifc_file,
            product=ifc_element,
            name=SOURCE_PSET,
        )

        ifcopenshell.api.run(
            "pset.edit_pset",
            self.ifc_file,
            pset=pset,
            properties={
                "GeneratedBy": "ProfWall",
                "GeneratedAt": datetime.now().isoformat(),
                "TraceKey": trace_key,
            },
        )

    def _create_closed_polyline(self, curve: PolyCurve, frame: PlaneFrame, arc_segments: int):
        """2D IfcPolyline of a closed curve in frame coordinates."""
        coords = to_plane_coordinates(curve.tessellate(arc_segments), frame)
        ifc_points = [
            self.ifc_file.createIfcCartesianPoint((float(u), float(v)))
            for u, v in coords
        ]
        # IFC closes a polyline by repeating its first point
        ifc_points.append(ifc_points[0])
        return self.ifc_file.createIfcPolyline(ifc_points)

    def _assign_extrusion(self, product, profile, origin: np.ndarray, frame: PlaneFrame, depth: float) -> None:
        """Extrude a frame-aligned profile along the frame normal."""
        placement = self.ifc_file.createIfcAxis2Placement3D(
            self.ifc_file.createIfcCartesianPoint(tuple(float(c) for c in origin)),
            self.ifc_file.createIfcDirection(tuple(float(c) for c in frame.normal.as_array())),
            self.ifc_file.createIfcDirection(tuple(float(c) for c in frame.x_dir.as_array())),
        )

        extruded_solid = self.ifc_file.createIfcExtrudedAreaSolid(
            profile,
            placement,
            self.ifc_file.createIfcDirection((0.0, 0.0, 1.0)),
            depth,
        )

        representation = self.ifc_file.createIfcShapeRepresentation(
            self.body_context,
            "Body",
            "SweptSolid",
            [extruded_solid],
        )

        ifcopenshell.api.run(
            "geometry.assign_representation",
            self.ifc_file,
            product=product,
            representation=representation,
        )

    def write(self, output_path: str) -> None:
        """
        Write IFC file to disk.

        Args:
            output_path: Path to output .ifc file
        """
        if not self.ifc_file:
            raise RuntimeError("No IFC file to write. Create project first.")

        output_file = Path(output_path)
        self.ifc_file.write(str(output_file))

        file_size_kb = output_file.stat().st_size / 1024

        logger.success(
            f"Wrote IFC file: {output_file.absolute()} ({file_size_kb:.1f} KB)"
        )
