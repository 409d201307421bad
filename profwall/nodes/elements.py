"""
Element wrappers returned by the nodes.

A wrapper pairs an IFC entity with the geometric data that downstream nodes
need, so an opening can be cut without re-deriving the wall plane.
"""

from typing import Optional

import ifcopenshell.util.element

from profwall.core.models import Point3D, RectangleCorners, Vector3D
from profwall.document.model_document import ModelDocument
from profwall.geometry.profile import PlaneFrame


class WallElement:
    """Wall created from a profile."""

    def __init__(self, entity, frame: PlaneFrame, width: float):
        """
        Args:
            entity: IfcWall
            frame: Frame of the wall's centre plane
            width: Wall thickness
        """
        self.entity = entity
        self.frame = frame
        self.width = width

    @property
    def guid(self) -> str:
        return self.entity.GlobalId

    @classmethod
    def from_entity(cls, entity) -> "WallElement":
        """
        Rebuild a wrapper from a wall written by ModelDocument.create_wall().

        Raises:
            ValueError: If the wall has no type width or no swept solid body
        """
        wall_type = ifcopenshell.util.element.get_type(entity)
        if wall_type is None:
            raise ValueError(f"Wall {entity.GlobalId} has no wall type")
        width = ModelDocument.wall_type_width(wall_type)

        if not entity.Representation or not entity.Representation.Representations:
            raise ValueError(f"Wall {entity.GlobalId} has no body representation")
        solid = entity.Representation.Representations[0].Items[0]
        if not solid.is_a("IfcExtrudedAreaSolid"):
            raise ValueError(f"Wall {entity.GlobalId} body is {solid.is_a()}, expected IfcExtrudedAreaSolid")

        position = solid.Position
        normal = Vector3D(**dict(zip("xyz", position.Axis.DirectionRatios))).normalized()
        x_dir = Vector3D(**dict(zip("xyz", position.RefDirection.DirectionRatios))).normalized()
        location = Point3D(**dict(zip("xyz", position.Location.Coordinates)))
        origin = Point3D.from_array(location.as_array() + normal.as_array() * (width / 2.0))

        frame = PlaneFrame(
            origin=origin,
            x_dir=x_dir,
            y_dir=normal.cross(x_dir).normalized(),
            normal=normal,
        )
        return cls(entity, frame, width)

    def __str__(self) -> str:
        return f"WallElement({self.guid}, width={self.width:.3f})"


class OpeningElement:
    """Rectangular opening cut into a wall."""

    def __init__(self, entity, host: WallElement, corners: RectangleCorners):
        self.entity = entity
        self.host = host
        self.corners = corners

    @property
    def guid(self) -> str:
        return self.entity.GlobalId

    @property
    def host_guid(self) -> Optional[str]:
        return self.host.guid if self.host else None

    def __str__(self) -> str:
        return f"OpeningElement({self.guid}, host={self.host_guid})"
