"""
Core data models for ProfWall.

Geometry inputs (points, vectors, curve segments, poly curves) are Pydantic
models so caller-supplied data is validated on construction.
"""

import math
from typing import List, Literal, Optional, Tuple, Union

import numpy as np
from pydantic import BaseModel, Field, field_validator

# Length tolerance shared by closedness and planarity checks (model units)
LENGTH_TOLERANCE = 0.001


class GeometryError(ValueError):
    """Raised when geometry is too degenerate to derive a frame or plane."""


class Point3D(BaseModel):
    """3D point in model space."""
    x: float
    y: float
    z: float = 0.0

    @field_validator("x", "y", "z")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        """Reject NaN and infinite coordinates."""
        if not math.isfinite(v):
            raise ValueError("Coordinates must be finite")
        return v

    def distance_to(self, other: "Point3D") -> float:
        """Calculate Euclidean distance to another point."""
        return ((self.x - other.x) ** 2 +
                (self.y - other.y) ** 2 +
                (self.z - other.z) ** 2) ** 0.5

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    @classmethod
    def from_array(cls, values) -> "Point3D":
        return cls(x=float(values[0]), y=float(values[1]), z=float(values[2]))

    def __str__(self) -> str:
        return f"Point3D({self.x:.4f}, {self.y:.4f}, {self.z:.4f})"


class Vector3D(BaseModel):
    """3D direction vector."""
    x: float
    y: float
    z: float

    @classmethod
    def by_two_points(cls, start: Point3D, end: Point3D) -> "Vector3D":
        """Vector pointing from start to end."""
        return cls(x=end.x - start.x, y=end.y - start.y, z=end.z - start.z)

    @classmethod
    def z_axis(cls) -> "Vector3D":
        return cls(x=0.0, y=0.0, z=1.0)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.as_array()))

    def reverse(self) -> "Vector3D":
        return Vector3D(x=-self.x, y=-self.y, z=-self.z)

    def normalized(self) -> "Vector3D":
        """Unit vector in the same direction."""
        length = self.length
        if length < 1e-12:
            raise GeometryError("Cannot normalize a zero-length vector")
        return Vector3D(x=self.x / length, y=self.y / length, z=self.z / length)

    def dot(self, other: "Vector3D") -> float:
        return float(np.dot(self.as_array(), other.as_array()))

    def cross(self, other: "Vector3D") -> "Vector3D":
        c = np.cross(self.as_array(), other.as_array())
        return Vector3D(x=float(c[0]), y=float(c[1]), z=float(c[2]))

    def angle_to(self, other: "Vector3D") -> float:
        """
        Angle to another vector in radians (0-π).

        Returns 0.0 when either vector has zero length.
        """
        a = self.as_array()
        b = other.as_array()
        norm = np.linalg.norm(a) * np.linalg.norm(b)
        if norm < 1e-12:
            return 0.0
        # atan2 keeps precision near 0 and π where arccos does not
        return float(math.atan2(np.linalg.norm(np.cross(a, b)), np.dot(a, b)))

    def angle_with_vector(self, other: "Vector3D") -> float:
        """Angle to another vector in degrees (0-180)."""
        return math.degrees(self.angle_to(other))


class Plane(BaseModel):
    """Plane defined by an origin and a unit normal."""
    origin: Point3D
    normal: Vector3D

    def distance_to(self, point: Point3D) -> float:
        """Signed distance from the plane to a point."""
        return Vector3D.by_two_points(self.origin, point).dot(self.normal)


class LineSegment(BaseModel):
    """Straight segment between two points."""
    kind: Literal["line"] = "line"
    start: Point3D
    end: Point3D

    @property
    def start_point(self) -> Point3D:
        return self.start

    @property
    def end_point(self) -> Point3D:
        return self.end

    def length(self) -> float:
        return self.start.distance_to(self.end)

    def defining_points(self) -> List[Point3D]:
        return [self.start, self.end]

    def tessellate(self, segments: int = 1) -> List[Point3D]:
        """Points along the segment, excluding the end point."""
        return [self.start]


class ArcSegment(BaseModel):
    """Circular arc passing through start, mid and end."""
    kind: Literal["arc"] = "arc"
    start: Point3D
    mid: Point3D
    end: Point3D

    @property
    def start_point(self) -> Point3D:
        return self.start

    @property
    def end_point(self) -> Point3D:
        return self.end

    def defining_points(self) -> List[Point3D]:
        return [self.start, self.mid, self.end]

    def _circle(self) -> Tuple[np.ndarray, float, np.ndarray, np.ndarray, float]:
        """
        Center, radius, in-plane basis (u, v) and sweep angle of the arc.

        u points from the center to the start point, v is rotated 90° toward
        the mid point.
        """
        a = self.start.as_array()
        b = self.mid.as_array()
        c = self.end.as_array()

        ab = b - a
        ac = c - a
        n = np.cross(ab, ac)
        n_sq = float(np.dot(n, n))
        if n_sq < 1e-18:
            raise GeometryError("Arc points are collinear")

        # Circumcenter of the triangle a, b, c
        center = a + (np.cross(n, ab) * np.dot(ac, ac) +
                      np.cross(ac, n) * np.dot(ab, ab)) / (2.0 * n_sq)
        radius = float(np.linalg.norm(a - center))

        u = (a - center) / radius
        v = np.cross(n / math.sqrt(n_sq), u)

        def _angle(p: np.ndarray) -> float:
            d = p - center
            angle = math.atan2(float(np.dot(d, v)), float(np.dot(d, u)))
            return angle if angle >= 0.0 else angle + 2.0 * math.pi

        sweep = _angle(c)
        return center, radius, u, v, sweep

    def radius(self) -> float:
        return self._circle()[1]

    def length(self) -> float:
        _, radius, _, _, sweep = self._circle()
        return radius * sweep

    def point_at(self, t: float) -> Point3D:
        """Point at normalized parameter t (0 = start, 1 = end)."""
        center, radius, u, v, sweep = self._circle()
        angle = sweep * t
        return Point3D.from_array(center + radius * (math.cos(angle) * u + math.sin(angle) * v))

    def tessellate(self, segments: int = 16) -> List[Point3D]:
        """Points along the arc, excluding the end point."""
        segments = max(segments, 2)
        return [self.start] + [self.point_at(i / segments) for i in range(1, segments)]


CurveSegment = Union[LineSegment, ArcSegment]


class PolyCurve(BaseModel):
    """Ordered sequence of connected curve segments."""
    segments: List[CurveSegment]

    @field_validator("segments")
    @classmethod
    def validate_segments(cls, v: List[CurveSegment]) -> List[CurveSegment]:
        if not v:
            raise ValueError("PolyCurve requires at least one segment")
        return v

    @classmethod
    def by_points(cls, points: List[Point3D], closed: bool = True) -> "PolyCurve":
        """Join consecutive points with line segments."""
        if len(points) < 2:
            raise ValueError("At least two points are required")
        pairs = list(zip(points[:-1], points[1:]))
        if closed:
            pairs.append((points[-1], points[0]))
        return cls(segments=[LineSegment(start=s, end=e) for s, e in pairs])

    @property
    def number_of_curves(self) -> int:
        return len(self.segments)

    def curves(self) -> List[CurveSegment]:
        return list(self.segments)

    def length(self) -> float:
        return sum(segment.length() for segment in self.segments)

    @property
    def is_closed(self) -> bool:
        """Last segment ends where the first segment starts."""
        first = self.segments[0].start_point
        last = self.segments[-1].end_point
        return first.distance_to(last) <= LENGTH_TOLERANCE

    def defining_points(self) -> List[Point3D]:
        points: List[Point3D] = []
        for segment in self.segments:
            points.extend(segment.defining_points())
        return points

    def base_plane(self) -> Plane:
        """
        Best-fit plane through the curve's defining points.

        Raises:
            GeometryError: If the points are collinear or coincident
        """
        coords = np.array([p.as_array() for p in self.defining_points()])
        centroid = coords.mean(axis=0)
        _, singular, vt = np.linalg.svd(coords - centroid)

        # Second singular value ~0 means every point sits on one line
        if len(singular) < 2 or singular[1] < 1e-9:
            raise GeometryError("Curve does not span a plane")

        normal = vt[-1]
        # Keep normals deterministic: first non-zero component positive
        for component in normal:
            if abs(component) > 1e-12:
                if component < 0:
                    normal = -normal
                break

        return Plane(
            origin=Point3D.from_array(centroid),
            normal=Vector3D(x=float(normal[0]), y=float(normal[1]), z=float(normal[2])),
        )

    @property
    def is_planar(self) -> bool:
        try:
            plane = self.base_plane()
        except GeometryError:
            return False
        return all(
            abs(plane.distance_to(p)) <= LENGTH_TOLERANCE
            for p in self.defining_points()
        )

    def tessellate(self, arc_segments: int = 16) -> List[Point3D]:
        """Ordered vertices approximating the curve, closing point omitted."""
        points: List[Point3D] = []
        for segment in self.segments:
            points.extend(segment.tessellate(arc_segments))
        return points

    def __str__(self) -> str:
        return f"PolyCurve({self.number_of_curves} curves, closed={self.is_closed})"


class RectangleCorners(BaseModel):
    """Two diagonally opposite corners of a validated rectangle."""
    corner0: Point3D
    corner1: Point3D

    def diagonal(self) -> float:
        return self.corner0.distance_to(self.corner1)


class DrawingMetadata(BaseModel):
    """Metadata about the source drawing."""
    file_path: str
    file_format: str  # "DXF"
    units: str = "m"
    layers: List[str] = Field(default_factory=list)
    has_layer_structure: bool = False


class ValidationResult(BaseModel):
    """Result of fail-fast validation."""
    is_valid: bool
    critical_errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    metadata: Optional[DrawingMetadata] = None

    def should_abort(self) -> bool:
        """Check if critical errors require aborting."""
        return len(self.critical_errors) > 0
