"""
DXF file parser using ezdxf library.

Reads wall profiles and opening loops drawn as polylines in 3D space, with
fail-fast validation of the drawing.
"""

from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger

try:
    import ezdxf
    from ezdxf.document import Drawing
    from ezdxf.math import Vec3
except ImportError:
    raise ImportError(
        "ezdxf is required for DXF parsing. Install with: pip install ezdxf"
    )

from profwall.core.models import (
    ArcSegment,
    DrawingMetadata,
    LineSegment,
    Point3D,
    PolyCurve,
    ValidationResult,
)

# $INSUNITS code -> (name, meters per unit)
UNITS = {
    0: ("unitless", 1.0),
    1: ("inches", 0.0254),
    2: ("feet", 0.3048),
    4: ("mm", 0.001),
    5: ("cm", 0.01),
    6: ("m", 1.0),
    14: ("dm", 0.1),
}


class DXFParser:
    """Parser for DXF files with fail-fast validation."""

    def __init__(self, file_path: str):
        """
        Initialize DXF parser.

        Args:
            file_path: Path to DXF file
        """
        self.file_path = Path(file_path)
        self.doc: Optional[Drawing] = None
        self.metadata: Optional[DrawingMetadata] = None
        self.scale = 1.0

    def parse(self) -> ValidationResult:
        """
        Parse DXF file with fail-fast validation.

        Returns:
            ValidationResult indicating if file is suitable for processing

        Raises:
            FileNotFoundError: If DXF file doesn't exist
            ezdxf.DXFError: If file is not valid DXF
        """
        logger.info(f"Parsing DXF file: {self.file_path}")

        if not self.file_path.exists():
            raise FileNotFoundError(f"DXF file not found: {self.file_path}")

        try:
            self.doc = ezdxf.readfile(str(self.file_path))
        except ezdxf.DXFError as e:
            logger.error(f"Failed to parse DXF file: {e}")
            raise

        self.metadata = self._extract_metadata()

        validation = self._validate()

        if validation.should_abort():
            logger.error(
                f"DXF validation failed with {len(validation.critical_errors)} "
                f"critical errors"
            )
            for error in validation.critical_errors:
                logger.error(f"  - {error}")
        else:
            logger.success(
                f"DXF validation passed (with {len(validation.warnings)} warnings)"
            )

        return validation

    def _extract_metadata(self) -> DrawingMetadata:
        """Extract metadata from DXF document."""
        assert self.doc is not None

        layers = [layer.dxf.name for layer in self.doc.layers]

        # 1=inches, 2=feet, 4=mm, 5=cm, 6=m, 14=decimeters
        insunits = self.doc.header.get("$INSUNITS", 6)
        units, self.scale = UNITS.get(insunits, ("unitless", 1.0))

        metadata = DrawingMetadata(
            file_path=str(self.file_path),
            file_format="DXF",
            units=units,
            layers=layers,
            has_layer_structure=len(layers) > 1,
        )

        logger.debug(f"Extracted metadata: {len(layers)} layers, units={units}")
        return metadata

    def _validate(self) -> ValidationResult:
        """
        Run fail-fast validation checks.

        Critical checks (will abort):
        - Drawing must contain polylines

        Warnings:
        - Drawing has no units, coordinates are taken as meters
        - Minimal layer structure
        """
        assert self.doc is not None
        assert self.metadata is not None

        critical_errors = []
        warnings = []

        msp = self.doc.modelspace()
        polyline_count = len(msp.query("LWPOLYLINE POLYLINE"))
        if polyline_count == 0:
            critical_errors.append("Drawing contains no polylines to build walls from")

        if self.metadata.units == "unitless":
            warnings.append("Drawing units not set - coordinates are taken as meters")

        if not self.metadata.has_layer_structure:
            warnings.append(
                "Drawing has minimal layer structure - walls and openings "
                "cannot be told apart by layer"
            )

        return ValidationResult(
            is_valid=len(critical_errors) == 0,
            critical_errors=critical_errors,
            warnings=warnings,
            metadata=self.metadata,
        )

    def extract_profiles(self, layers: Optional[List[str]] = None) -> List[PolyCurve]:
        """
        Extract polylines as curve loops, converted to meters.

        Bulged vertices become arc segments. Polylines whose last vertex
        repeats the first are treated as closed.

        Args:
            layers: Layer names to extract from (None = all layers)

        Returns:
            List of PolyCurve objects in world coordinates
        """
        assert self.doc is not None

        msp = self.doc.modelspace()
        profiles = []

        for entity in msp.query("LWPOLYLINE"):
            if layers is not None and entity.dxf.layer not in layers:
                continue

            elevation = entity.dxf.get("elevation", 0.0)
            vertices = [
                (Vec3(x, y, elevation), bulge)
                for x, y, bulge in entity.get_points("xyb")
            ]
            curve = self._build_curve(entity, vertices, entity.closed)
            if curve is not None:
                profiles.append(curve)

        for entity in msp.query("POLYLINE"):
            if layers is not None and entity.dxf.layer not in layers:
                continue
            if not (entity.is_2d_polyline or entity.is_3d_polyline):
                continue

            if entity.is_2d_polyline:
                # 2D vertices are in OCS; their height is the polyline elevation
                elevation = Vec3(entity.dxf.get("elevation", (0, 0, 0))).z
                vertices = [
                    (Vec3(v.dxf.location.x, v.dxf.location.y, elevation), v.dxf.get("bulge", 0.0))
                    for v in entity.vertices
                ]
            else:
                vertices = [(Vec3(v.dxf.location), 0.0) for v in entity.vertices]
            curve = self._build_curve(entity, vertices, entity.is_closed)
            if curve is not None:
                profiles.append(curve)

        logger.debug(
            f"Extracted {len(profiles)} profiles "
            f"from {len(layers) if layers is not None else 'all'} layer(s)"
        )
        return profiles

    def _build_curve(self, entity, vertices: List[Tuple[Vec3, float]], closed: bool) -> Optional[PolyCurve]:
        """Turn OCS vertices with bulges into a PolyCurve."""
        if len(vertices) > 2 and vertices[0][0].isclose(vertices[-1][0]):
            vertices = vertices[:-1]
            closed = True

        if len(vertices) < 2:
            logger.debug(f"Skipping polyline with {len(vertices)} vertices on '{entity.dxf.layer}'")
            return None

        ocs = entity.ocs()

        def _to_point(location: Vec3) -> Point3D:
            wcs = ocs.to_wcs(location) * self.scale
            return Point3D(x=wcs.x, y=wcs.y, z=wcs.z)

        count = len(vertices) if closed else len(vertices) - 1
        segments = []
        for i in range(count):
            start, bulge = vertices[i]
            end = vertices[(i + 1) % len(vertices)][0]

            if abs(bulge) > 1e-9:
                segments.append(ArcSegment(
                    start=_to_point(start),
                    mid=_to_point(_bulge_midpoint(start, end, bulge)),
                    end=_to_point(end),
                ))
            else:
                segments.append(LineSegment(start=_to_point(start), end=_to_point(end)))

        return PolyCurve(segments=segments)

    def get_layer_names(self) -> List[str]:
        """Get all layer names in the drawing."""
        assert self.metadata is not None
        return self.metadata.layers


def _bulge_midpoint(start: Vec3, end: Vec3, bulge: float) -> Vec3:
    """
    Midpoint of a bulged polyline segment, in OCS.

    Positive bulges run counter-clockwise, so the arc lies to the right of
    the chord.
    """
    chord = end - start
    left = Vec3(-chord.y, chord.x, 0.0).normalize()
    sagitta = bulge * chord.magnitude / 2.0
    return start.lerp(end, 0.5) - left * sagitta


def parse_dxf(file_path: str) -> DXFParser:
    """
    Parse DXF file with fail-fast validation.

    Args:
        file_path: Path to DXF file

    Returns:
        DXFParser instance with parsed document

    Raises:
        FileNotFoundError: If file doesn't exist
        ezdxf.DXFError: If file is not valid DXF
        ValueError: If validation fails (critical errors)
    """
    parser = DXFParser(file_path)
    validation = parser.parse()

    if validation.should_abort():
        error_msg = "\n".join(validation.critical_errors)
        raise ValueError(
            f"DXF validation failed with critical errors:\n{error_msg}\n\n"
            f"Unable to proceed. Please fix the drawing and try again."
        )

    return parser
