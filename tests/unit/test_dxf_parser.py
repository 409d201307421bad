# File: tests/unit/test_dxf_parser.py
"""
Tests for reading wall profiles and opening loops from DXF drawings.
"""

import math

import ezdxf
import pytest

from profwall.core.models import ArcSegment
from profwall.geometry.profile import is_vertical_profile
from profwall.geometry.rectangle import is_rectangle
from profwall.parsers.dxf_parser import DXFParser, parse_dxf


def _drawing(insunits=6):
    doc = ezdxf.new()
    doc.header["$INSUNITS"] = insunits
    doc.layers.add("WALL_PROFILE")
    doc.layers.add("OPENING")
    return doc


@pytest.fixture
def elevation_dxf(tmp_path):
    doc = _drawing()
    msp = doc.modelspace()
    msp.add_polyline3d(
        [(0, 0, 0), (4, 0, 0), (4, 0, 3), (0, 0, 3)],
        close=True,
        dxfattribs={"layer": "WALL_PROFILE"},
    )
    msp.add_polyline3d(
        [(1, 0, 1), (2, 0, 1), (2, 0, 2), (1, 0, 2)],
        close=True,
        dxfattribs={"layer": "OPENING"},
    )
    path = tmp_path / "elevation.dxf"
    doc.saveas(path)
    return path


def test_extracts_profiles_by_layer(elevation_dxf):
    parser = parse_dxf(str(elevation_dxf))

    walls = parser.extract_profiles(["WALL_PROFILE"])
    openings = parser.extract_profiles(["OPENING"])

    assert len(walls) == 1
    assert len(openings) == 1
    assert is_vertical_profile(walls[0])
    assert is_rectangle(openings[0])
    assert parser.metadata.units == "m"


def test_all_layers_when_none_given(elevation_dxf):
    parser = parse_dxf(str(elevation_dxf))
    assert len(parser.extract_profiles()) == 2


def test_millimetre_drawing_is_scaled(tmp_path):
    doc = _drawing(insunits=4)
    doc.modelspace().add_polyline3d(
        [(0, 0, 0), (4000, 0, 0), (4000, 0, 3000), (0, 0, 3000)],
        close=True,
        dxfattribs={"layer": "WALL_PROFILE"},
    )
    path = tmp_path / "mm.dxf"
    doc.saveas(path)

    profile = parse_dxf(str(path)).extract_profiles()[0]

    assert profile.length() == pytest.approx(14.0)


def test_repeated_end_vertex_closes_polyline(tmp_path):
    doc = _drawing()
    doc.modelspace().add_polyline3d(
        [(0, 0, 0), (4, 0, 0), (4, 0, 3), (0, 0, 3), (0, 0, 0)],
        dxfattribs={"layer": "WALL_PROFILE"},
    )
    path = tmp_path / "repeat.dxf"
    doc.saveas(path)

    profile = parse_dxf(str(path)).extract_profiles()[0]

    assert profile.is_closed
    assert profile.number_of_curves == 4


def test_bulge_becomes_arc(tmp_path):
    doc = _drawing()
    doc.modelspace().add_lwpolyline(
        [(0, 0, 1.0), (2, 0, 0.0)],
        format="xyb",
        dxfattribs={"layer": "WALL_PROFILE"},
    )
    path = tmp_path / "arc.dxf"
    doc.saveas(path)

    profile = parse_dxf(str(path)).extract_profiles()[0]
    arc = profile.curves()[0]

    assert isinstance(arc, ArcSegment)
    assert arc.mid.y == pytest.approx(-1.0)
    assert arc.length() == pytest.approx(math.pi)


def test_drawing_without_polylines_is_rejected(tmp_path):
    doc = _drawing()
    doc.modelspace().add_line((0, 0), (1, 0))
    path = tmp_path / "lines.dxf"
    doc.saveas(path)

    validation = DXFParser(str(path)).parse()
    assert validation.should_abort()

    with pytest.raises(ValueError):
        parse_dxf(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        parse_dxf(str(tmp_path / "missing.dxf"))
