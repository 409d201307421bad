"""
ProfWall - Profile-driven walls and openings for BIM models

Builds IFC walls from closed vertical curve profiles and cuts rectangular
openings into them, replacing the elements of earlier runs.
"""

__version__ = "0.1.0"

from profwall.geometry.rectangle import is_rectangle, extract_corners
from profwall.geometry.profile import is_vertical_profile
from profwall.nodes.wall import wall_by_profile, create_wall_opening
from profwall.document.model_document import ModelDocument
from profwall.document.trace import ElementBinder
from profwall.parsers.dxf_parser import parse_dxf
from profwall.generation.model_builder import build_model

__all__ = [
    "is_rectangle",
    "extract_corners",
    "is_vertical_profile",
    "wall_by_profile",
    "create_wall_opening",
    "ModelDocument",
    "ElementBinder",
    "parse_dxf",
    "build_model",
]
