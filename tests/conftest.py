# tests/conftest.py
import sys
import os

# Add repository root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from profwall.core.models import Point3D, PolyCurve
from profwall.document.model_document import ModelDocument
from profwall.document.trace import ElementBinder


def loop(*coords):
    """Closed PolyCurve through the given (x, y, z) tuples."""
    return PolyCurve.by_points([Point3D(x=x, y=y, z=z) for x, y, z in coords])


@pytest.fixture
def unit_square():
    return loop((0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0))


@pytest.fixture
def wall_profile():
    """4 m x 3 m profile standing in the XZ plane."""
    return loop((0, 0, 0), (4, 0, 0), (4, 0, 3), (0, 0, 3))


@pytest.fixture
def document():
    doc = ModelDocument(project_name="Test Model")
    doc.create_project()
    return doc


@pytest.fixture
def level(document):
    return document.add_level("Level 1", 0.0)


@pytest.fixture
def wall_type(document):
    return document.add_wall_type("Generic - 200mm", 0.2)


@pytest.fixture
def binder():
    return ElementBinder()
