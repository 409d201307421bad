# File: tests/unit/test_document.py
"""
Tests for the model document, transactions and trace bindings.
"""

import json
from types import SimpleNamespace

import pytest

from profwall.core.models import Point3D, RectangleCorners
from profwall.document.model_document import ModelDocument
from profwall.document.trace import ElementBinder
from profwall.document.transactions import TransactionManager
from profwall.geometry.profile import profile_frame


class TestModelDocument:

    def test_requires_project(self):
        with pytest.raises(RuntimeError):
            ModelDocument().add_level("Level 1")

    def test_levels_and_types_can_be_found(self, document, level, wall_type):
        assert document.find_level("Level 1") == level
        assert document.find_wall_type("Generic - 200mm") == wall_type
        assert document.find_level("Roof") is None

    def test_wall_type_width(self, document, wall_type):
        assert ModelDocument.wall_type_width(wall_type) == pytest.approx(0.2)

    def test_wall_type_width_must_be_positive(self, document):
        with pytest.raises(ValueError):
            document.add_wall_type("Broken", 0.0)

    def test_unknown_guid_returns_none(self, document):
        assert document.get_element("0000000000000000000000") is None
        assert document.get_element(None) is None

    def test_write_and_open(self, document, level, wall_type, tmp_path):
        path = tmp_path / "model.ifc"
        document.write(str(path))

        reopened = ModelDocument.open(str(path))
        assert reopened.project_name == "Test Model"
        assert reopened.find_level("Level 1") is not None
        assert reopened.find_wall_type("Generic - 200mm") is not None

    def test_open_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ModelDocument.open(str(tmp_path / "missing.ifc"))

    def test_failed_wall_is_discarded(self, document, wall_profile, wall_type):
        with pytest.raises(Exception):
            document.create_wall([wall_profile], profile_frame(wall_profile), wall_type, wall_type)

        assert len(document.ifc_file.by_type("IfcWall")) == 0

    def test_failed_opening_is_discarded(self, document, wall_profile, wall_type, level, monkeypatch):
        frame = profile_frame(wall_profile)
        ifc_wall = document.create_wall([wall_profile], frame, wall_type, level)
        corners = RectangleCorners(corner0=Point3D(x=1, y=0, z=1), corner1=Point3D(x=2, y=0, z=2))

        def fail(*args, **kwargs):
            raise RuntimeError("no body")

        monkeypatch.setattr(document, "_assign_extrusion", fail)
        with pytest.raises(RuntimeError):
            document.create_opening(ifc_wall, corners, frame, 0.2)

        assert len(document.ifc_file.by_type("IfcOpeningElement")) == 0
        assert len(document.ifc_file.by_type("IfcWall")) == 1


class TestTransactionManager:

    def test_nested_tasks_share_one_transaction(self, document):
        manager = TransactionManager(document.ifc_file)

        manager.ensure_in_transaction()
        manager.ensure_in_transaction()
        assert manager.in_transaction

        manager.transaction_task_done()
        assert manager.in_transaction
        manager.transaction_task_done()
        assert not manager.in_transaction

    def test_done_without_transaction_raises(self, document):
        with pytest.raises(RuntimeError):
            TransactionManager(document.ifc_file).transaction_task_done()

    def test_context_manager_closes_on_error(self, document):
        manager = TransactionManager(document.ifc_file)

        with pytest.raises(KeyError):
            with manager.transaction():
                raise KeyError("boom")

        assert not manager.in_transaction


class TestElementBinder:

    def test_binding_persists_to_file(self, tmp_path):
        path = tmp_path / "trace.json"
        binder = ElementBinder(str(path))
        binder.cleanup_and_set_element_for_trace("wall:0", SimpleNamespace(GlobalId="abc"))

        assert json.loads(path.read_text()) == {"wall:0": "abc"}
        assert ElementBinder(str(path)).get_trace("wall:0") == "abc"

    def test_clearing_binding(self):
        binder = ElementBinder()
        binder.cleanup_and_set_element_for_trace("k", SimpleNamespace(GlobalId="abc"))
        binder.cleanup_and_set_element_for_trace("k", None)

        assert binder.get_trace("k") is None
        assert len(binder) == 0

    def test_invalid_trace_file(self, tmp_path):
        path = tmp_path / "trace.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(ValueError):
            ElementBinder(str(path))

    def test_element_of_other_class_is_ignored(self, document, level):
        binder = ElementBinder()
        binder.cleanup_and_set_element_for_trace("k", level)

        assert binder.get_element_from_trace(document, "k") == level
        assert binder.get_element_from_trace(document, "k", "IfcWall") is None

    def test_deleted_element_is_not_returned(self, document, binder, wall_profile, wall_type, level):
        from profwall.nodes.wall import wall_by_profile

        wall = wall_by_profile([wall_profile], wall_type, level, document, binder, trace_key="w")
        document.delete_element(wall.entity)

        assert binder.get_trace("w") is not None
        assert binder.get_element_from_trace(document, "w", "IfcWall") is None
