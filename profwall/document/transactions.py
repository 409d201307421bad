"""
Transaction handling for model documents.

Nodes call ensure_in_transaction() before touching the model and
transaction_task_done() when they are finished. Nested calls share the
outermost IfcOpenShell transaction, so a node that deletes and recreates an
element produces a single undo step.
"""

from contextlib import contextmanager
from typing import Iterator

from loguru import logger

import ifcopenshell


class TransactionManager:
    """Re-entrant transaction wrapper around an IfcOpenShell file."""

    def __init__(self, ifc_file: ifcopenshell.file):
        self.ifc_file = ifc_file
        self._depth = 0

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def ensure_in_transaction(self) -> None:
        """Open a transaction unless one is already open."""
        if self._depth == 0:
            self.ifc_file.begin_transaction()
            logger.debug("Transaction started")
        self._depth += 1

    def transaction_task_done(self) -> None:
        """Close the current task; commits when the outermost task is done."""
        if self._depth == 0:
            raise RuntimeError("transaction_task_done() called without an open transaction")

        self._depth -= 1
        if self._depth == 0:
            self.ifc_file.end_transaction()
            logger.debug("Transaction committed")

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block inside a transaction task."""
        self.ensure_in_transaction()
        try:
            yield
        finally:
            self.transaction_task_done()
