"""
Element trace binding.

Every node call site has a trace key. The element created by the last run of
that call site is remembered under the key, so the next run replaces it
instead of adding a duplicate. Bindings can be persisted to a JSON file to
survive between sessions.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger


class ElementBinder:
    """Maps trace keys to the GlobalId of the element they created."""

    def __init__(self, trace_path: Optional[str] = None):
        """
        Initialize element binder.

        Args:
            trace_path: JSON file to load bindings from and save them to.
                If None, bindings only live in memory.
        """
        self.trace_path = Path(trace_path) if trace_path else None
        self._bindings: Dict[str, str] = {}

        if self.trace_path and self.trace_path.exists():
            self._load()

    def _load(self) -> None:
        with open(self.trace_path, 'r') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Trace file {self.trace_path} must contain a JSON object")

        self._bindings = {str(k): str(v) for k, v in data.items()}
        logger.debug(f"Loaded {len(self._bindings)} trace bindings from {self.trace_path}")

    def save(self) -> None:
        """Write bindings to the trace file, if one is configured."""
        if not self.trace_path:
            return
        with open(self.trace_path, 'w') as f:
            json.dump(self._bindings, f, indent=2, sort_keys=True)

    def get_trace(self, trace_key: str) -> Optional[str]:
        """GlobalId bound to a trace key, if any."""
        return self._bindings.get(trace_key)

    def get_element_from_trace(self, document, trace_key: str, ifc_class: Optional[str] = None):
        """
        Element created by the previous run of a call site.

        Args:
            document: ModelDocument to look the element up in
            trace_key: Trace id of the node call
            ifc_class: Only return the element if it is of this class

        Returns:
            The IFC entity, or None if nothing is bound, the element has been
            removed from the model, or it has a different class
        """
        guid = self._bindings.get(trace_key)
        if guid is None:
            return None

        element = document.get_element(guid)
        if element is None:
            logger.debug(f"Traced element {guid} for '{trace_key}' no longer exists")
            return None

        if ifc_class and not element.is_a(ifc_class):
            logger.debug(f"Traced element {guid} for '{trace_key}' is {element.is_a()}, not {ifc_class}")
            return None

        return element

    def cleanup_and_set_element_for_trace(self, trace_key: str, element) -> None:
        """
        Bind a newly created element to a call site.

        Passing None clears the binding.
        """
        if element is None:
            self._bindings.pop(trace_key, None)
        else:
            self._bindings[trace_key] = element.GlobalId
        self.save()

    def keys(self) -> List[str]:
        return list(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)
