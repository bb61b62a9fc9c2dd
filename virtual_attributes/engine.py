"""
virtual_attributes/engine.py
----------------------------
Attribute Engine: per-record computed value store and the read/write gateway.

Modes
-----
read-only (default)
    Every read recomputes through the getter. Writes are rejected through the
    ``on_write_rejected`` hook, which raises by default.
writable
    The virtual attribute behaves like a plain in-memory field: reads return
    whatever was last assigned, writes are stored verbatim and never persisted.

Whatever the mode, ``recompute_all`` (run before every insert/update) writes
the authoritative computed values into the persisted cache attributes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from .registry import VirtualAttributeRegistry

logger = logging.getLogger(__name__)


class AttributeEngine:
    def __init__(self, record: Any, registry: VirtualAttributeRegistry, read_only: bool = None):
        self._record = record
        self._registry = registry
        self.read_only = registry.config.read_only if read_only is None else bool(read_only)
        self._values: Dict[str, Any] = {name: None for name in registry.names}
        self._probe()

    def _probe(self) -> None:
        # Getter errors surface here, at construction, never masked later.
        for spec in self._registry:
            spec.compute(self._record)

    @property
    def registry(self) -> VirtualAttributeRegistry:
        return self._registry

    def has(self, name: str) -> bool:
        return self._registry.has(name)

    def values(self) -> Dict[str, Any]:
        return dict(self._values)

    def read(self, name: str) -> Any:
        virtual = self._registry.resolve(name)
        if virtual is None:
            return getattr(self._record, name)

        if self.read_only:
            self._registry.config.on_read(self._record, virtual)
            self._values[virtual] = self._registry.compute(self._record, virtual)
        return self._values[virtual]

    def write(self, name: str, value: Any) -> None:
        virtual = self._registry.resolve(name)
        if virtual is None:
            setattr(self._record, name, value)
            return

        if self.read_only:
            self._registry.config.on_write_rejected(self._record, virtual, value)
            return
        self._values[virtual] = value

    def recompute_all(self) -> Dict[str, Any]:
        """Compute every virtual attribute and refresh the persisted cache on the record."""
        values = {spec.name: spec.compute(self._record) for spec in self._registry}
        if self.read_only:
            self._values.update(values)

        for key, value in self._registry.to_persisted(values).items():
            setattr(self._record, key, value)
        return values
