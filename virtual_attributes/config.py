"""
virtual_attributes/config.py
----------------------------
Static configuration of virtual attributes for one host model.

A model carries one frozen ``VirtualAttributeConfig`` in ``__virtual_config__``.
Prefixes, cache field names, separators, batch size, default mode and the
hook functions all live here.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable

from . import hooks

DEFAULT_BATCH_SIZE = 100


class CacheStrategy(str, Enum):
    """How computed values are persisted for search."""

    PACKED = "packed"        # one text column: ",name:value,name:value,"
    SHADOWED = "shadowed"    # one column per attribute: "_name"


@dataclass(frozen=True)
class VirtualAttributeConfig:
    strategy: CacheStrategy = CacheStrategy.SHADOWED
    getter_prefix: str = "virtual"
    attribute_prefix: str = "_"
    packed_field: str = "virtual_cache"
    col_separator: str = ","
    val_separator: str = ":"
    batch_size: int = DEFAULT_BATCH_SIZE
    read_only: bool = True

    on_read: Callable[[Any, str], None] = hooks.ignore_read
    on_write_rejected: Callable[[Any, str, Any], None] = hooks.reject_write
    before_bulk_update: Callable[[type, Any], None] = hooks.reject_bulk_mutation
    after_bulk_update: Callable[[Any, type, Any], Any] = hooks.sweep_bulk_scope
    before_bulk_delete: Callable[[type, Any], None] = hooks.reject_bulk_delete

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be positive")
        if not self.col_separator or not self.val_separator:
            raise ValueError("separators must be non-empty")
        if self.col_separator == self.val_separator:
            raise ValueError("column and value separators must differ")

    def with_overrides(self, **changes: Any) -> "VirtualAttributeConfig":
        return replace(self, **changes)

    def as_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "getter_prefix": self.getter_prefix,
            "attribute_prefix": self.attribute_prefix,
            "packed_field": self.packed_field,
            "col_separator": self.col_separator,
            "val_separator": self.val_separator,
            "batch_size": self.batch_size,
            "read_only": self.read_only,
        }
