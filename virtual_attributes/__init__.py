"""
virtual_attributes
------------------
Searchable computed ("virtual") attributes for SQLAlchemy models.

Values derived in Python are cached in persisted columns, kept in sync on
every single-record write, and exposed to SQL filters and sorting.
"""

from .config import CacheStrategy, VirtualAttributeConfig
from .codec import PackedCodec
from .criteria import SearchCriteria, as_clause
from .engine import AttributeEngine
from .errors import (
    BulkMutationRejected,
    ConfigurationError,
    ReadOnlyWriteRejected,
    UnknownVirtualAttribute,
    UnsupportedQueryEngine,
    VirtualAttributeError,
)
from .hooks import allow_bulk_mutation, skip_sweep, trace_read
from .lifecycle import bulk_delete, bulk_update, install_bulk_guard, is_virtual_model
from .mixin import VirtualAttributeMixin
from .naming import NameMapper
from .registry import VirtualAttributeRegistry, VirtualAttributeSpec
from .store import RecordStore
from .sweeper import ConsistencySweeper, SweepReport

__all__ = [
    "AttributeEngine",
    "BulkMutationRejected",
    "CacheStrategy",
    "ConfigurationError",
    "ConsistencySweeper",
    "NameMapper",
    "PackedCodec",
    "ReadOnlyWriteRejected",
    "RecordStore",
    "SearchCriteria",
    "SweepReport",
    "UnknownVirtualAttribute",
    "UnsupportedQueryEngine",
    "VirtualAttributeConfig",
    "VirtualAttributeError",
    "VirtualAttributeMixin",
    "VirtualAttributeRegistry",
    "VirtualAttributeSpec",
    "allow_bulk_mutation",
    "as_clause",
    "bulk_delete",
    "bulk_update",
    "install_bulk_guard",
    "is_virtual_model",
    "skip_sweep",
    "trace_read",
]
