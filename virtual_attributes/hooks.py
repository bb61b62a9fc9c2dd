"""
virtual_attributes/hooks.py
---------------------------
Default extension points of the engine.

Each hook is a plain function referenced from ``VirtualAttributeConfig``.
A host model replaces one by passing another function to its config, e.g.::

    __virtual_config__ = VirtualAttributeConfig(before_bulk_update=allow_bulk_mutation)

Signatures
----------
on_read(record, name)                     before a read-only recompute
on_write_rejected(record, name, value)    write attempted in read-only mode
before_bulk_update(model, criteria)       before an UPDATE ... WHERE criteria
after_bulk_update(sweeper, model, scope)  after it; scope = keys matched beforehand
before_bulk_delete(model, criteria)
"""

from __future__ import annotations

import logging
from typing import Any

from .errors import BulkMutationRejected, ReadOnlyWriteRejected

logger = logging.getLogger(__name__)


def ignore_read(record: Any, name: str) -> None:
    return None


def trace_read(record: Any, name: str) -> None:
    """Development helper: log every read-only recompute."""
    logger.debug("[Virtual] recompute %s.%s", type(record).__name__, name)


def reject_write(record: Any, name: str, value: Any) -> None:
    error = ReadOnlyWriteRejected(name)
    logger.error("[Virtual] %s: %s", type(record).__name__, error)
    raise error


def reject_bulk_mutation(model: type, criteria: Any) -> None:
    error = BulkMutationRejected(model.__name__, "update")
    logger.error("[Lifecycle] %s", error)
    raise error


def reject_bulk_delete(model: type, criteria: Any) -> None:
    error = BulkMutationRejected(model.__name__, "delete")
    logger.error("[Lifecycle] %s", error)
    raise error


def allow_bulk_mutation(model: type, criteria: Any) -> None:
    """Opt-in replacement for the reject hooks."""
    logger.warning("[Lifecycle] bulk mutation on %s allowed; cache will be swept", model.__name__)


def sweep_bulk_scope(sweeper: Any, model: type, scope: Any) -> Any:
    return sweeper.resync(model, scope)


def skip_sweep(sweeper: Any, model: type, scope: Any) -> None:
    logger.warning("[Lifecycle] bulk mutation on %s left the search cache unswept", model.__name__)
