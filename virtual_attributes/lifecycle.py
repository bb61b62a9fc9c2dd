"""
virtual_attributes/lifecycle.py
-------------------------------
Lifecycle Interceptor.

Single-record writes
    ``before_insert`` / ``before_update`` mapper events on every
    ``VirtualAttributeMixin`` model recompute all virtual values and write their
    persisted representation into the row about to be flushed. Whatever the
    caller put into the cache columns is overwritten. This covers create,
    update by key, update by composite key and any ``session.add`` path.

Bulk writes
    An UPDATE/DELETE by criteria cannot recompute rows it never loads, so it is
    gated instead: ``before_bulk_*`` hooks (reject by default) run first and,
    for updates, ``after_bulk_update`` (by default a sweep of the rows
    that matched before the write) runs once the write has completed. ORM bulk statements that bypass the gate
    are refused by a ``do_orm_execute`` session guard.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from sqlalchemy import event

from .errors import BulkMutationRejected
from .mixin import VirtualAttributeMixin

logger = logging.getLogger(__name__)

# Execution option set by the gated bulk paths; the session guard lets these through.
BULK_GATE_OPTION = "virtual_bulk_gate"


def is_virtual_model(model: Any) -> bool:
    return (
        isinstance(model, type)
        and issubclass(model, VirtualAttributeMixin)
        and bool(model.virtual_attribute_names())
    )


# --------------------------------------------------------------------------- #
# Single-record writes
# --------------------------------------------------------------------------- #

@event.listens_for(VirtualAttributeMixin, "before_insert", propagate=True)
def _recompute_before_insert(mapper, connection, target):
    target.recompute_virtual_attributes()


@event.listens_for(VirtualAttributeMixin, "before_update", propagate=True)
def _recompute_before_update(mapper, connection, target):
    target.recompute_virtual_attributes()


# --------------------------------------------------------------------------- #
# Bulk writes
# --------------------------------------------------------------------------- #

def bulk_update(model: type, criteria: Any, execute: Callable[[], int], sweeper: Any) -> int:
    """
    Run ``execute`` (the actual UPDATE ... WHERE criteria) behind the model's hooks.

    The sweep afterwards is scoped to the primary keys matched *before* the
    write, so rows the update moves out of ``criteria`` are still refreshed.

    Returns the affected row count reported by ``execute``.
    """
    if not is_virtual_model(model):
        return execute()

    config = model.virtual_registry().config
    config.before_bulk_update(model, criteria)
    scope = sweeper.store.pk_criteria(model, sweeper.store.primary_keys(model, criteria))
    affected = execute()
    logger.info("[Lifecycle] bulk update on %s touched %s row(s)", model.__name__, affected)
    config.after_bulk_update(sweeper, model, scope)
    return affected


def bulk_delete(model: type, criteria: Any, execute: Callable[[], int]) -> int:
    if not is_virtual_model(model):
        return execute()

    model.virtual_registry().config.before_bulk_delete(model, criteria)
    affected = execute()
    logger.info("[Lifecycle] bulk delete on %s removed %s row(s)", model.__name__, affected)
    return affected


def _guard_bulk_statement(orm_execute_state) -> None:
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    if orm_execute_state.execution_options.get(BULK_GATE_OPTION):
        return

    model: Optional[type]
    if orm_execute_state.bind_mapper is not None:
        model = orm_execute_state.bind_mapper.class_
    else:
        model = getattr(orm_execute_state.statement, "entity_description", {}).get("entity")
    if not is_virtual_model(model):
        return

    error = BulkMutationRejected(
        model.__name__, "update" if orm_execute_state.is_update else "delete"
    )
    logger.error("[Lifecycle] ungated bulk statement: %s", error)
    raise error


def install_bulk_guard(session_factory: Any) -> None:
    """Refuse ORM bulk UPDATE/DELETE on virtual models that skip ``bulk_update``/``bulk_delete``."""
    if not event.contains(session_factory, "do_orm_execute", _guard_bulk_statement):
        event.listen(session_factory, "do_orm_execute", _guard_bulk_statement)
