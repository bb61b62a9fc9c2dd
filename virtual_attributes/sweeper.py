"""
virtual_attributes/sweeper.py
-----------------------------
Consistency Sweeper: re-derive the search cache for many rows.

Run it after adding a virtual attribute or changing a getter, so the stored
cache matches the new rule. Each matching record gets its own cache-only save
(one store round trip per row), so this belongs in a maintenance window, not
in request handling.

Guarantees
----------
- batches are read sequentially, ``ceil(N / batch_size)`` reads for N rows
- no global transaction: a failure stops the sweep, earlier saves stay
- idempotent: a second run over unchanged data reports ``changed == 0``
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .config import CacheStrategy
from .store import RecordStore

logger = logging.getLogger(__name__)


def _packed_column(model: type) -> str:
    """Table column behind the packed cache attribute."""
    attr = getattr(model, model.virtual_registry().config.packed_field)
    return attr.property.columns[0].name


@dataclass
class SweepReport:
    model: str
    batches: int = 0
    saved: int = 0
    changed: int = 0
    stale: int = 0
    column_added: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConsistencySweeper:
    def __init__(self, store: RecordStore, batch_size: Optional[int] = None):
        self.store = store
        self.batch_size = batch_size

    def _batch_size(self, model: type, batch_size: Optional[int]) -> int:
        size = batch_size or self.batch_size or model.virtual_registry().config.batch_size
        if size < 1:
            raise ValueError("batch_size must be positive")
        return size

    def ensure_cache_column(self, model: type) -> bool:
        """PACKED only: add the packed cache column when the table predates it."""
        registry = model.virtual_registry()
        if registry.strategy is not CacheStrategy.PACKED or not registry:
            return False
        column = _packed_column(model)
        if self.store.has_column(model, column):
            return False
        logger.warning("[Sweeper] %s: adding missing cache column %r", model.__name__, column)
        self.store.add_text_column(model, column)
        return True

    def resync(self, model: type, criteria: Any = None, batch_size: Optional[int] = None) -> SweepReport:
        """Force a cache-only save of every record matching ``criteria`` (all when None)."""
        registry = model.virtual_registry()
        report = SweepReport(model=model.__name__)
        key = registry.sweep_key()
        if key is None:
            return report

        report.column_added = self.ensure_cache_column(model)
        size = self._batch_size(model, batch_size)
        logger.info("[Sweeper] %s: resync started (batch size %d)", model.__name__, size)

        for batch in self.store.iter_batches(model, criteria, size):
            report.batches += 1
            for record in batch:
                before = registry.persisted_snapshot(record)
                # Touching one cache attribute is enough: before_update recomputes all of them.
                self.store.save_attributes(record, [key])
                report.saved += 1
                if registry.persisted_snapshot(record) != before:
                    report.changed += 1
            logger.debug("[Sweeper] %s: batch %d done (%d saved)", model.__name__, report.batches, report.saved)

        logger.info(
            "[Sweeper] %s: resync finished, %d saved, %d changed in %d batch(es)",
            model.__name__, report.saved, report.changed, report.batches,
        )
        return report

    def verify(self, model: type, criteria: Any = None, batch_size: Optional[int] = None) -> SweepReport:
        """Dry run: count records whose stored cache differs from a fresh computation."""
        registry = model.virtual_registry()
        report = SweepReport(model=model.__name__)
        if not registry:
            return report

        if registry.strategy is CacheStrategy.PACKED and not self.store.has_column(model, _packed_column(model)):
            report.stale = self.store.count(model, criteria)
            return report

        for batch in self.store.iter_batches(model, criteria, self._batch_size(model, batch_size)):
            report.batches += 1
            for record in batch:
                values = {spec.name: spec.compute(record) for spec in registry}
                if registry.to_persisted(values) != registry.persisted_snapshot(record):
                    report.stale += 1

        if report.stale:
            logger.warning("[Sweeper] %s: %d record(s) with a stale search cache", model.__name__, report.stale)
        return report
