# database/store.py
"""
SQLAlchemy record store.

Implements the ``virtual_attributes.store.RecordStore`` contract: CRUD on
mapped models, gated bulk writes, keyset-batched iteration for the sweeper and
the little schema introspection the packed cache needs.

Records returned by the store are detached but fully loaded
(``expire_on_commit=False``), so they can be read, changed and passed back to
``save_attributes`` or ``save`` later.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set

from sqlalchemy import delete, func, inspect as sa_inspect, select, text, tuple_, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from virtual_attributes import (
    ConsistencySweeper,
    VirtualAttributeMixin,
    as_clause,
    bulk_delete,
    bulk_update,
    install_bulk_guard,
)
from virtual_attributes.lifecycle import BULK_GATE_OPTION

from .db_setup import get_engine

logger = logging.getLogger(__name__)


class SQLAlchemyRecordStore:
    def __init__(self, engine: Optional[Engine] = None, batch_size: Optional[int] = None):
        self.engine = engine or get_engine()
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        install_bulk_guard(self.SessionLocal)
        self.sweeper = ConsistencySweeper(self, batch_size)
        self._columns: Dict[str, Set[str]] = {}

    def dialect_name(self) -> str:
        return self.engine.dialect.name

    # -----------------------------------------------------------------
    # Single-record operations
    # -----------------------------------------------------------------
    def create(self, record: Any) -> Any:
        """Insert ``record``; its search cache is computed during the flush."""
        with self.SessionLocal() as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return record

    def save(self, record: Any) -> Any:
        """Persist pending changes of a (detached) record."""
        with self.SessionLocal() as session:
            session.add(record)
            session.commit()
            return record

    def get(self, model: type, pk: Any) -> Optional[Any]:
        with self.SessionLocal() as session:
            return session.get(model, pk)

    def find_all(self, model: type, criteria: Any = None, order_by: Any = None) -> List[Any]:
        if order_by is None:
            order_by = self._pk_columns(model)
        elif not isinstance(order_by, (list, tuple)):
            order_by = [order_by]
        stmt = self._select(model, criteria).order_by(*order_by)
        with self.SessionLocal() as session:
            return list(session.scalars(stmt).all())

    def primary_keys(self, model: type, criteria: Any = None) -> List[tuple]:
        """Primary key tuples of the rows matching ``criteria``, in key order."""
        pk_columns = self._pk_columns(model)
        stmt = select(*pk_columns).order_by(*pk_columns)
        clause = as_clause(criteria)
        if clause is not None:
            stmt = stmt.where(clause)
        with self.SessionLocal() as session:
            return [tuple(row) for row in session.execute(stmt)]

    def count(self, model: type, criteria: Any = None) -> int:
        stmt = select(func.count()).select_from(model)
        clause = as_clause(criteria)
        if clause is not None:
            stmt = stmt.where(clause)
        with self.SessionLocal() as session:
            return int(session.scalar(stmt) or 0)

    def update_by_pk(self, model: type, pk: Any, values: Dict[str, Any]) -> Optional[Any]:
        """
        Update one row by primary key (a tuple for composite keys).
        Returns the updated record or None if not found.
        """
        with self.SessionLocal() as session:
            record = session.get(model, pk)
            if record is None:
                return None
            for key, value in values.items():
                if isinstance(record, VirtualAttributeMixin):
                    record.set(key, value)
                else:
                    setattr(record, key, value)
            session.commit()
            return record

    def save_attributes(self, record: Any, keys: Iterable[str]) -> Any:
        """Write only ``keys`` of ``record``, even if their in-memory value is unchanged."""
        with self.SessionLocal() as session:
            session.add(record)
            for key in keys:
                flag_modified(record, key)
            session.commit()
            return record

    def delete(self, model: type, pk: Any) -> bool:
        with self.SessionLocal() as session:
            record = session.get(model, pk)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True

    # -----------------------------------------------------------------
    # Bulk operations (gated for models with virtual attributes)
    # -----------------------------------------------------------------
    def update_all(self, model: type, criteria: Any, values: Dict[str, Any]) -> int:
        clause = as_clause(criteria)

        def execute() -> int:
            stmt = update(model).values(**values)
            if clause is not None:
                stmt = stmt.where(clause)
            return self._execute_bulk(stmt)

        return bulk_update(model, clause, execute, self.sweeper)

    def update_by_pks(self, model: type, pks: Iterable[Any], values: Dict[str, Any]) -> int:
        return self.update_all(model, self.pk_criteria(model, pks), values)

    def delete_all(self, model: type, criteria: Any) -> int:
        clause = as_clause(criteria)

        def execute() -> int:
            stmt = delete(model)
            if clause is not None:
                stmt = stmt.where(clause)
            return self._execute_bulk(stmt)

        return bulk_delete(model, clause, execute)

    def _execute_bulk(self, stmt) -> int:
        with self.SessionLocal() as session:
            result = session.execute(
                stmt,
                execution_options={"synchronize_session": False, BULK_GATE_OPTION: True},
            )
            session.commit()
            return result.rowcount

    # -----------------------------------------------------------------
    # Batched iteration
    # -----------------------------------------------------------------
    def fetch_batch(self, model: type, criteria: Any, after: Optional[tuple], limit: int) -> List[Any]:
        """Up to ``limit`` records with a primary key greater than ``after``."""
        pk_columns = self._pk_columns(model)
        stmt = self._select(model, criteria).order_by(*pk_columns).limit(limit)
        if after is not None:
            if len(pk_columns) == 1:
                stmt = stmt.where(pk_columns[0] > after[0])
            else:
                stmt = stmt.where(tuple_(*pk_columns) > tuple_(*after))
        with self.SessionLocal() as session:
            return list(session.scalars(stmt).all())

    def iter_batches(self, model: type, criteria: Any = None, batch_size: int = 100) -> Iterator[List[Any]]:
        """Yield matching records ``batch_size`` at a time, ordered by primary key."""
        total = self.count(model, criteria)
        after = None
        for _ in range(math.ceil(total / batch_size)):
            batch = self.fetch_batch(model, criteria, after, batch_size)
            if not batch:
                break
            after = sa_inspect(batch[-1]).identity
            yield batch

    # -----------------------------------------------------------------
    # Schema
    # -----------------------------------------------------------------
    def has_column(self, model: type, column: str) -> bool:
        table = model.__table__.name
        if table not in self._columns:
            self._columns[table] = {c["name"] for c in sa_inspect(self.engine).get_columns(table)}
        return column in self._columns[table]

    def add_text_column(self, model: type, column: str) -> None:
        preparer = self.engine.dialect.identifier_preparer
        ddl = f"ALTER TABLE {preparer.format_table(model.__table__)} ADD COLUMN {preparer.quote(column)} TEXT"
        with self.engine.begin() as conn:
            conn.execute(text(ddl))
        self._columns.pop(model.__table__.name, None)
        logger.info("[Store] added column %s.%s", model.__table__.name, column)

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------
    def _pk_columns(self, model: type):
        return list(sa_inspect(model).primary_key)

    def _select(self, model: type, criteria: Any):
        stmt = select(model)
        clause = as_clause(criteria)
        return stmt if clause is None else stmt.where(clause)

    def pk_criteria(self, model: type, pks: Iterable[Any]):
        """Clause matching exactly the rows with the given primary keys."""
        pk_columns = self._pk_columns(model)
        pks = list(pks)
        if len(pk_columns) == 1:
            return pk_columns[0].in_([pk[0] if isinstance(pk, tuple) else pk for pk in pks])
        return tuple_(*pk_columns).in_([tuple(pk) for pk in pks])
