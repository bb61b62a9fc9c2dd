"""
virtual_attributes/store.py
---------------------------
What the engine needs from the record store. ``database.store`` implements it
on SQLAlchemy; anything else providing these methods works too.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, List, Optional, Protocol


class RecordStore(Protocol):
    def dialect_name(self) -> str: ...

    def create(self, record: Any) -> Any: ...

    def get(self, model: type, pk: Any) -> Optional[Any]: ...

    def find_all(self, model: type, criteria: Any = None, order_by: Any = None) -> List[Any]: ...

    def count(self, model: type, criteria: Any = None) -> int: ...

    def primary_keys(self, model: type, criteria: Any = None) -> List[tuple]: ...

    def pk_criteria(self, model: type, pks: Iterable[Any]) -> Any: ...

    def update_by_pk(self, model: type, pk: Any, values: dict) -> Optional[Any]: ...

    def update_by_pks(self, model: type, pks: Iterable[Any], values: dict) -> int: ...

    def update_all(self, model: type, criteria: Any, values: dict) -> int: ...

    def delete_all(self, model: type, criteria: Any) -> int: ...

    def save_attributes(self, record: Any, keys: Iterable[str]) -> Any: ...

    def fetch_batch(self, model: type, criteria: Any, after: Optional[tuple], limit: int) -> List[Any]: ...

    def iter_batches(self, model: type, criteria: Any, batch_size: int) -> Iterator[List[Any]]: ...

    def has_column(self, model: type, column: str) -> bool: ...

    def add_text_column(self, model: type, column: str) -> None: ...
