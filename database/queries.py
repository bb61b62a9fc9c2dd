# database/queries.py
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Optional

from virtual_attributes import SearchCriteria

from .db_setup import get_engine, init_db
from .models import Person
from .store import SQLAlchemyRecordStore

# ---------------------------------------------------------------------
# Store factory
# ---------------------------------------------------------------------
@lru_cache(maxsize=1)
def default_store() -> SQLAlchemyRecordStore:
    """Store on VIRTUAL_DB_URL, tables created on first use."""
    engine = get_engine()
    init_db(engine)
    return SQLAlchemyRecordStore(engine)


def _store(store: Optional[SQLAlchemyRecordStore]) -> SQLAlchemyRecordStore:
    return store if store is not None else default_store()


# ---------------------------------------------------------------------
# CRUD operations for Person
# ---------------------------------------------------------------------
def create_person(
    *,
    first_name: Optional[str],
    last_name: Optional[str],
    birth_year: Optional[int],
    store: Optional[SQLAlchemyRecordStore] = None,
) -> Person:
    """
    Create and persist a new Person.

    Args:
        first_name: Given name (optional)
        last_name: Family name (optional)
        birth_year: Year of birth, drives the ``ageBracket`` virtual attribute

    Returns:
        The persisted Person, with its search cache filled in
    """
    person = Person(first_name=first_name, last_name=last_name, birth_year=birth_year)
    return _store(store).create(person)


def get_people(store: Optional[SQLAlchemyRecordStore] = None) -> List[Person]:
    """Return all stored people."""
    return _store(store).find_all(Person)


def get_person(person_id: int, store: Optional[SQLAlchemyRecordStore] = None) -> Optional[Person]:
    """Return a single person by ID."""
    return _store(store).get(Person, person_id)


def update_person(
    person_id: int,
    *,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    birth_year: Optional[int] = None,
    store: Optional[SQLAlchemyRecordStore] = None,
) -> Optional[Person]:
    """
    Update fields on an existing person; the cache is recomputed on save.
    Returns updated person or None if not found.
    """
    values: Dict[str, Any] = {}
    if first_name is not None:
        values["first_name"] = first_name
    if last_name is not None:
        values["last_name"] = last_name
    if birth_year is not None:
        values["birth_year"] = birth_year
    return _store(store).update_by_pk(Person, person_id, values)


def delete_person(person_id: int, store: Optional[SQLAlchemyRecordStore] = None) -> bool:
    """Delete person by ID. Returns True if deleted."""
    return _store(store).delete(Person, person_id)


def search_records(
    filters: Dict[str, Any],
    *,
    partial: bool = False,
    operator: str = "AND",
    sort: Optional[str] = None,
    descending: bool = False,
    model: type = Person,
    store: Optional[SQLAlchemyRecordStore] = None,
) -> List[Any]:
    """
    Filter by plain columns and virtual attributes alike.

    ``filters`` maps attribute names to values; virtual names (``fullName``)
    go through the search cache, anything else is compared as a column.
    """
    store = _store(store)
    criteria = SearchCriteria(model, dialect=store.dialect_name())
    registry = model.virtual_registry()
    for name, value in filters.items():
        if registry.has(name):
            criteria.compare_virtual(name, value, partial=partial, operator=operator)
        else:
            criteria.compare(getattr(model, name), value, partial=partial, operator=operator)

    order_by = None
    if sort:
        column = registry.search_expression(sort, criteria.dialect) if registry.has(sort) else getattr(model, sort)
        order_by = [column.desc() if descending else column.asc()]
    return store.find_all(model, criteria, order_by=order_by)
