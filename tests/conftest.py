# tests/conftest.py
import pytest

from database.db_setup import get_engine, init_db
from database.models import Member, Person
from database.store import SQLAlchemyRecordStore
from sample_models import SampleBase


@pytest.fixture
def engine():
    engine = get_engine("sqlite://")
    init_db(engine)
    SampleBase.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return SQLAlchemyRecordStore(engine)


@pytest.fixture
def people(store):
    """Four people spanning every age bracket (plus one unknown)."""
    rows = [
        Person(first_name="Ann", last_name="Lee", birth_year=2000),
        Person(first_name="Bob", last_name="Stone", birth_year=2010),
        Person(first_name="Cid", last_name="Moss", birth_year=1950),
        Person(first_name="Dee", last_name=None, birth_year=None),
    ]
    return [store.create(p) for p in rows]


@pytest.fixture
def members(store):
    rows = [
        Member(first_name="Ann", last_name="Lee", birth_year=2000),
        Member(first_name="Bob", last_name="Stone", birth_year=2010),
        Member(first_name="Cid", last_name="Moss", birth_year=1950),
        Member(first_name="Ann", last_name="Moss", birth_year=1990),
    ]
    return [store.create(m) for m in rows]
