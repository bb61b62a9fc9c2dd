# tests/test_sweeper.py
import math

import pytest

from database.models import Member, Person
from database.store import SQLAlchemyRecordStore
from sample_models import Badge, Ledger, run_sql


class CountingStore(SQLAlchemyRecordStore):
    """Store that counts batch reads and cache-only saves."""

    def __init__(self, engine, **kwargs):
        super().__init__(engine, **kwargs)
        self.reads = 0
        self.saves = 0

    def fetch_batch(self, model, criteria, after, limit):
        self.reads += 1
        return super().fetch_batch(model, criteria, after, limit)

    def save_attributes(self, record, keys):
        self.saves += 1
        return super().save_attributes(record, keys)


@pytest.fixture
def counting_store(engine):
    return CountingStore(engine)


def _seed_people(store, n):
    for i in range(n):
        store.create(Person(first_name=f"P{i}", last_name="Test", birth_year=1950 + i))


# --------------------------------------------------------------------------- #
# Batching
# --------------------------------------------------------------------------- #

@pytest.mark.parametrize("rows, batch_size", [(7, 3), (6, 3), (1, 100), (0, 5)])
def test_batch_reads_and_saves(counting_store, rows, batch_size):
    _seed_people(counting_store, rows)
    report = counting_store.sweeper.resync(Person, batch_size=batch_size)

    assert counting_store.reads == math.ceil(rows / batch_size)
    assert counting_store.saves == rows
    assert report.batches == math.ceil(rows / batch_size)
    assert report.saved == rows


def test_default_batch_size_comes_from_model_config(counting_store):
    _seed_people(counting_store, 3)
    counting_store.sweeper.resync(Person)
    assert counting_store.reads == 1
    assert Person.virtual_registry().config.batch_size == 100


def test_composite_key_batches(counting_store):
    for org in ("eng", "ops"):
        for number in range(1, 4):
            counting_store.create(Badge(org=org, number=number, holder=f"{org}{number}"))
    report = counting_store.sweeper.resync(Badge, batch_size=4)
    assert counting_store.reads == 2
    assert report.saved == 6


# --------------------------------------------------------------------------- #
# Consistency
# --------------------------------------------------------------------------- #

def test_resync_repairs_drift_and_is_idempotent(store, engine, people):
    run_sql(engine, 'UPDATE person SET "_fullName" = NULL, "_ageBracket" = :v', v="stale")

    first = store.sweeper.resync(Person)
    assert first.saved == len(people)
    assert first.changed == len(people)
    assert [p._ageBracket for p in store.find_all(Person)] == ["adult", "minor", "senior", None]
    assert [p._fullName for p in store.find_all(Person)] == ["Ann Lee", "Bob Stone", "Cid Moss", "Dee"]

    second = store.sweeper.resync(Person)
    assert second.saved == len(people)
    assert second.changed == 0


def test_resync_respects_criteria(store, engine, people):
    run_sql(engine, 'UPDATE person SET "_fullName" = :v', v="stale")
    report = store.sweeper.resync(Person, Person.birth_year >= 2000)
    assert report.saved == 2
    names = {p.first_name: p._fullName for p in store.find_all(Person)}
    assert names == {"Ann": "Ann Lee", "Bob": "Bob Stone", "Cid": "stale", "Dee": "stale"}


def test_resync_packed_cache(store, engine, members):
    run_sql(engine, "UPDATE member SET virtual_cache = NULL")
    report = store.sweeper.resync(Member)
    assert report.changed == len(members)
    assert store.get(Member, members[0].id).virtual_cache == ",fullName:Ann Lee,ageBracket:adult,"
    assert report.column_added is False


def test_resync_adds_missing_packed_column(engine):
    run_sql(engine, "DROP TABLE member")
    run_sql(
        engine,
        "CREATE TABLE member (id INTEGER PRIMARY KEY, first_name VARCHAR(100), "
        "last_name VARCHAR(100), birth_year INTEGER)",
    )
    run_sql(engine, "INSERT INTO member (first_name, last_name, birth_year) VALUES ('Ann', 'Lee', 2000)")
    run_sql(engine, "INSERT INTO member (first_name, last_name, birth_year) VALUES ('Bob', NULL, NULL)")

    store = SQLAlchemyRecordStore(engine)
    assert not store.has_column(Member, "virtual_cache")
    assert store.sweeper.verify(Member).stale == 2

    report = store.sweeper.resync(Member)

    assert report.column_added is True
    assert store.has_column(Member, "virtual_cache")
    assert [m.virtual_cache for m in store.find_all(Member)] == [
        ",fullName:Ann Lee,ageBracket:adult,",
        ",fullName:Bob,ageBracket:,",
    ]


def test_verify_counts_without_writing(store, engine, people):
    assert store.sweeper.verify(Person).stale == 0
    run_sql(engine, 'UPDATE person SET "_ageBracket" = :v WHERE birth_year = 2000', v="minor")

    report = store.sweeper.verify(Person)
    assert report.stale == 1
    assert report.saved == 0
    assert store.get(Person, people[0].id)._ageBracket == "minor"


def test_failure_mid_sweep_keeps_earlier_saves(engine):
    store = SQLAlchemyRecordStore(engine)
    for amount in (10, 20, 30):
        store.create(Ledger(amount=amount, currency="EUR"))
    run_sql(engine, "UPDATE ledger SET search_blob = NULL")

    # third row becomes unencodable: its total contains the column separator
    run_sql(engine, "UPDATE ledger SET currency = 'E|R' WHERE amount = 30")

    with pytest.raises(ValueError):
        store.sweeper.resync(Ledger, batch_size=1)

    blobs = [l.search_blob for l in store.find_all(Ledger)]
    assert blobs == ["|total=10 EUR|tier=low|", "|total=20 EUR|tier=low|", None]

