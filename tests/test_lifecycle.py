# tests/test_lifecycle.py
import pytest
from sqlalchemy import select, update

from database.models import Member, Person
from sample_models import Badge, Nameplate, Note, run_sql
from virtual_attributes import BulkMutationRejected, ReadOnlyWriteRejected, skip_sweep


# --------------------------------------------------------------------------- #
# Single-record writes
# --------------------------------------------------------------------------- #

def test_create_writes_packed_cache(store):
    plate = store.create(Nameplate(first="Ann", last="Lee"))
    assert plate.virtual_cache == ",fullName:Ann Lee,"
    assert store.get(Nameplate, plate.id).virtual_cache == ",fullName:Ann Lee,"


def test_create_writes_shadow_columns(store):
    person = store.create(Person(first_name="Ann", last_name="Lee", birth_year=2000))
    stored = store.get(Person, person.id)
    assert stored._fullName == "Ann Lee"
    assert stored._ageBracket == "adult"


def test_create_with_packed_cache_for_two_attributes(store):
    member = store.create(Member(first_name="Ann", last_name="Lee", birth_year=2000))
    assert member.virtual_cache == ",fullName:Ann Lee,ageBracket:adult,"


def test_persist_ignores_writable_assignment(store):
    plate = Nameplate(first="Ann", last="Lee")
    plate.virtual_read_only = False
    plate.set("fullName", "Someone Else")
    store.create(plate)

    assert plate.get("fullName") == "Someone Else"
    assert store.get(Nameplate, plate.id).virtual_cache == ",fullName:Ann Lee,"


def test_caller_supplied_cache_is_overwritten(store):
    person = Person(first_name="Ann", last_name="Lee", birth_year=2000)
    person._fullName = "stale"  # direct column write, outside the gateway
    store.create(person)
    assert store.get(Person, person.id)._fullName == "Ann Lee"

    updated = store.update_by_pk(Person, person.id, {"birth_year": 1950, "last_name": "Moss"})
    assert updated._fullName == "Ann Moss"
    assert updated._ageBracket == "senior"


def test_update_by_pk_missing_row_returns_none(store):
    assert store.update_by_pk(Person, 999, {"first_name": "x"}) is None


def test_update_by_pk_rejects_virtual_value_in_read_only_mode(store, people):
    with pytest.raises(ReadOnlyWriteRejected):
        store.update_by_pk(Person, people[0].id, {"fullName": "Forged"})
    assert store.get(Person, people[0].id)._fullName == "Ann Lee"


def test_update_by_composite_key(store):
    store.create(Badge(org="eng", number=7, holder="amy"))
    badge = store.update_by_pk(Badge, ("eng", 7), {"holder": "bea"})
    assert badge._label == "BEA"
    assert store.get(Badge, ("eng", 7))._label == "BEA"


def test_save_recomputes_detached_record(store, people):
    ann = people[0]
    ann.birth_year = 2015
    store.save(ann)
    assert store.get(Person, ann.id)._ageBracket == "minor"


# --------------------------------------------------------------------------- #
# Bulk writes
# --------------------------------------------------------------------------- #

def test_bulk_update_rejected_by_default(store, people):
    with pytest.raises(BulkMutationRejected) as info:
        store.update_all(Person, Person.birth_year == 2000, {"birth_year": 1950})
    assert info.value.model_name == "Person"
    assert store.get(Person, people[0].id).birth_year == 2000


def test_multi_key_update_rejected_by_default(store, people):
    with pytest.raises(BulkMutationRejected):
        store.update_by_pks(Person, [p.id for p in people[:2]], {"last_name": "Same"})


def test_bulk_delete_rejected_by_default(store, people):
    with pytest.raises(BulkMutationRejected) as info:
        store.delete_all(Person, Person.id == people[0].id)
    assert info.value.operation == "delete"
    assert store.count(Person) == len(people)


def test_opted_in_bulk_update_sweeps_its_scope_once(store, monkeypatch):
    for number, holder in [(1, "amy"), (2, "bea"), (3, "cat")]:
        store.create(Badge(org="eng", number=number, holder=holder))
    store.create(Badge(org="ops", number=1, holder="dan"))

    calls = []
    original = store.sweeper.resync

    def spy(model, criteria=None, batch_size=None):
        # the bulk write has already landed when the sweep starts
        assert store.get(Badge, ("eng", 1)).holder == "zed"
        report = original(model, criteria, batch_size)
        calls.append((model, report))
        return report

    monkeypatch.setattr(store.sweeper, "resync", spy)

    criteria = Badge.org == "eng"
    affected = store.update_all(Badge, criteria, {"holder": "zed"})

    assert affected == 3
    assert len(calls) == 1
    assert calls[0][0] is Badge and calls[0][1].saved == 3
    assert [b._label for b in store.find_all(Badge, Badge.org == "eng")] == ["ZED"] * 3
    assert store.get(Badge, ("ops", 1))._label == "DAN"


def test_opted_in_multi_key_update(store):
    plates = [store.create(Nameplate(first=f, last="Lee")) for f in ("Ann", "Bob", "Cid")]
    affected = store.update_by_pks(Nameplate, [plates[0].id, plates[2].id], {"last": "Kim"})
    assert affected == 2
    caches = [p.virtual_cache for p in store.find_all(Nameplate)]
    assert caches == [",fullName:Ann Kim,", ",fullName:Bob Lee,", ",fullName:Cid Kim,"]


def test_opted_in_bulk_delete(store):
    store.create(Badge(org="eng", number=1, holder="amy"))
    store.create(Badge(org="ops", number=1, holder="dan"))
    assert store.delete_all(Badge, Badge.org == "eng") == 1
    assert store.count(Badge) == 1


def test_ungated_orm_bulk_statement_is_refused(store, people):
    with store.SessionLocal() as session:
        with pytest.raises(BulkMutationRejected):
            session.execute(update(Person).values(birth_year=1900))
    assert store.get(Person, people[0].id).birth_year == 2000


def test_models_without_virtual_attributes_are_not_gated(store):
    store.create(Note(body="a"))
    store.create(Note(body="b"))
    assert store.update_all(Note, None, {"body": "c"}) == 2
    with store.SessionLocal() as session:
        session.execute(update(Note).values(body="d"))
        session.commit()
        assert session.scalars(select(Note.body)).all() == ["d", "d"]
    assert store.delete_all(Note, Note.body == "d") == 2


def test_raw_sql_drift_is_repaired_on_next_save(store, engine, people):
    run_sql(engine, 'UPDATE person SET "_fullName" = :v', v="drifted")
    ann = store.get(Person, people[0].id)
    assert ann._fullName == "drifted"
    store.update_by_pk(Person, ann.id, {"first_name": "Anna"})
    assert store.get(Person, ann.id)._fullName == "Anna Lee"


def test_skip_sweep_leaves_cache_stale(store, monkeypatch):
    registry = Badge.virtual_registry()
    monkeypatch.setattr(registry, "config", registry.config.with_overrides(after_bulk_update=skip_sweep))
    store.create(Badge(org="eng", number=1, holder="amy"))

    assert store.update_all(Badge, Badge.org == "eng", {"holder": "zed"}) == 1
    assert store.get(Badge, ("eng", 1))._label == "AMY"
    assert store.sweeper.verify(Badge).stale == 1


def test_bulk_update_sweeps_rows_moved_out_of_their_filter(store):
    store.create(Badge(org="eng", number=1, holder="amy"))
    store.create(Badge(org="eng", number=2, holder="bea"))

    assert store.update_all(Badge, Badge.holder == "amy", {"holder": "zed"}) == 1

    assert store.get(Badge, ("eng", 1))._label == "ZED"
    assert store.get(Badge, ("eng", 2))._label == "BEA"
    assert store.sweeper.verify(Badge).stale == 0


def test_multi_key_update_on_composite_keys(store):
    for number in (1, 2, 3):
        store.create(Badge(org="eng", number=number, holder="amy"))
    assert store.update_by_pks(Badge, [("eng", 1), ("eng", 3)], {"holder": "kim"}) == 2
    assert [b._label for b in store.find_all(Badge)] == ["KIM", "AMY", "KIM"]
