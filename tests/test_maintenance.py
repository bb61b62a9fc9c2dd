# tests/test_maintenance.py
import json

import pytest

from database.maintenance import build_parser, main
from sample_models import run_sql


def test_verify_clean(store, people, capsys):
    assert main(["verify", "person"], store=store) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["model"] == "Person"
    assert report["stale"] == 0


def test_verify_stale_exits_nonzero(store, engine, members, capsys):
    run_sql(engine, "UPDATE member SET virtual_cache = :v", v=",fullName:x,ageBracket:,")
    assert main(["verify", "member"], store=store) == 1
    assert json.loads(capsys.readouterr().out)["stale"] == len(members)


def test_resync(store, engine, members, capsys):
    run_sql(engine, "UPDATE member SET virtual_cache = NULL")
    assert main(["resync", "member", "--batch-size", "3"], store=store) == 0
    report = json.loads(capsys.readouterr().out)
    assert report == {
        "model": "Member",
        "batches": 2,
        "saved": 4,
        "changed": 4,
        "stale": 0,
        "column_added": False,
    }
    assert main(["verify", "member"], store=store) == 0


def test_resync_against_db_url(tmp_path, capsys):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    assert main(["resync", "person", "--db-url", url]) == 0
    assert json.loads(capsys.readouterr().out)["saved"] == 0


def test_parser_rejects_unknown_model():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["resync", "planet"])
