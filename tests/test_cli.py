import json
import logging
import sqlite3

import pytest

from county_parcels.__main__ import main
from county_parcels.demo import build_demo_rows


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _run(capsys, *argv):
    code = main(list(argv))
    out = capsys.readouterr().out
    return code, json.loads(out.strip().splitlines()[-1])


def test_init_db_creates_tables(tmp_path, capsys):
    db = tmp_path / "fresh.sqlite"
    code, payload = _run(capsys, "--db", str(db), "init-db")
    assert code == 0
    assert payload == {"db": str(db), "ok": True}
    conn = sqlite3.connect(str(db))
    try:
        names = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    finally:
        conn.close()
    assert {"parcels", "property_attributes", "assessments", "parcel_owners"} <= names


def test_seed_demo_is_deterministic_and_idempotent(tmp_path, capsys):
    db = tmp_path / "demo.sqlite"
    code, payload = _run(capsys, "--db", str(db), "seed-demo", "--count", "25")
    assert code == 0
    assert payload["seeded"] == 25

    code, payload = _run(capsys, "--db", str(db), "seed-demo", "--count", "25")
    assert payload["seeded"] == 0

    conn = sqlite3.connect(str(db))
    try:
        parnos = [r[0] for r in conn.execute("SELECT parno FROM parcels ORDER BY parcel_id")]
        primaries = conn.execute(
            "SELECT COUNT(*) FROM parcel_owners WHERE is_primary = 1"
        ).fetchone()[0]
    finally:
        conn.close()
    assert parnos == [p["parno"] for p in build_demo_rows(25)["parcels"]]
    assert primaries == 25


def test_seed_demo_leaves_populated_store_alone(parcel_db, capsys):
    code, payload = _run(capsys, "--db", str(parcel_db), "seed-demo", "--count", "10")
    assert code == 0
    assert payload["seeded"] == 0

    conn = sqlite3.connect(str(parcel_db))
    try:
        parnos = [r[0] for r in conn.execute("SELECT parno FROM parcels ORDER BY parcel_id")]
        owners = conn.execute("SELECT COUNT(*) FROM parcel_owners").fetchone()[0]
    finally:
        conn.close()
    assert parnos == ["0101230", "A1234", "9999", "00123X"]
    assert owners == 4


def test_seed_demo_force_replaces_rows(parcel_db, capsys):
    code, payload = _run(capsys, "--db", str(parcel_db), "seed-demo", "--count", "3", "--force")
    assert code == 0
    assert payload["seeded"] == 3

    conn = sqlite3.connect(str(parcel_db))
    try:
        parnos = [r[0] for r in conn.execute("SELECT parno FROM parcels ORDER BY parcel_id")]
    finally:
        conn.close()
    assert parnos == [p["parno"] for p in build_demo_rows(3)["parcels"]]


def test_check_and_fix_addresses(parcel_db, capsys):
    code, payload = _run(capsys, "--db", str(parcel_db), "check-addresses")
    assert code == 0
    assert payload["count"] == 1
    assert payload["sample"] == ["77  PINE  ST"]

    code, payload = _run(capsys, "--db", str(parcel_db), "fix-addresses")
    assert payload == {"after": 0, "before": 1, "ok": True, "updated": 1}

    conn = sqlite3.connect(str(parcel_db))
    try:
        addr = conn.execute("SELECT physical_address FROM parcels WHERE parcel_id = 4").fetchone()[0]
    finally:
        conn.close()
    assert addr == "77 PINE ST"


def test_log_json_flag_emits_json_lines(tmp_path, capsys):
    db = tmp_path / "demo.sqlite"
    main(["--log-json", "--db", str(db), "seed-demo", "--count", "5"])
    out = capsys.readouterr().out
    events = [json.loads(line) for line in out.splitlines() if line.startswith("{")]
    assert any(e.get("event") == "seed_complete" for e in events)


def test_subcommand_required(capsys):
    with pytest.raises(SystemExit):
        main([])
