import os
import socket
import sqlite3
import sys
import urllib.request
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0]
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


_PARCELS = [
    # parcel_id, pin, parno, physical_address, township, zoning_code, legal_desc
    (1, "P-1", "0101230", "123 MAIN ST", "Clinton", "RA", "LOT 1"),
    (2, "P-2", "A1234", "45 OAK RD", "Dismal", "C-2", "LOT 2"),
    (3, "P-3", "9999", "500 GARLAND HWY", "Mingo", "RA", None),
    (4, "P-4", "00123X", "77  PINE  ST", "Clinton", None, None),
]

_ATTRIBUTES = [
    # parcel_id, deeded, calc, gis, classification, road_type, utilities
    (1, 10.0, 10.5, 10.25, "Agricultural", "Paved", "Electric"),
    (2, 2.5, 2.4, 2.45, "Commercial", "State Road", "Electric/Water"),
    (3, 150.0, 149.0, 151.0, "Agricultural", "Unpaved", None),
]

_ASSESSMENTS = [
    # assessment_id, parcel_id, tax_year, land, building, total, taxable
    (1, 1, 2022, 40000, 60000, 100000, 95000),
    (2, 1, 2023, 50000, 70000, 120000, 110000),
    (3, 2, 2023, 100000, 200000, 300000, 300000),
    (4, 2, 2023, 110000, 200000, 310000, 310000),
    (5, 4, 2021, 20000, 30000, 50000, 50000),
]

_OWNERS = [
    # owner_id, parcel_id, owner_name, is_primary, mailing_address, city, state, zip
    (1, 1, "SMITH JOHN", 1, "PO BOX 1", "Clinton", "NC", "28328"),
    (2, 1, "ADAMS MARY", 0, "9 ELM ST", None, None, None),
    (3, 2, "ACME HOLDINGS LLC", 1, "1 CORP WAY", "Raleigh", "NC", "27601"),
    (4, 3, "SMITH JANE", 1, None, None, None, None),
]


def seed_parcels(path: Path) -> None:
    from county_parcels.db import ensure_schema

    conn = sqlite3.connect(str(path))
    try:
        ensure_schema(conn)
        conn.executemany("INSERT INTO parcels VALUES (?, ?, ?, ?, ?, ?, ?)", _PARCELS)
        conn.executemany(
            "INSERT INTO property_attributes VALUES (?, ?, ?, ?, ?, ?, ?)", _ATTRIBUTES
        )
        conn.executemany(
            "INSERT INTO assessments VALUES (?, ?, ?, ?, ?, ?, ?)", _ASSESSMENTS
        )
        conn.executemany(
            "INSERT INTO parcel_owners VALUES (?, ?, ?, ?, ?, ?, ?, ?)", _OWNERS
        )
        conn.commit()
    finally:
        conn.close()


@pytest.fixture
def parcel_db(tmp_path):
    path = tmp_path / "parcels.sqlite"
    seed_parcels(path)
    return path


@pytest.fixture
def store(parcel_db):
    from county_parcels.parcels.store import open_store

    with open_store(str(parcel_db)) as s:
        yield s
