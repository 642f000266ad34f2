from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from county_parcels.config import get_settings


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS parcels (
        parcel_id INTEGER PRIMARY KEY,
        pin TEXT,
        parno TEXT NOT NULL UNIQUE,
        physical_address TEXT,
        township TEXT,
        zoning_code TEXT,
        legal_desc TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS property_attributes (
        parcel_id INTEGER PRIMARY KEY REFERENCES parcels(parcel_id),
        deeded_acres REAL,
        calc_acres REAL,
        gis_acres REAL,
        classification TEXT,
        road_type TEXT,
        utilities TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS assessments (
        assessment_id INTEGER PRIMARY KEY AUTOINCREMENT,
        parcel_id INTEGER NOT NULL REFERENCES parcels(parcel_id),
        tax_year INTEGER NOT NULL,
        land_value REAL,
        building_value REAL,
        total_value REAL,
        taxable_value REAL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS parcel_owners (
        owner_id INTEGER PRIMARY KEY AUTOINCREMENT,
        parcel_id INTEGER NOT NULL REFERENCES parcels(parcel_id),
        owner_name TEXT NOT NULL,
        is_primary INTEGER NOT NULL DEFAULT 0,
        mailing_address TEXT,
        mailing_city TEXT,
        mailing_state TEXT,
        mailing_zip TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_assessments_parcel_year ON assessments(parcel_id, tax_year)",
    "CREATE INDEX IF NOT EXISTS idx_owners_parcel ON parcel_owners(parcel_id)",
    "CREATE INDEX IF NOT EXISTS idx_parcels_township ON parcels(township)",
]

TABLES = ("parcels", "property_attributes", "assessments", "parcel_owners")


def get_db_path() -> str:
    return get_settings().db_path


def connect(path: str | None = None) -> sqlite3.Connection:
    db_path = Path(path or get_db_path())
    db_path.parent.mkdir(parents=True, exist_ok=True)
    # FastAPI runs sync handlers in a threadpool; each request owns its connection.
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def open_conn(path: str | None = None) -> Iterator[sqlite3.Connection]:
    conn = connect(path)
    try:
        yield conn
    finally:
        conn.close()


def ensure_schema(conn: sqlite3.Connection) -> None:
    for stmt in SCHEMA:
        conn.execute(stmt)
    conn.commit()


def init_db(path: str | None = None) -> str:
    db_path = path or get_db_path()
    with open_conn(db_path) as conn:
        ensure_schema(conn)
    return db_path
