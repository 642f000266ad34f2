"""Deterministic demo data for local development and screenshots.

Idempotent: when the parcels table already holds at least ``count`` rows the
seed is skipped unless ``force`` is set.
"""

from __future__ import annotations

import logging
import random
import sqlite3
from typing import Any, Dict, List

from county_parcels.db import TABLES, ensure_schema
from county_parcels.logs import log_event


logger = logging.getLogger("parcels.cli")

DEFAULT_COUNT = 200
DEFAULT_SEED = 1337

_TOWNSHIPS = [
    "Clinton",
    "Dismal",
    "Franklin",
    "Halls",
    "Herring",
    "Honeycutts",
    "Lisbon",
    "Little Coharie",
    "McDaniels",
    "Mingo",
    "Newton Grove",
    "Piney Grove",
    "Plain View",
    "Taylors Bridge",
    "Turkey",
    "Westbrook",
]

_ZONING = ["RA", "R-20", "R-10", "C-2", "I-1", "AG"]

_CLASSIFICATIONS = ["Agricultural", "Residential", "Commercial", "Industrial", "Vacant"]

_ROAD_TYPES = ["Paved", "Unpaved", "State Road", "Private"]

_UTILITIES = ["Electric", "Electric/Water", "Electric/Water/Sewer", "None"]

_STREETS = [
    "Ira B Tart Hwy",
    "Jada Allen Rd",
    "Garland Hwy",
    "Spiveys Corner Hwy",
    "Old Warsaw Rd",
    "Sunset Ave",
    "Beulah Rd",
    "Five Bridge Rd",
    "Faison Hwy",
    "Harrells Hwy",
]

_FIRST = ["John", "Maria", "James", "Patricia", "Robert", "Linda", "Michael", "Susan", "David", "Karen"]

_LAST = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Tart", "Allen", "Honeycutt", "Naylor", "Carter"]

_CITIES = [("Clinton", "28328"), ("Newton Grove", "28366"), ("Roseboro", "28382"), ("Salemburg", "28385")]


def _count_rows(conn: sqlite3.Connection, table: str) -> int:
    # Table names come from db.TABLES only.
    row = conn.execute(f"SELECT COUNT(1) FROM {table}").fetchone()
    return int(row[0] or 0) if row else 0


def _owner_name(rng: random.Random) -> str:
    if rng.random() < 0.15:
        return f"{rng.choice(_LAST).upper()} FAMILY FARMS LLC"
    return f"{rng.choice(_LAST).upper()} {rng.choice(_FIRST).upper()}"


def _address(rng: random.Random) -> str:
    number = rng.randint(100, 9999)
    street = rng.choice(_STREETS).upper()
    # A share of rows keep the doubled spaces found in county exports.
    sep = "  " if rng.random() < 0.1 else " "
    return f"{number}{sep}{street}"


def build_demo_rows(count: int = DEFAULT_COUNT, seed: int = DEFAULT_SEED) -> Dict[str, List[Dict[str, Any]]]:
    rng = random.Random(seed)
    parcels: List[Dict[str, Any]] = []
    attributes: List[Dict[str, Any]] = []
    assessments: List[Dict[str, Any]] = []
    owners: List[Dict[str, Any]] = []

    for i in range(1, count + 1):
        parno = f"{rng.randint(1, 19):02d}{i:06d}"
        parcels.append(
            {
                "parcel_id": i,
                "pin": f"{rng.randint(1000, 9999)}-{rng.randint(10, 99)}-{rng.randint(1000, 9999)}",
                "parno": parno,
                "physical_address": _address(rng),
                "township": rng.choice(_TOWNSHIPS),
                "zoning_code": rng.choice(_ZONING),
                "legal_desc": f"LOT {rng.randint(1, 40)} TRACT {rng.randint(1, 9)}",
            }
        )

        deeded = round(rng.uniform(0.25, 180.0), 2)
        attributes.append(
            {
                "parcel_id": i,
                "deeded_acres": deeded,
                "calc_acres": round(deeded * rng.uniform(0.95, 1.05), 2),
                "gis_acres": round(deeded * rng.uniform(0.9, 1.1), 2),
                "classification": rng.choice(_CLASSIFICATIONS),
                "road_type": rng.choice(_ROAD_TYPES),
                "utilities": rng.choice(_UTILITIES),
            }
        )

        # Some parcels have no assessment history at all.
        if rng.random() < 0.9:
            land = rng.randint(5_000, 400_000)
            building = rng.choice([0, rng.randint(20_000, 650_000)])
            for year in (2022, 2023, 2024):
                growth = 1.0 + 0.04 * (year - 2022)
                total = round((land + building) * growth, 0)
                assessments.append(
                    {
                        "parcel_id": i,
                        "tax_year": year,
                        "land_value": round(land * growth, 0),
                        "building_value": round(building * growth, 0),
                        "total_value": total,
                        "taxable_value": round(total * rng.choice([1.0, 1.0, 0.8]), 0),
                    }
                )

        for n in range(rng.choice([1, 1, 1, 2])):
            city, zip_code = rng.choice(_CITIES)
            owners.append(
                {
                    "parcel_id": i,
                    "owner_name": _owner_name(rng),
                    "is_primary": 1 if n == 0 else 0,
                    "mailing_address": f"PO BOX {rng.randint(1, 2999)}",
                    "mailing_city": city,
                    "mailing_state": "NC",
                    "mailing_zip": zip_code,
                }
            )

    return {
        "parcels": parcels,
        "property_attributes": attributes,
        "assessments": assessments,
        "parcel_owners": owners,
    }


def _insert(conn: sqlite3.Connection, table: str, rows: List[Dict[str, Any]]) -> None:
    if not rows:
        return
    cols = list(rows[0].keys())
    sql = f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)})"
    conn.executemany(sql, [tuple(r[c] for c in cols) for r in rows])


def seed_demo(
    conn: sqlite3.Connection,
    count: int = DEFAULT_COUNT,
    seed: int = DEFAULT_SEED,
    force: bool = False,
) -> int:
    """Populate the store with demo parcels; returns how many were written."""
    ensure_schema(conn)
    existing = _count_rows(conn, "parcels")
    if existing and not force:
        log_event(logger, "seed_skipped", existing=existing)
        return 0

    rows = build_demo_rows(count, seed)
    with conn:
        # Children first so the parent rows can go.
        for table in reversed(TABLES):
            conn.execute(f"DELETE FROM {table}")
        for table in TABLES:
            _insert(conn, table, rows[table])
    log_event(logger, "seed_complete", parcels=count, assessments=len(rows["assessments"]))
    return count
