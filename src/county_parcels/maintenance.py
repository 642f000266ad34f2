"""Address clean-up for parcels imported from county exports.

County exports pad street addresses with runs of whitespace, which breaks
substring search ("123 MAIN" never matches "123  MAIN").
"""

from __future__ import annotations

import logging
import re
import sqlite3
from typing import Any, Dict, List, Tuple

from county_parcels.logs import log_event
from county_parcels.security import collapse_whitespace


logger = logging.getLogger("parcels.cli")

_MULTI_SPACE_RE = re.compile(r"\s{2,}")


def _spaced_addresses(conn: sqlite3.Connection) -> List[Tuple[int, str]]:
    rows = conn.execute(
        "SELECT parcel_id, physical_address FROM parcels "
        "WHERE physical_address IS NOT NULL ORDER BY parcel_id"
    ).fetchall()
    return [
        (int(r[0]), str(r[1]))
        for r in rows
        if _MULTI_SPACE_RE.search(str(r[1]))
    ]


def check_addresses(conn: sqlite3.Connection, sample_size: int = 5) -> Dict[str, Any]:
    affected = _spaced_addresses(conn)
    return {
        "count": len(affected),
        "sample": [addr for _pid, addr in affected[: max(sample_size, 0)]],
    }


def fix_addresses(conn: sqlite3.Connection) -> Dict[str, Any]:
    """Collapse whitespace runs to a single space and trim; returns before/after counts."""
    affected = _spaced_addresses(conn)
    if affected:
        with conn:
            conn.executemany(
                "UPDATE parcels SET physical_address = ? WHERE parcel_id = ?",
                [(collapse_whitespace(addr), pid) for pid, addr in affected],
            )
    remaining = len(_spaced_addresses(conn))
    log_event(logger, "addresses_fixed", updated=len(affected), remaining=remaining)
    return {"before": len(affected), "updated": len(affected), "after": remaining}
