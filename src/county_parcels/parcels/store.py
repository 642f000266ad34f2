from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from county_parcels.db import ensure_schema, open_conn
from county_parcels.errors import ParcelNotFound
from county_parcels.logs import log_event
from county_parcels.search.filters import AdvancedSearchFilters
from county_parcels.search.query import (
    DEFAULT_LIMIT,
    BuiltQuery,
    build_advanced_search,
    build_keyword_search,
    normalize_mode,
)
from county_parcels.security import sanitize_text


logger = logging.getLogger("parcels.search")


def _row_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {key: row[key] for key in row.keys()}


def _primary_flag(owner: Dict[str, Any]) -> Dict[str, Any]:
    owner["is_primary"] = bool(owner.get("is_primary"))
    return owner


class ParcelStore:
    """Read-only queries over parcels, attributes, assessments and owners."""

    def __init__(self, conn: sqlite3.Connection, search_limit: int = DEFAULT_LIMIT) -> None:
        self.conn = conn
        self.search_limit = search_limit

    def _fetch_all(self, query: BuiltQuery) -> List[Dict[str, Any]]:
        rows = self.conn.execute(query.sql, query.params).fetchall()
        return [_row_dict(r) for r in rows]

    def _require_parcel(self, parcel_id: Any) -> None:
        row = self.conn.execute(
            "SELECT parcel_id FROM parcels WHERE parcel_id = ?", (parcel_id,)
        ).fetchone()
        if row is None:
            raise ParcelNotFound(parcel_id)

    def search(self, q: str | None, mode: str | None = "all", limit: int | None = None) -> List[Dict[str, Any]]:
        query = build_keyword_search(q, mode, limit or self.search_limit)
        results = self._fetch_all(query)
        log_event(
            logger,
            "keyword_search",
            mode=normalize_mode(mode),
            query_length=len(sanitize_text(q or "")),
            results=len(results),
        )
        return results

    def advanced_search(
        self,
        filters: Union[AdvancedSearchFilters, Mapping[str, Any], None],
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        query = build_advanced_search(filters, limit or self.search_limit)
        results = self._fetch_all(query)
        log_event(
            logger,
            "advanced_search",
            joins=sorted(query.joins),
            clauses=len(query.params) - 1,
            results=len(results),
        )
        return results

    def get_parcel(self, parcel_id: Any) -> Dict[str, Any]:
        row = self.conn.execute(
            """
            SELECT p.parcel_id, p.pin, p.parno, p.physical_address, p.township,
                   p.zoning_code, p.legal_desc,
                   pa.deeded_acres, pa.gis_acres, pa.calc_acres, pa.classification,
                   pa.road_type, pa.utilities
            FROM parcels p
            LEFT JOIN property_attributes pa ON pa.parcel_id = p.parcel_id
            WHERE p.parcel_id = ?
            """,
            (parcel_id,),
        ).fetchone()
        if row is None:
            raise ParcelNotFound(parcel_id)
        return _row_dict(row)

    def latest_assessment(self, parcel_id: Any) -> Optional[Dict[str, Any]]:
        row = self.conn.execute(
            """
            SELECT assessment_id, tax_year, land_value, building_value, total_value, taxable_value
            FROM assessments
            WHERE parcel_id = ?
            ORDER BY tax_year DESC, assessment_id DESC
            LIMIT 1
            """,
            (parcel_id,),
        ).fetchone()
        return _row_dict(row)

    def _owners(self, parcel_id: Any) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            """
            SELECT owner_id, owner_name, is_primary, mailing_address,
                   mailing_city, mailing_state, mailing_zip
            FROM parcel_owners
            WHERE parcel_id = ?
            ORDER BY is_primary DESC, owner_name ASC, owner_id ASC
            """,
            (parcel_id,),
        ).fetchall()
        return [_primary_flag(_row_dict(r)) for r in rows]

    def get_details(self, parcel_id: Any) -> Dict[str, Any]:
        parcel = self.get_parcel(parcel_id)
        return {
            "parcel_id": parcel["parcel_id"],
            "pin": parcel["pin"],
            "parno": parcel["parno"],
            "physical_address": parcel["physical_address"],
            "township": parcel["township"],
            "legal_desc": parcel["legal_desc"],
            "zoning_code": parcel["zoning_code"],
            "attributes": {
                "deeded_acres": parcel["deeded_acres"],
                "gis_acres": parcel["gis_acres"],
                "calc_acres": parcel["calc_acres"],
                "classification": parcel["classification"],
                "road_type": parcel["road_type"],
                "utilities": parcel["utilities"],
            },
            "latest_assessment": self.latest_assessment(parcel_id),
            "owners": self._owners(parcel_id),
        }

    def get_assessments(self, parcel_id: Any) -> List[Dict[str, Any]]:
        self._require_parcel(parcel_id)
        rows = self.conn.execute(
            """
            SELECT assessment_id, tax_year, land_value, building_value, total_value, taxable_value
            FROM assessments
            WHERE parcel_id = ?
            ORDER BY tax_year DESC, assessment_id DESC
            """,
            (parcel_id,),
        ).fetchall()
        return [_row_dict(r) for r in rows]

    def get_owners(self, parcel_id: Any) -> List[Dict[str, Any]]:
        self._require_parcel(parcel_id)
        return self._owners(parcel_id)

    def find_by_parno(self, parno: str) -> Optional[Dict[str, Any]]:
        """Resolve a human-facing parcel number to its summary row.

        Parcel numbers are only assumed unique within the current snapshot.
        """
        row = self.conn.execute(
            """
            SELECT parcel_id, pin, parno, physical_address, township
            FROM parcels
            WHERE parno = ?
            ORDER BY parcel_id ASC
            LIMIT 1
            """,
            (sanitize_text(parno or ""),),
        ).fetchone()
        return _row_dict(row)

    def _distinct(self, sql: str) -> List[Any]:
        return [r[0] for r in self.conn.execute(sql).fetchall()]

    def filter_options(self) -> Dict[str, List[Any]]:
        return {
            "townships": self._distinct(
                "SELECT DISTINCT township FROM parcels "
                "WHERE township IS NOT NULL AND township != '' ORDER BY township"
            ),
            "zoning_codes": self._distinct(
                "SELECT DISTINCT zoning_code FROM parcels "
                "WHERE zoning_code IS NOT NULL AND zoning_code != '' ORDER BY zoning_code"
            ),
            "classifications": self._distinct(
                "SELECT DISTINCT classification FROM property_attributes "
                "WHERE classification IS NOT NULL AND classification != '' ORDER BY classification"
            ),
            "tax_years": self._distinct(
                "SELECT DISTINCT tax_year FROM assessments "
                "WHERE tax_year IS NOT NULL ORDER BY tax_year DESC"
            ),
        }


@contextmanager
def open_store(path: str | None = None, search_limit: int = DEFAULT_LIMIT) -> Iterator[ParcelStore]:
    with open_conn(path) as conn:
        ensure_schema(conn)
        yield ParcelStore(conn, search_limit=search_limit)
