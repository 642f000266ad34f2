from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, List, Mapping, Union

from pydantic import ValidationError

from county_parcels.errors import FilterValidationError
from county_parcels.security import like_pattern, sanitize_text

from .filters import FILTER_FIELDS, AdvancedSearchFilters, FilterDefinition


DEFAULT_LIMIT = 100
MAX_LIMIT = 500
MIN_QUERY_LENGTH = 2
SEARCH_MODES = ("parno", "address", "owner", "all")


@dataclass(frozen=True)
class BuiltQuery:
    sql: str
    params: List[Any]
    joins: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def needs_owner_join(self) -> bool:
        return "owner" in self.joins

    @property
    def needs_assessment_join(self) -> bool:
        return "assessment" in self.joins


_PARCEL_COLUMNS = (
    "p.parcel_id, p.pin, p.parno, p.physical_address, p.township, p.zoning_code, "
    "pa.deeded_acres, pa.calc_acres, pa.gis_acres, pa.classification"
)
_ASSESSMENT_COLUMNS = "a.tax_year, a.land_value, a.building_value, a.total_value, a.taxable_value"

# Latest assessment per parcel: greatest tax year, ties broken by highest id.
_LATEST_ASSESSMENT_JOIN = (
    "JOIN assessments a ON a.assessment_id = ("
    "SELECT a2.assessment_id FROM assessments a2 "
    "WHERE a2.parcel_id = p.parcel_id{year_clause} "
    "ORDER BY a2.tax_year DESC, a2.assessment_id DESC LIMIT 1)"
)


def _clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    return max(1, min(value, MAX_LIMIT))


def _coerce_filters(
    filters: Union[AdvancedSearchFilters, Mapping[str, Any], None]
) -> AdvancedSearchFilters:
    if isinstance(filters, AdvancedSearchFilters):
        return filters
    try:
        return AdvancedSearchFilters.model_validate(dict(filters or {}))
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise FilterValidationError(
            "Invalid filter value: " + ", ".join(fields), cause=e
        ) from e


def _filter_value(definition: FilterDefinition, raw: Any) -> Any:
    """Return the bound value for a filter, or None when it contributes nothing."""
    if raw is None:
        return None
    if definition.value_type == "str":
        text = sanitize_text(str(raw))
        return text or None
    return raw


def build_advanced_search(
    filters: Union[AdvancedSearchFilters, Mapping[str, Any], None],
    limit: int | None = DEFAULT_LIMIT,
) -> BuiltQuery:
    """Translate sparse criteria into one parameterized parcel query.

    Joins are activated by the filters present: an owner-name filter adds the
    owner join, any assessment value or ``tax_year`` filter adds the
    latest-assessment join (restricted to that year when given). Raises
    ``FilterValidationError`` when no filter applies.
    """
    criteria = _coerce_filters(filters)
    values = criteria.model_dump()

    where: List[str] = []
    where_params: List[Any] = []
    join_params: List[Any] = []
    joins = {"attributes"}
    year_clause = ""

    for name, definition in FILTER_FIELDS.items():
        value = _filter_value(definition, values.get(name))
        if value is None:
            continue
        joins.add(definition.join)
        if definition.kind == "contains":
            where.append(f"LOWER({definition.db_column}) LIKE LOWER(?)")
            where_params.append(like_pattern(value))
        elif definition.kind == "equals":
            where.append(f"LOWER({definition.db_column}) = LOWER(?)")
            where_params.append(value)
        elif definition.kind == "min":
            where.append(f"{definition.db_column} >= ?")
            where_params.append(value)
        elif definition.kind == "max":
            where.append(f"{definition.db_column} <= ?")
            where_params.append(value)
        elif definition.kind == "tax_year":
            year_clause = " AND a2.tax_year = ?"
            join_params.append(int(value))

    if not where and not year_clause:
        raise FilterValidationError("At least one filter must be provided")

    columns = _PARCEL_COLUMNS
    join_sql = ["LEFT JOIN property_attributes pa ON pa.parcel_id = p.parcel_id"]
    if "owner" in joins:
        join_sql.append("JOIN parcel_owners po ON po.parcel_id = p.parcel_id")
    if "assessment" in joins:
        columns = f"{columns}, {_ASSESSMENT_COLUMNS}"
        join_sql.append(_LATEST_ASSESSMENT_JOIN.format(year_clause=year_clause))

    where_sql = (" WHERE " + " AND ".join(where)) if where else ""
    sql = (
        f"SELECT DISTINCT {columns} FROM parcels p "
        + " ".join(join_sql)
        + where_sql
        + " ORDER BY p.parno ASC, p.parcel_id ASC LIMIT ?"
    )
    params = [*join_params, *where_params, _clamp_limit(limit)]
    return BuiltQuery(sql=sql, params=params, joins=frozenset(joins))


_SUMMARY_COLUMNS = "p.parcel_id, p.pin, p.parno, p.physical_address, p.township"


def normalize_mode(mode: str | None) -> str:
    key = (mode or "").strip().lower()
    return key if key in SEARCH_MODES else "all"


def build_keyword_search(q: str | None, mode: str | None = "all", limit: int | None = DEFAULT_LIMIT) -> BuiltQuery:
    """Free-text lookup over parcel number, address or owner name."""
    term = sanitize_text(q or "")
    if len(term) < MIN_QUERY_LENGTH:
        raise FilterValidationError("Search query must be at least 2 characters")

    mode = normalize_mode(mode)
    pattern = like_pattern(term)
    capped = _clamp_limit(limit)

    if mode == "parno":
        sql = (
            f"SELECT {_SUMMARY_COLUMNS} FROM parcels p "
            "WHERE LOWER(p.parno) LIKE LOWER(?) "
            "ORDER BY p.parno ASC, p.parcel_id ASC LIMIT ?"
        )
        return BuiltQuery(sql=sql, params=[pattern, capped])

    if mode == "address":
        sql = (
            f"SELECT {_SUMMARY_COLUMNS} FROM parcels p "
            "WHERE LOWER(p.physical_address) LIKE LOWER(?) "
            "ORDER BY p.physical_address ASC, p.parno ASC LIMIT ?"
        )
        return BuiltQuery(sql=sql, params=[pattern, capped])

    if mode == "owner":
        # One row per parcel even when several owners match.
        sql = (
            f"SELECT {_SUMMARY_COLUMNS}, MIN(po.owner_name) AS owner_name FROM parcels p "
            "JOIN parcel_owners po ON po.parcel_id = p.parcel_id "
            "WHERE LOWER(po.owner_name) LIKE LOWER(?) "
            "GROUP BY p.parcel_id "
            "ORDER BY p.parno ASC, p.parcel_id ASC LIMIT ?"
        )
        return BuiltQuery(sql=sql, params=[pattern, capped], joins=frozenset({"owner"}))

    sql = (
        f"SELECT DISTINCT {_SUMMARY_COLUMNS} FROM parcels p "
        "LEFT JOIN parcel_owners po ON po.parcel_id = p.parcel_id "
        "WHERE LOWER(p.parno) LIKE LOWER(?) "
        "OR LOWER(p.physical_address) LIKE LOWER(?) "
        "OR LOWER(po.owner_name) LIKE LOWER(?) "
        "ORDER BY p.parno ASC, p.parcel_id ASC LIMIT ?"
    )
    return BuiltQuery(sql=sql, params=[pattern, pattern, pattern, capped], joins=frozenset({"owner"}))
