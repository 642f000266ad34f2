import pytest

from county_parcels.errors import FilterValidationError
from county_parcels.search.filters import FILTER_FIELDS, AdvancedSearchFilters
from county_parcels.search.query import (
    MAX_LIMIT,
    build_advanced_search,
    build_keyword_search,
    normalize_mode,
)


def test_zero_filters_is_a_validation_error():
    with pytest.raises(FilterValidationError) as exc:
        build_advanced_search({})
    assert exc.value.message == "At least one filter must be provided"
    assert exc.value.status_code == 400


def test_blank_and_markup_only_text_counts_as_absent():
    with pytest.raises(FilterValidationError):
        build_advanced_search({"owner_name": "   ", "address": "<>", "parno": None})


def test_owner_filter_adds_owner_join_only():
    q = build_advanced_search({"owner_name": "smith"})
    assert q.needs_owner_join
    assert not q.needs_assessment_join
    assert "JOIN parcel_owners po" in q.sql
    assert "assessments" not in q.sql
    assert "SELECT DISTINCT" in q.sql
    assert q.params == ["%smith%", 100]


def test_tax_year_restricts_latest_assessment_join():
    q = build_advanced_search(AdvancedSearchFilters(tax_year=2023))
    assert q.needs_assessment_join
    assert not q.needs_owner_join
    assert "a2.tax_year = ?" in q.sql
    assert "ORDER BY a2.tax_year DESC, a2.assessment_id DESC LIMIT 1" in q.sql
    assert " WHERE " not in q.sql.split("LIMIT 1)")[-1]
    assert q.params == [2023, 100]


def test_join_params_precede_where_params():
    q = build_advanced_search({"tax_year": 2022, "total_value_min": 1000, "township": "Clinton"})
    assert q.params == [2022, "Clinton", 1000, 100]
    assert "LOWER(p.township) = LOWER(?)" in q.sql
    assert "a.total_value >= ?" in q.sql


def test_range_filters_are_inclusive():
    q = build_advanced_search({"deeded_acres_min": 1.5, "deeded_acres_max": 3})
    assert "pa.deeded_acres >= ?" in q.sql
    assert "pa.deeded_acres <= ?" in q.sql
    assert q.params[:2] == [1.5, 3.0]


def test_user_text_never_lands_in_sql():
    hostile = "x'); DROP TABLE parcels; --"
    q = build_advanced_search({"address": hostile})
    assert "DROP TABLE" not in q.sql
    assert q.params[0] == f"%{hostile}%"


def test_unknown_keys_are_ignored():
    q = build_advanced_search({"parno": "12", "sort": "desc; DROP"})
    assert "DROP" not in q.sql
    assert q.params == ["%12%", 100]


def test_bad_numeric_value_is_a_validation_error():
    with pytest.raises(FilterValidationError) as exc:
        build_advanced_search({"total_value_min": "lots"})
    assert "total_value_min" in exc.value.message


def test_limit_is_capped():
    q = build_advanced_search({"parno": "12"}, limit=10_000)
    assert q.params[-1] == MAX_LIMIT
    q = build_advanced_search({"parno": "12"}, limit=None)
    assert q.params[-1] == 100


def test_registry_columns_are_qualified():
    for name, definition in FILTER_FIELDS.items():
        assert definition.name == name
        if definition.kind != "tax_year":
            assert "." in definition.db_column


def test_keyword_search_requires_two_characters():
    with pytest.raises(FilterValidationError) as exc:
        build_keyword_search(" a ", "parno")
    assert exc.value.message == "Search query must be at least 2 characters"


def test_keyword_search_modes():
    parno = build_keyword_search("123", "parno")
    assert "LOWER(p.parno) LIKE LOWER(?)" in parno.sql
    assert parno.params == ["%123%", 100]

    owner = build_keyword_search("smith", "owner")
    assert owner.needs_owner_join
    assert "GROUP BY p.parcel_id" in owner.sql

    everything = build_keyword_search("smith", "bogus")
    assert everything.params == ["%smith%", "%smith%", "%smith%", 100]


def test_normalize_mode():
    assert normalize_mode("OWNER") == "owner"
    assert normalize_mode(None) == "all"
    assert normalize_mode("street") == "all"
