import logging

import pytest

from county_parcels.errors import FilterValidationError, ParcelNotFound


def test_parno_search_is_substring_and_ordered(store):
    rows = store.search("123", "parno")
    assert [r["parno"] for r in rows] == ["00123X", "0101230", "A1234"]
    assert all("123" in r["parno"] for r in rows)
    assert "owner_name" not in rows[0]


def test_parno_search_is_case_insensitive(store):
    rows = store.search("a12", "parno")
    assert [r["parno"] for r in rows] == ["A1234"]


def test_owner_search_returns_one_row_per_parcel(store):
    rows = store.search("smith", "owner")
    assert [(r["parcel_id"], r["owner_name"]) for r in rows] == [
        (1, "SMITH JOHN"),
        (3, "SMITH JANE"),
    ]


def test_address_search_orders_by_address(store):
    rows = store.search(" st", "address")
    assert [r["physical_address"] for r in rows] == ["123 MAIN ST", "77  PINE  ST"]


def test_all_mode_matches_any_field(store):
    assert [r["parcel_id"] for r in store.search("main")] == [1]
    assert [r["parcel_id"] for r in store.search("adams")] == [1]
    assert [r["parcel_id"] for r in store.search("smith", "unknown")] == [1, 3]


def test_short_query_rejected(store):
    with pytest.raises(FilterValidationError):
        store.search("1")


def test_search_log_omits_the_query_text(store, caplog):
    caplog.set_level(logging.INFO, logger="parcels.search")
    store.search("SecretTerm", "owner")
    assert "keyword_search" in caplog.text
    assert "SecretTerm" not in caplog.text


def test_details_aggregate_attributes_assessment_and_owners(store):
    d = store.get_details(1)
    assert d["parno"] == "0101230"
    assert d["attributes"]["gis_acres"] == 10.25
    assert d["attributes"]["road_type"] == "Paved"
    assert d["latest_assessment"]["tax_year"] == 2023
    assert d["latest_assessment"]["total_value"] == 120000
    assert [o["owner_name"] for o in d["owners"]] == ["SMITH JOHN", "ADAMS MARY"]
    assert d["owners"][0]["is_primary"] is True
    assert d["owners"][1]["is_primary"] is False


def test_details_without_attributes_or_assessments(store):
    d = store.get_details(3)
    assert d["latest_assessment"] is None
    d = store.get_details(4)
    assert d["attributes"]["classification"] is None
    assert d["owners"] == []


def test_missing_parcel_raises_not_found(store):
    with pytest.raises(ParcelNotFound):
        store.get_details(999)
    with pytest.raises(ParcelNotFound):
        store.get_assessments("not-a-number")
    with pytest.raises(ParcelNotFound):
        store.get_owners(999)


def test_assessments_newest_first_with_id_tiebreak(store):
    rows = store.get_assessments(2)
    assert [r["assessment_id"] for r in rows] == [4, 3]
    assert store.get_details(2)["latest_assessment"]["total_value"] == 310000


def test_owners_primary_then_name(store):
    assert [o["owner_name"] for o in store.get_owners(1)] == ["SMITH JOHN", "ADAMS MARY"]


def test_filter_options(store):
    opts = store.filter_options()
    assert opts["townships"] == ["Clinton", "Dismal", "Mingo"]
    assert opts["zoning_codes"] == ["C-2", "RA"]
    assert opts["classifications"] == ["Agricultural", "Commercial"]
    assert opts["tax_years"] == [2023, 2022, 2021]


def test_find_by_parno(store):
    assert store.find_by_parno("A1234")["parcel_id"] == 2
    assert store.find_by_parno("nope") is None


def test_advanced_value_range_returns_every_assessed_parcel(store):
    rows = store.advanced_search({"total_value_min": 0, "total_value_max": 1e9})
    assert [r["parno"] for r in rows] == ["00123X", "0101230", "A1234"]


def test_advanced_value_filters_use_latest_assessment(store):
    # Parcel 1 had 100000 in 2022 but its latest record is 120000.
    rows = store.advanced_search({"total_value_max": 100000})
    assert [r["parcel_id"] for r in rows] == [4]

    rows = store.advanced_search({"total_value_min": 120000})
    assert [(r["parcel_id"], r["total_value"]) for r in rows] == [(1, 120000), (2, 310000)]


def test_advanced_tax_year_only(store):
    rows = store.advanced_search({"tax_year": 2023})
    assert [(r["parcel_id"], r["tax_year"]) for r in rows] == [(1, 2023), (2, 2023)]

    rows = store.advanced_search({"tax_year": 2022})
    assert [(r["parcel_id"], r["total_value"]) for r in rows] == [(1, 100000)]


def test_advanced_owner_and_text_filters(store):
    rows = store.advanced_search({"owner_name": "SMITH"})
    assert [r["parcel_id"] for r in rows] == [1, 3]
    assert "tax_year" not in rows[0]

    rows = store.advanced_search({"township": "clinton"})
    assert [r["parcel_id"] for r in rows] == [4, 1]

    rows = store.advanced_search({"deeded_acres_min": 10, "deeded_acres_max": 10})
    assert [r["parcel_id"] for r in rows] == [1]


def test_owner_join_lists_each_parcel_once(store):
    # Parcel 1 now has two owners matching "smith".
    store.conn.execute(
        "INSERT INTO parcel_owners (parcel_id, owner_name, is_primary) VALUES (1, 'SMITH MARY', 0)"
    )
    store.conn.commit()

    first = store.advanced_search({"owner_name": "smith"})
    assert [r["parcel_id"] for r in first] == [1, 3]
    assert store.advanced_search({"owner_name": "smith"}) == first

    rows = store.search("smith", "owner")
    assert [(r["parcel_id"], r["owner_name"]) for r in rows] == [(1, "SMITH JOHN"), (3, "SMITH JANE")]


def test_advanced_limit(store):
    rows = store.advanced_search({"total_value_min": 0}, limit=2)
    assert len(rows) == 2
