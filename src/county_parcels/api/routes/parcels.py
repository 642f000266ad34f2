from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from fastapi import APIRouter, Request

from county_parcels.api.schemas import (
    AdvancedSearchRow,
    Assessment,
    FilterOptions,
    Owner,
    ParcelDetail,
    ParcelSummary,
    dump_rows,
    envelope,
)
from county_parcels.config import Settings
from county_parcels.errors import DatabaseError, ParcelNotFound
from county_parcels.parcels.store import ParcelStore, open_store
from county_parcels.search.filters import AdvancedSearchFilters


router = APIRouter(tags=["parcels"])
logger = logging.getLogger("parcels.api")


@contextmanager
def _store(request: Request, failure: str) -> Iterator[ParcelStore]:
    """Open a store for one request, mapping database faults to ``failure``."""
    settings: Settings = request.app.state.settings
    try:
        with open_store(settings.db_path, search_limit=settings.search_limit) as store:
            yield store
    except sqlite3.Error as e:
        logger.exception("%s", failure)
        raise DatabaseError(failure, cause=e) from e


@router.get("/parcels/search")
def search_parcels(request: Request, q: str = "", type: str = "all"):
    with _store(request, "Failed to search parcels") as store:
        rows = store.search(q, type)
    return envelope(dump_rows(ParcelSummary, rows))


@router.get("/parcels/filter-options")
def filter_options(request: Request):
    with _store(request, "Failed to get filter options") as store:
        options = store.filter_options()
    return envelope(FilterOptions.model_validate(options).model_dump())


@router.post("/parcels/advanced-search")
def advanced_search(request: Request, filters: AdvancedSearchFilters):
    with _store(request, "Failed to perform advanced search") as store:
        rows = store.advanced_search(filters)
    data = dump_rows(AdvancedSearchRow, rows)
    return envelope(data, count=len(data))


@router.get("/parcels/by-parno/{parno}")
def parcel_by_parno(request: Request, parno: str):
    with _store(request, "Failed to get parcel details") as store:
        row = store.find_by_parno(parno)
    if row is None:
        raise ParcelNotFound(parno)
    return envelope(ParcelSummary.model_validate(row).model_dump(exclude_unset=True))


@router.get("/parcels/{parcel_id}")
def parcel_details(request: Request, parcel_id: str):
    with _store(request, "Failed to get parcel details") as store:
        details = store.get_details(parcel_id)
    return envelope(ParcelDetail.model_validate(details).model_dump())


@router.get("/parcels/{parcel_id}/assessments")
def parcel_assessments(request: Request, parcel_id: str):
    with _store(request, "Failed to get assessments") as store:
        rows = store.get_assessments(parcel_id)
    return envelope(dump_rows(Assessment, rows))


@router.get("/parcels/{parcel_id}/owners")
def parcel_owners(request: Request, parcel_id: str):
    with _store(request, "Failed to get owners") as store:
        rows = store.get_owners(parcel_id)
    return envelope(dump_rows(Owner, rows))
