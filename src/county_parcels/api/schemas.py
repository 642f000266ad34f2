from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class ParcelSummary(BaseModel):
    parcel_id: int
    pin: Optional[str] = None
    parno: str
    physical_address: Optional[str] = None
    township: Optional[str] = None
    owner_name: Optional[str] = None


class ParcelAttributes(BaseModel):
    deeded_acres: Optional[float] = None
    gis_acres: Optional[float] = None
    calc_acres: Optional[float] = None
    classification: Optional[str] = None
    road_type: Optional[str] = None
    utilities: Optional[str] = None


class Assessment(BaseModel):
    assessment_id: int
    tax_year: int
    land_value: Optional[float] = None
    building_value: Optional[float] = None
    total_value: Optional[float] = None
    taxable_value: Optional[float] = None


class Owner(BaseModel):
    owner_id: int
    owner_name: str
    is_primary: bool = False
    mailing_address: Optional[str] = None
    mailing_city: Optional[str] = None
    mailing_state: Optional[str] = None
    mailing_zip: Optional[str] = None


class ParcelDetail(BaseModel):
    parcel_id: int
    pin: Optional[str] = None
    parno: str
    physical_address: Optional[str] = None
    township: Optional[str] = None
    legal_desc: Optional[str] = None
    zoning_code: Optional[str] = None
    attributes: ParcelAttributes = Field(default_factory=ParcelAttributes)
    latest_assessment: Optional[Assessment] = None
    owners: List[Owner] = Field(default_factory=list)


class AdvancedSearchRow(BaseModel):
    """One advanced-search hit; assessment columns only when that join ran."""

    parcel_id: int
    pin: Optional[str] = None
    parno: str
    physical_address: Optional[str] = None
    township: Optional[str] = None
    zoning_code: Optional[str] = None
    deeded_acres: Optional[float] = None
    calc_acres: Optional[float] = None
    gis_acres: Optional[float] = None
    classification: Optional[str] = None
    tax_year: Optional[int] = None
    land_value: Optional[float] = None
    building_value: Optional[float] = None
    total_value: Optional[float] = None
    taxable_value: Optional[float] = None


class FilterOptions(BaseModel):
    townships: List[str] = Field(default_factory=list)
    zoning_codes: List[str] = Field(default_factory=list)
    classifications: List[str] = Field(default_factory=list)
    tax_years: List[int] = Field(default_factory=list)


class HealthStatus(BaseModel):
    status: str = "healthy"
    timestamp: str
    environment: str


def dump_rows(model: type[BaseModel], rows: List[dict]) -> List[dict]:
    # exclude_unset keeps optional columns the query did not select out of the payload.
    return [model.model_validate(row).model_dump(exclude_unset=True) for row in rows]


def envelope(data: Any = None, **extra: Any) -> dict:
    payload = {"success": True, **extra}
    payload["data"] = data
    return payload


def error_envelope(message: str) -> dict:
    return {"success": False, "error": message}
