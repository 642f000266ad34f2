from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict


FilterKind = Literal["contains", "equals", "min", "max", "tax_year"]
JoinKey = Literal["parcel", "attributes", "owner", "assessment"]
ValueType = Literal["str", "float", "int"]


@dataclass(frozen=True)
class FilterDefinition:
    name: str
    kind: FilterKind
    db_column: str
    join: JoinKey
    value_type: ValueType
    ui_label: str


def _text(name: str, kind: FilterKind, column: str, join: JoinKey, label: str) -> FilterDefinition:
    return FilterDefinition(name, kind, column, join, "str", label)


def _range(base: str, column: str, join: JoinKey, label: str) -> Dict[str, FilterDefinition]:
    return {
        f"{base}_min": FilterDefinition(f"{base}_min", "min", column, join, "float", f"{label} (min)"),
        f"{base}_max": FilterDefinition(f"{base}_max", "max", column, join, "float", f"{label} (max)"),
    }


# Fixed filter registry. Order here is the order clauses and params are emitted.
FILTER_FIELDS: Dict[str, FilterDefinition] = {
    "parno": _text("parno", "contains", "p.parno", "parcel", "Parcel Number"),
    "address": _text("address", "contains", "p.physical_address", "parcel", "Address"),
    "owner_name": _text("owner_name", "contains", "po.owner_name", "owner", "Owner Name"),
    "township": _text("township", "equals", "p.township", "parcel", "Township"),
    "zoning_code": _text("zoning_code", "equals", "p.zoning_code", "parcel", "Zoning"),
    "classification": _text(
        "classification", "equals", "pa.classification", "attributes", "Classification"
    ),
    **_range("deeded_acres", "pa.deeded_acres", "attributes", "Deeded Acres"),
    **_range("calc_acres", "pa.calc_acres", "attributes", "Calculated Acres"),
    **_range("gis_acres", "pa.gis_acres", "attributes", "GIS Acres"),
    "tax_year": FilterDefinition("tax_year", "tax_year", "tax_year", "assessment", "int", "Tax Year"),
    **_range("land_value", "a.land_value", "assessment", "Land Value"),
    **_range("building_value", "a.building_value", "assessment", "Building Value"),
    **_range("total_value", "a.total_value", "assessment", "Total Value"),
    **_range("taxable_value", "a.taxable_value", "assessment", "Taxable Value"),
}


class AdvancedSearchFilters(BaseModel):
    """Sparse advanced-search criteria; every field is optional."""

    model_config = ConfigDict(extra="ignore")

    parno: Optional[str] = None
    address: Optional[str] = None
    owner_name: Optional[str] = None
    township: Optional[str] = None
    zoning_code: Optional[str] = None
    classification: Optional[str] = None
    deeded_acres_min: Optional[float] = None
    deeded_acres_max: Optional[float] = None
    calc_acres_min: Optional[float] = None
    calc_acres_max: Optional[float] = None
    gis_acres_min: Optional[float] = None
    gis_acres_max: Optional[float] = None
    tax_year: Optional[int] = None
    land_value_min: Optional[float] = None
    land_value_max: Optional[float] = None
    building_value_min: Optional[float] = None
    building_value_max: Optional[float] = None
    total_value_min: Optional[float] = None
    total_value_max: Optional[float] = None
    taxable_value_min: Optional[float] = None
    taxable_value_max: Optional[float] = None
