"""Detail panel model for a selected parcel.

Combines the parcel, assessment and owner payloads from the API with the soil
sample taken on the map.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from county_parcels.client import ParcelApiClient
from county_parcels.errors import ParcelApiError
from county_parcels.parcels.geometry import SoilSample


NA = "N/A"

Row = Tuple[str, str]


def format_currency(value: Any) -> str:
    if value is None:
        return NA
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return NA
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.0f}"


def format_acres(value: Any) -> str:
    if value is None:
        return NA
    try:
        return f"{float(value):.2f} acres"
    except (TypeError, ValueError):
        return NA


def _text(value: Any) -> str:
    if value is None or value == "":
        return NA
    return str(value)


def format_mailing_address(owner: Dict[str, Any]) -> str:
    out = owner.get("mailing_address") or NA
    if owner.get("mailing_city"):
        out += f", {owner['mailing_city']}"
    if owner.get("mailing_state"):
        out += f", {owner['mailing_state']}"
    if owner.get("mailing_zip"):
        out += f" {owner['mailing_zip']}"
    return out


def resolve_parcel(client: ParcelApiClient, parno: str) -> Optional[Dict[str, Any]]:
    """Map a tile parcel number to its API record.

    Tiles are keyed by parcel number while the API is keyed by ``parcel_id``.
    The lookup is exact, so a parcel number that is a prefix of many others
    still resolves to its own row.
    """
    wanted = (parno or "").strip()
    if not wanted:
        return None
    return client.get_by_parno(wanted)


@dataclass
class ParcelDetailView:
    parcel: Optional[Dict[str, Any]] = None
    assessments: List[Dict[str, Any]] = field(default_factory=list)
    owners: List[Dict[str, Any]] = field(default_factory=list)
    soil: Optional[SoilSample] = None
    error: Optional[str] = None

    @classmethod
    def load(
        cls,
        client: ParcelApiClient,
        parcel_id: int | str,
        soil: Optional[SoilSample] = None,
    ) -> "ParcelDetailView":
        try:
            parcel = client.get_details(parcel_id)
            assessments = client.get_assessments(parcel_id)
            owners = client.get_owners(parcel_id)
        except ParcelApiError as e:
            return cls(soil=soil, error=e.message or "Failed to load parcel data")
        return cls(parcel=parcel, assessments=assessments, owners=owners, soil=soil)

    @classmethod
    def for_parno(
        cls,
        client: ParcelApiClient,
        parno: str,
        soil: Optional[SoilSample] = None,
    ) -> "ParcelDetailView":
        try:
            row = resolve_parcel(client, parno)
        except ParcelApiError as e:
            return cls(soil=soil, error=e.message)
        if row is None:
            return cls(soil=soil, error="Parcel not found")
        return cls.load(client, row["parcel_id"], soil=soil)

    @property
    def ok(self) -> bool:
        return self.error is None and self.parcel is not None

    def basic_rows(self) -> List[Row]:
        p = self.parcel or {}
        return [
            ("Parcel Number", _text(p.get("parno"))),
            ("Address", _text(p.get("physical_address"))),
            ("Township", _text(p.get("township"))),
            ("Zoning", _text(p.get("zoning_code"))),
        ]

    def attribute_rows(self) -> List[Row]:
        attrs = (self.parcel or {}).get("attributes") or {}
        acres = attrs.get("gis_acres") or attrs.get("calc_acres")
        return [
            ("Acres", format_acres(acres)),
            ("Classification", _text(attrs.get("classification"))),
            ("Road Type", _text(attrs.get("road_type"))),
            ("Utilities", _text(attrs.get("utilities"))),
        ]

    def assessment_rows(self) -> List[Row]:
        if not self.assessments:
            return []
        latest = self.assessments[0]
        return [
            ("Tax Year", _text(latest.get("tax_year"))),
            ("Land Value", format_currency(latest.get("land_value"))),
            ("Building Value", format_currency(latest.get("building_value"))),
            ("Total Value", format_currency(latest.get("total_value"))),
        ]

    def owner_rows(self) -> List[List[Row]]:
        return [
            [
                ("Name", _text(owner.get("owner_name"))),
                ("Mailing Address", format_mailing_address(owner)),
            ]
            for owner in self.owners
        ]

    def soil_rows(self) -> List[Row]:
        if self.soil is None:
            return []
        soil = self.soil.to_dict()
        return [
            ("Farmland", _text(soil.get("Farmland"))),
            ("Land Capability Class", _text(soil.get("land_capability_class"))),
            ("Slope", _text(soil.get("Slope"))),
            ("Soil Type", _text(soil.get("Soil Type"))),
        ]

    def sections(self) -> List[Tuple[str, Any]]:
        """Panel sections in display order; empty sections are omitted."""
        if not self.ok:
            return []
        out: List[Tuple[str, Any]] = [
            ("Basic Information", self.basic_rows()),
            ("Property Attributes", self.attribute_rows()),
        ]
        if self.assessments:
            out.append(("Latest Assessment", self.assessment_rows()))
        if self.owners:
            out.append(("Owner Information", self.owner_rows()))
        if self.soil is not None:
            out.append(("Soil Information", self.soil_rows()))
        return out
