"""Map viewer state machine.

``transition`` is pure: it takes the current state and one UI event and
returns the next state plus the layer operations the renderer must apply.
The controller owns the side effects.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple, Union

from county_parcels.map_view import layers


Point = Tuple[float, float]


@dataclass(frozen=True)
class PendingSelection:
    parno: str
    centroid: Point


@dataclass(frozen=True)
class MapViewState:
    show_soil: bool = True
    show_parcels: bool = True
    basemap: str = layers.BASEMAP_STANDARD
    highlighted_parno: Optional[str] = None
    # Set while the view flies to a parcel chosen outside the map.
    pending_selection: Optional[PendingSelection] = None


# Events


@dataclass(frozen=True)
class ToggleSoil:
    pass


@dataclass(frozen=True)
class ToggleParcels:
    pass


@dataclass(frozen=True)
class SetBasemap:
    basemap: str


@dataclass(frozen=True)
class ParcelClicked:
    parno: str
    geometry: Optional[Dict[str, Any]]
    point: Point


@dataclass(frozen=True)
class ExternalSelection:
    parno: str
    centroid: Point


@dataclass(frozen=True)
class MoveEnded:
    pass


@dataclass(frozen=True)
class StyleLoaded:
    pass


@dataclass(frozen=True)
class ClearSelection:
    pass


Event = Union[
    ToggleSoil,
    ToggleParcels,
    SetBasemap,
    ParcelClicked,
    ExternalSelection,
    MoveEnded,
    StyleLoaded,
    ClearSelection,
]


# Operations


@dataclass(frozen=True)
class SetVisibility:
    layer_ids: Tuple[str, ...]
    visible: bool


@dataclass(frozen=True)
class SetHighlight:
    parno: Optional[str]


@dataclass(frozen=True)
class FlyTo:
    center: Point
    zoom: float


@dataclass(frozen=True)
class SetStyle:
    style_url: str


@dataclass(frozen=True)
class AttachLayers:
    show_soil: bool
    show_parcels: bool
    highlighted_parno: Optional[str]


@dataclass(frozen=True)
class BindHandlers:
    pass


@dataclass(frozen=True)
class SampleSoil:
    parno: str
    geometry: Optional[Dict[str, Any]]
    point: Point


@dataclass(frozen=True)
class QueryRenderedAt:
    parno: str
    point: Point


Op = Union[
    SetVisibility,
    SetHighlight,
    FlyTo,
    SetStyle,
    AttachLayers,
    BindHandlers,
    SampleSoil,
    QueryRenderedAt,
]


def initial_ops(state: MapViewState) -> List[Op]:
    """Operations that bring a freshly loaded style in line with ``state``."""
    ops: List[Op] = [
        AttachLayers(state.show_soil, state.show_parcels, state.highlighted_parno),
        BindHandlers(),
    ]
    if state.highlighted_parno:
        ops.append(SetHighlight(state.highlighted_parno))
    return ops


def transition(state: MapViewState, event: Event) -> Tuple[MapViewState, List[Op]]:
    if isinstance(event, ToggleSoil):
        new = replace(state, show_soil=not state.show_soil)
        return new, [SetVisibility(layers.SOIL_LAYERS, new.show_soil)]

    if isinstance(event, ToggleParcels):
        new = replace(state, show_parcels=not state.show_parcels)
        return new, [SetVisibility(layers.PARCEL_LAYERS, new.show_parcels)]

    if isinstance(event, SetBasemap):
        if event.basemap == state.basemap:
            return state, []
        url = layers.basemap_style_url(event.basemap)
        # Swapping the style drops every data layer and handler; StyleLoaded restores them.
        return replace(state, basemap=event.basemap), [SetStyle(url)]

    if isinstance(event, StyleLoaded):
        return state, initial_ops(state)

    if isinstance(event, ParcelClicked):
        new = replace(state, highlighted_parno=event.parno, pending_selection=None)
        return new, [
            SetHighlight(event.parno),
            SampleSoil(event.parno, event.geometry, event.point),
        ]

    if isinstance(event, ExternalSelection):
        pending = PendingSelection(event.parno, event.centroid)
        new = replace(state, pending_selection=pending)
        return new, [FlyTo(event.centroid, layers.SELECTION_ZOOM)]

    if isinstance(event, MoveEnded):
        pending = state.pending_selection
        if pending is None:
            return state, []
        # The parcel is only guaranteed to be rendered once the view has arrived.
        return replace(state, pending_selection=None), [
            QueryRenderedAt(pending.parno, pending.centroid)
        ]

    if isinstance(event, ClearSelection):
        new = replace(state, highlighted_parno=None, pending_selection=None)
        return new, [SetHighlight(None)]

    raise TypeError(f"Unsupported map event: {type(event).__name__}")
