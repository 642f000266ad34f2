from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from county_parcels.logs import log_event
from county_parcels.map_view import layers
from county_parcels.map_view.state import (
    AttachLayers,
    BindHandlers,
    ClearSelection,
    Event,
    ExternalSelection,
    FlyTo,
    MapViewState,
    MoveEnded,
    Op,
    ParcelClicked,
    QueryRenderedAt,
    SampleSoil,
    SetBasemap,
    SetHighlight,
    SetStyle,
    SetVisibility,
    StyleLoaded,
    ToggleParcels,
    ToggleSoil,
    initial_ops,
    transition,
)
from county_parcels.parcels.geometry import (
    QueryAt,
    SoilSample,
    debug_feature_collections,
    sample_attributes,
)


Point = Tuple[float, float]
Feature = Dict[str, Any]
Handler = Callable[[Dict[str, Any]], None]
Sampler = Callable[[Optional[Dict[str, Any]], Point, QueryAt], SoilSample]
SelectionCallback = Callable[[str, SoilSample], None]
Locator = Callable[[str], Optional[Point]]

logger = logging.getLogger("parcels.map")


class MapRenderer(Protocol):
    """Adapter over the rendering engine.

    Points are (lon, lat); the adapter projects to screen space where the
    engine needs it. ``on`` returns a callable that detaches the handler.
    """

    def set_visibility(self, layer_id: str, visible: bool) -> None:
        ...

    def set_style(self, style_url: str) -> None:
        ...

    def add_layers(self, sources: Dict[str, Dict[str, Any]], layer_specs: List[Dict[str, Any]]) -> None:
        ...

    def on(self, event: str, layer_id: Optional[str], handler: Handler) -> Callable[[], None]:
        ...

    def fly_to(self, center: Point, zoom: float) -> None:
        ...

    def query_rendered_features(self, point: Point, layer_ids: Sequence[str]) -> List[Feature]:
        ...

    def set_highlight(self, parno: Optional[str]) -> None:
        ...

    def set_cursor(self, cursor: str) -> None:
        ...


class Subscription:
    def __init__(self, event: str, layer_id: Optional[str], detach: Callable[[], None]) -> None:
        self.event = event
        self.layer_id = layer_id
        self._detach: Optional[Callable[[], None]] = detach

    @property
    def active(self) -> bool:
        return self._detach is not None

    def cancel(self) -> None:
        detach, self._detach = self._detach, None
        if detach is not None:
            detach()

    def __repr__(self) -> str:
        state = "active" if self.active else "cancelled"
        return f"Subscription({self.event!r}, {self.layer_id!r}, {state})"


def feature_parno(feature: Feature) -> Optional[str]:
    props = feature.get("properties") or {}
    value = props.get(layers.PARCEL_NUMBER_PROP)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class MapViewController:
    """Drives a ``MapRenderer`` from ``MapViewState`` transitions.

    Map-level subscriptions (style load, move end) live for the life of the
    controller. Layer-level subscriptions (click, hover) are dropped by the
    engine on every style swap, so they are cancelled and rebound each time
    the style finishes loading.
    """

    def __init__(
        self,
        renderer: MapRenderer,
        sampler: Sampler = sample_attributes,
        *,
        on_selection: Optional[SelectionCallback] = None,
        locate: Optional[Locator] = None,
        state: Optional[MapViewState] = None,
    ) -> None:
        self.renderer = renderer
        self.sampler = sampler
        self.on_selection = on_selection
        self.locate = locate
        self.state = state or MapViewState()
        self.last_sample: Optional[SoilSample] = None
        self._map_subscriptions: List[Subscription] = []
        self._layer_subscriptions: List[Subscription] = []
        self._apply = {
            SetVisibility: self._apply_visibility,
            SetHighlight: self._apply_highlight,
            FlyTo: self._apply_fly_to,
            SetStyle: self._apply_style,
            AttachLayers: self._apply_attach,
            BindHandlers: self._apply_bind,
            SampleSoil: self._apply_sample,
            QueryRenderedAt: self._apply_query_rendered,
        }

    @property
    def subscriptions(self) -> List[Subscription]:
        return [*self._map_subscriptions, *self._layer_subscriptions]

    def _subscribe(self, event: str, layer_id: Optional[str], handler: Handler) -> Subscription:
        return Subscription(event, layer_id, self.renderer.on(event, layer_id, handler))

    def start(self) -> None:
        """Hook the map-level events. Layers attach once the first style loads."""
        if self._map_subscriptions:
            return
        self._map_subscriptions = [
            self._subscribe("style.load", None, lambda _e: self.dispatch(StyleLoaded())),
            self._subscribe("moveend", None, lambda _e: self.dispatch(MoveEnded())),
        ]

    def stop(self) -> None:
        for sub in self.subscriptions:
            sub.cancel()
        self._map_subscriptions = []
        self._layer_subscriptions = []

    def dispatch(self, event: Event) -> List[Op]:
        self.state, ops = transition(self.state, event)
        for op in ops:
            self._apply[type(op)](op)
        return ops

    # UI entry points

    def toggle_soil(self) -> None:
        self.dispatch(ToggleSoil())

    def toggle_parcels(self) -> None:
        self.dispatch(ToggleParcels())

    def set_basemap(self, basemap: str) -> None:
        self.dispatch(SetBasemap(basemap))

    def clear_selection(self) -> None:
        self.dispatch(ClearSelection())

    def select_parcel(self, parno: str, centroid: Optional[Point] = None) -> bool:
        """Fly to a parcel picked from search results.

        Returns False when no centroid is known for ``parno``.
        """
        if centroid is None and self.locate is not None:
            centroid = self.locate(parno)
        if centroid is None:
            log_event(logger, "selection_unlocated", level=logging.WARNING, parno=parno)
            return False
        self.dispatch(ExternalSelection(parno, (float(centroid[0]), float(centroid[1]))))
        return True

    def debug_overlays(self) -> Dict[str, Dict[str, Any]]:
        if self.last_sample is None:
            return {}
        return debug_feature_collections(self.last_sample)

    # Renderer events

    def _on_parcel_click(self, event: Dict[str, Any]) -> None:
        features = event.get("features") or []
        lng_lat = event.get("lngLat")
        if not features or lng_lat is None:
            return
        feature = features[0]
        parno = feature_parno(feature)
        if parno is None:
            return
        self.dispatch(ParcelClicked(parno, feature.get("geometry"), (float(lng_lat[0]), float(lng_lat[1]))))

    def _on_hover_enter(self, _event: Dict[str, Any]) -> None:
        self.renderer.set_cursor("pointer")

    def _on_hover_leave(self, _event: Dict[str, Any]) -> None:
        self.renderer.set_cursor("")

    # Operations

    def _apply_visibility(self, op: SetVisibility) -> None:
        for layer_id in op.layer_ids:
            self.renderer.set_visibility(layer_id, op.visible)

    def _apply_highlight(self, op: SetHighlight) -> None:
        self.renderer.set_highlight(op.parno)

    def _apply_fly_to(self, op: FlyTo) -> None:
        self.renderer.fly_to(op.center, op.zoom)

    def _apply_style(self, op: SetStyle) -> None:
        for sub in self._layer_subscriptions:
            sub.cancel()
        self._layer_subscriptions = []
        log_event(logger, "style_swap", basemap=self.state.basemap)
        self.renderer.set_style(op.style_url)

    def _apply_attach(self, op: AttachLayers) -> None:
        specs = layers.layer_specs(op.show_soil, op.show_parcels, op.highlighted_parno)
        self.renderer.add_layers(dict(layers.SOURCES), specs)

    def _apply_bind(self, op: BindHandlers) -> None:
        for sub in self._layer_subscriptions:
            sub.cancel()
        subs = [
            self._subscribe("click", layer_id, self._on_parcel_click)
            for layer_id in layers.CLICKABLE_LAYERS
        ]
        for layer_id in layers.HOVER_LAYERS:
            subs.append(self._subscribe("mouseenter", layer_id, self._on_hover_enter))
            subs.append(self._subscribe("mouseleave", layer_id, self._on_hover_leave))
        self._layer_subscriptions = subs

    def _query_soil(self, point: Point) -> List[Dict[str, Any]]:
        features = self.renderer.query_rendered_features(point, layers.SOIL_LAYERS)
        return [f.get("properties") or {} for f in features]

    def _apply_sample(self, op: SampleSoil) -> None:
        sample = self.sampler(op.geometry, op.point, self._query_soil)
        self.last_sample = sample
        log_event(
            logger,
            "soil_sampled",
            parno=op.parno,
            samples=len(sample.sampled_points),
            farmland=len(sample.farmland),
            capability_classes=len(sample.capability_classes),
        )
        if self.on_selection is not None:
            self.on_selection(op.parno, sample)

    def _apply_query_rendered(self, op: QueryRenderedAt) -> None:
        geometry = None
        for feature in self.renderer.query_rendered_features(op.point, (layers.PARCEL_FILL_LAYER,)):
            if feature_parno(feature) == op.parno:
                geometry = feature.get("geometry")
                break
        if geometry is None:
            log_event(logger, "selection_not_rendered", level=logging.WARNING, parno=op.parno)
        self.dispatch(ParcelClicked(op.parno, geometry, op.point))
