"""Static catalogue of the viewer's tile sources, layers and basemaps."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple


COUNTY_CENTER: Tuple[float, float] = (-78.3364, 34.9940)
INITIAL_ZOOM = 10
SELECTION_ZOOM = 16

SOURCE_LAYER = "combined_layer"

SOIL_SOURCE = "sampson-soil"
PARCEL_SOURCE = "sampson-parcels"

SOIL_LAYER = "soil-layer"
PARCEL_FILL_LAYER = "parcels-fill"
PARCEL_OUTLINE_LAYER = "parcels-outline"
PARCEL_HIGHLIGHT_LAYER = "parcels-highlight"

# Tile feature property holding the parcel number.
PARCEL_NUMBER_PROP = "PARNO"

BASEMAP_STANDARD = "standard"
BASEMAP_SATELLITE = "satellite"

BASEMAP_STYLES: Dict[str, str] = {
    BASEMAP_STANDARD: "mapbox://styles/mapbox/dark-v11",
    BASEMAP_SATELLITE: "mapbox://styles/mapbox/satellite-streets-v12",
}

SOURCES: Dict[str, Dict[str, Any]] = {
    SOIL_SOURCE: {"type": "vector", "url": "mapbox://ayusuftatli.sampson_soil"},
    PARCEL_SOURCE: {"type": "vector", "url": "mapbox://ayusuftatli.sampson_parcels"},
}

SOIL_LAYERS: Tuple[str, ...] = (SOIL_LAYER,)
PARCEL_LAYERS: Tuple[str, ...] = (
    PARCEL_FILL_LAYER,
    PARCEL_OUTLINE_LAYER,
    PARCEL_HIGHLIGHT_LAYER,
)

# Layers whose features respond to clicks and hover.
CLICKABLE_LAYERS: Tuple[str, ...] = (PARCEL_FILL_LAYER,)
HOVER_LAYERS: Tuple[str, ...] = (PARCEL_FILL_LAYER, SOIL_LAYER)


def highlight_filter(parno: str | None) -> List[Any]:
    # An empty parno matches nothing, which hides the highlight.
    return ["==", ["get", PARCEL_NUMBER_PROP], parno or ""]


def _visibility(visible: bool) -> str:
    return "visible" if visible else "none"


def layer_specs(
    show_soil: bool, show_parcels: bool, highlighted_parno: str | None = None
) -> List[Dict[str, Any]]:
    """Layer definitions in draw order, with the given visibility applied."""
    soil = _visibility(show_soil)
    parcels = _visibility(show_parcels)
    return [
        {
            "id": SOIL_LAYER,
            "type": "fill",
            "source": SOIL_SOURCE,
            "source-layer": SOURCE_LAYER,
            "paint": {
                "fill-color": [
                    "interpolate",
                    ["linear"],
                    ["get", "OBJECTID"],
                    0, "#4facfe",
                    500, "#00f2fe",
                    1000, "#667eea",
                    1500, "#764ba2",
                ],
                "fill-opacity": 0.6,
                "fill-outline-color": "#ffffff",
            },
            "layout": {"visibility": soil},
        },
        {
            "id": PARCEL_FILL_LAYER,
            "type": "fill",
            "source": PARCEL_SOURCE,
            "source-layer": SOURCE_LAYER,
            "paint": {"fill-color": "#f5576c", "fill-opacity": 0.3},
            "layout": {"visibility": parcels},
        },
        {
            "id": PARCEL_OUTLINE_LAYER,
            "type": "line",
            "source": PARCEL_SOURCE,
            "source-layer": SOURCE_LAYER,
            "paint": {"line-color": "#f093fb", "line-width": 1.5, "line-opacity": 0.8},
            "layout": {"visibility": parcels},
        },
        {
            "id": PARCEL_HIGHLIGHT_LAYER,
            "type": "line",
            "source": PARCEL_SOURCE,
            "source-layer": SOURCE_LAYER,
            "paint": {"line-color": "#ffd166", "line-width": 3},
            "layout": {"visibility": parcels},
            "filter": highlight_filter(highlighted_parno),
        },
    ]


def basemap_style_url(basemap: str) -> str:
    try:
        return BASEMAP_STYLES[basemap]
    except KeyError:
        raise ValueError(f"Unknown basemap: {basemap!r}") from None
