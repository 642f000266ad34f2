from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple


BBox = Tuple[float, float, float, float]
Point = Tuple[float, float]
Ring = List[Point]
AttributeRecord = Dict[str, Any]
QueryAt = Callable[[Point], Sequence[AttributeRecord]]

GRID_SIZE = 5

FARMLAND_KEY = "Farmland"
CAPABILITY_KEY = "land_capability_class"
SLOPE_KEY = "Slope"
SOIL_TYPE_KEY = "Soil Type"


def _is_pair(obj: Any) -> bool:
    return (
        isinstance(obj, (list, tuple))
        and len(obj) >= 2
        and all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in obj[:2])
    )


def walk_coords(obj: Any) -> Iterable[Point]:
    """Flatten nested GeoJSON coordinate arrays into (lon, lat) pairs."""
    if _is_pair(obj):
        yield float(obj[0]), float(obj[1])
        return
    if isinstance(obj, (list, tuple)):
        for it in obj:
            yield from walk_coords(it)


def geometry_bbox(geometry: Optional[Dict[str, Any]]) -> Optional[BBox]:
    coords = (geometry or {}).get("coordinates")
    if coords is None:
        return None
    xs: List[float] = []
    ys: List[float] = []
    for x, y in walk_coords(coords):
        xs.append(x)
        ys.append(y)
    if not xs or not ys:
        return None
    return (min(xs), min(ys), max(xs), max(ys))


def _collect_rings(obj: Any, out: List[Ring]) -> None:
    # A ring is a list whose items are coordinate pairs.
    if not isinstance(obj, (list, tuple)) or not obj:
        return
    if all(_is_pair(item) for item in obj):
        out.append([(float(item[0]), float(item[1])) for item in obj])
        return
    for item in obj:
        _collect_rings(item, out)


def geometry_rings(geometry: Optional[Dict[str, Any]]) -> List[Ring]:
    """All rings of a Polygon or MultiPolygon as one flat list.

    Exterior rings and holes are not told apart.
    """
    rings: List[Ring] = []
    gtype = (geometry or {}).get("type")
    if gtype not in ("Polygon", "MultiPolygon"):
        return rings
    _collect_rings((geometry or {}).get("coordinates"), rings)
    return rings


def point_in_ring(point: Point, ring: Sequence[Point]) -> bool:
    """Crossing-number test against a single ring."""
    x, y = point
    inside = False
    n = len(ring)
    if n < 3:
        return False
    j = n - 1
    for i in range(n):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def point_in_geometry(point: Point, geometry: Optional[Dict[str, Any]]) -> bool:
    """True when the point falls inside any ring of the geometry.

    Holes count as rings of their own, so a point inside a hole still tests
    inside the enclosing outer ring.
    """
    return any(point_in_ring(point, ring) for ring in geometry_rings(geometry))


def sample_grid(bbox: BBox, k: int = GRID_SIZE) -> List[Point]:
    """k x k interior points at fractions i/(k+1); the box edges are excluded."""
    min_x, min_y, max_x, max_y = bbox
    k = max(int(k), 1)
    step_x = (max_x - min_x) / (k + 1)
    step_y = (max_y - min_y) / (k + 1)
    points: List[Point] = []
    for i in range(1, k + 1):
        for j in range(1, k + 1):
            points.append((min_x + step_x * i, min_y + step_y * j))
    return points


@dataclass
class SoilSample:
    """Distinct soil attributes observed under one parcel polygon.

    This is an approximate spatial join: attribute regions smaller than the
    grid spacing can be missed, and values are only ever taken from records
    the layer returned.
    """

    farmland: List[str] = field(default_factory=list)
    capability_classes: List[str] = field(default_factory=list)
    slope: Optional[str] = None
    soil_type: Optional[str] = None
    click_point: Optional[Point] = None
    bbox: Optional[BBox] = None
    grid_points: List[Point] = field(default_factory=list)
    inside_points: List[Point] = field(default_factory=list)

    @property
    def sampled_points(self) -> List[Point]:
        points = list(self.inside_points)
        if self.click_point is not None:
            points.append(self.click_point)
        return points

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Farmland": ", ".join(self.farmland) or None,
            "land_capability_class": ", ".join(self.capability_classes) or None,
            "Slope": self.slope,
            "Soil Type": self.soil_type,
            "farmland_categories": list(self.farmland),
            "capability_classes": list(self.capability_classes),
            "samples": len(self.sampled_points),
        }


def _text_value(record: AttributeRecord, key: str) -> Optional[str]:
    value = (record or {}).get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def sample_attributes(
    geometry: Optional[Dict[str, Any]],
    click_point: Point,
    query_at: QueryAt,
    k: int = GRID_SIZE,
) -> SoilSample:
    """Aggregate soil attributes under a parcel by sampling rendered features.

    Every grid point inside the polygon is queried, plus the click point
    unconditionally. Missing geometry degrades to the click point alone.
    """
    sample = SoilSample(click_point=(float(click_point[0]), float(click_point[1])))

    bbox = geometry_bbox(geometry)
    if bbox is not None:
        sample.bbox = bbox
        sample.grid_points = sample_grid(bbox, k)
        sample.inside_points = [
            pt for pt in sample.grid_points if point_in_geometry(pt, geometry)
        ]

    farmland: List[str] = []
    classes: set[str] = set()

    # Click point first so its slope/soil type describe what the user clicked.
    for point in [sample.click_point, *sample.inside_points]:
        for record in query_at(point) or []:
            category = _text_value(record, FARMLAND_KEY)
            if category and category not in farmland:
                farmland.append(category)
            capability = _text_value(record, CAPABILITY_KEY)
            if capability:
                classes.add(capability)
            if sample.slope is None:
                sample.slope = _text_value(record, SLOPE_KEY)
            if sample.soil_type is None:
                sample.soil_type = _text_value(record, SOIL_TYPE_KEY)

    sample.farmland = farmland
    sample.capability_classes = sorted(classes)
    return sample


def debug_feature_collections(sample: SoilSample) -> Dict[str, Dict[str, Any]]:
    """GeoJSON overlays for inspecting a sampling run: bbox, grid, hits."""

    def _points(points: Sequence[Point], inside: bool) -> Dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [pt[0], pt[1]]},
                    "properties": {"inside": inside},
                }
                for pt in points
            ],
        }

    bbox_features: List[Dict[str, Any]] = []
    if sample.bbox is not None:
        min_x, min_y, max_x, max_y = sample.bbox
        bbox_features.append(
            {
                "type": "Feature",
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [
                        [
                            [min_x, min_y],
                            [max_x, min_y],
                            [max_x, max_y],
                            [min_x, max_y],
                            [min_x, min_y],
                        ]
                    ],
                },
                "properties": {},
            }
        )

    return {
        "debug-bbox": {"type": "FeatureCollection", "features": bbox_features},
        "debug-points-all": _points(sample.grid_points, False),
        "debug-points-inside": _points(sample.inside_points, True),
    }
