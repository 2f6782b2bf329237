"""Geometric confirmation of fetched items.

Geohash cells over-cover the query area, so everything the store returns is
re-checked against the real query geometry before sampling.

Route proximity is measured against the same rhumb line the corridor
coverage walks. The line is densified into vertices, cut into pieces of
about ``PIECE_METERS``, and each piece is projected with an azimuthal
equidistant projection centred on it before shapely measures distances.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import numpy as np
import shapely
from pydantic import ValidationError
from pyproj import CRS, Transformer
from shapely.geometry import LineString
from shapely.geometry import Point as ShapelyPoint

from geo_api.engine.coverage import DEFAULT_STEP_METERS
from geo_api.engine.geodesy import EARTH_RADIUS_METERS, distance_meters, rhumb_path
from geo_api.schemas.geo import BoundingBox, GeoItem, Point

logger = logging.getLogger(__name__)

DEFAULT_ROUTE_PROXIMITY_METERS: dict[str, float] = {
    "Population": 500.0,
    "Weather": 20000.0,
}

PIECE_METERS = 100_000.0

# Same sphere as the haversine and rhumb line helpers
_GEOGRAPHIC = CRS.from_proj4(f"+proj=longlat +R={EARTH_RADIUS_METERS} +no_defs")


def parse_items(raw_items: Iterable[Mapping[str, Any]]) -> list[GeoItem]:
    """Validate raw store records, skipping the ones that are not usable."""
    items: list[GeoItem] = []
    skipped = 0
    for raw in raw_items:
        try:
            items.append(GeoItem.model_validate(raw))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning("Skipped %d malformed record(s)", skipped)
    return items


def _dedupe(items: Iterable[GeoItem]) -> list[GeoItem]:
    seen: set[tuple[str, float, float]] = set()
    unique: list[GeoItem] = []
    for item in items:
        key = (item.type, item.lat, item.lon)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def within_box(items: Iterable[GeoItem], box: BoundingBox) -> list[GeoItem]:
    """Items inside the (closed) box, duplicates removed."""
    return _dedupe(item for item in items if box.contains(item.lat, item.lon))


def make_aeqd_crs(center: Point) -> CRS:
    """Azimuthal equidistant CRS in meters, centred on ``center``."""
    return CRS.from_proj4(
        f"+proj=aeqd +lat_0={center.lat} +lon_0={center.lon} +x_0=0 +y_0=0 "
        f"+R={EARTH_RADIUS_METERS} +units=m +no_defs"
    )


def _pieces(path: Sequence[Point], piece_meters: float) -> list[list[Point]]:
    """Cut a path into consecutive pieces sharing their end vertices."""
    pieces: list[list[Point]] = []
    current = [path[0]]
    length = 0.0
    for vertex in path[1:]:
        length += distance_meters(current[-1], vertex)
        current.append(vertex)
        if length >= piece_meters:
            pieces.append(current)
            current = [vertex]
            length = 0.0
    if len(current) > 1 or not pieces:
        pieces.append(current)
    return pieces


def _distances_from(center: Point, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Haversine distance from ``center`` to every coordinate."""
    phi1 = np.radians(center.lat)
    phi2 = np.radians(lats)
    a = (
        np.sin((phi2 - phi1) / 2) ** 2
        + np.cos(phi1) * np.cos(phi2) * np.sin(np.radians(lons - center.lon) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * np.arcsin(np.sqrt(np.clip(a, 0, 1)))


def distances_to_path(
    lats: Sequence[float],
    lons: Sequence[float],
    path: Sequence[Point],
    max_distance: float = float("inf"),
) -> np.ndarray:
    """Distance in meters from each coordinate to a densified path.

    Coordinates further than ``max_distance`` from every piece of the path
    are reported as infinity.
    """
    lats = np.asarray(lats, dtype=float)
    lons = np.asarray(lons, dtype=float)
    distances = np.full(len(lats), np.inf)
    if not len(lats):
        return distances

    for piece in _pieces(path, PIECE_METERS):
        center = piece[len(piece) // 2]
        reach = max(distance_meters(center, vertex) for vertex in piece)
        nearby = np.flatnonzero(_distances_from(center, lats, lons) <= reach + max_distance)
        if not len(nearby):
            continue

        transformer = Transformer.from_crs(_GEOGRAPHIC, make_aeqd_crs(center), always_xy=True)
        xs, ys = transformer.transform(
            [vertex.lon for vertex in piece], [vertex.lat for vertex in piece]
        )
        if len(piece) == 1:
            geometry = ShapelyPoint(xs[0], ys[0])
        else:
            geometry = LineString(list(zip(xs, ys)))

        px, py = transformer.transform(lons[nearby], lats[nearby])
        measured = shapely.distance(shapely.points(px, py), geometry)
        distances[nearby] = np.minimum(distances[nearby], measured)

    return distances


def distance_to_segment(
    point: Point, start: Point, end: Point, step_meters: float = DEFAULT_STEP_METERS
) -> float:
    """Distance in meters from a point to the rhumb line from start to end."""
    path = rhumb_path(start, end, step_meters)
    return float(distances_to_path([point.lat], [point.lon], path)[0])


def near_route_segment(
    start: Point,
    end: Point,
    items: Iterable[GeoItem],
    thresholds: Mapping[str, float] = DEFAULT_ROUTE_PROXIMITY_METERS,
    step_meters: float = DEFAULT_STEP_METERS,
) -> list[GeoItem]:
    """Items within their type's distance threshold of one route segment.

    Items of a type without a threshold are dropped.
    """
    candidates = [item for item in items if item.type in thresholds]
    if not candidates:
        return []

    limits = np.array([thresholds[item.type] for item in candidates], dtype=float)
    distances = distances_to_path(
        [item.lat for item in candidates],
        [item.lon for item in candidates],
        rhumb_path(start, end, step_meters),
        max_distance=float(limits.max()),
    )
    return [item for item, keep in zip(candidates, distances <= limits) if keep]


def near_route(
    route_points: Sequence[Point],
    items: Sequence[GeoItem],
    thresholds: Mapping[str, float] = DEFAULT_ROUTE_PROXIMITY_METERS,
    step_meters: float = DEFAULT_STEP_METERS,
) -> list[GeoItem]:
    """Items near any segment of a polyline route, duplicates removed."""
    results: list[GeoItem] = []
    for segment_start, segment_end in zip(route_points, route_points[1:]):
        results.extend(
            near_route_segment(segment_start, segment_end, items, thresholds, step_meters)
        )
    return _dedupe(results)
