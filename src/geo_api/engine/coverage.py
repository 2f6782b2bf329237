"""Geohash coverage of boxes and route corridors.

Both functions are pure: the same inputs always produce the same set of
cells. Coverage is conservative - a cell that touches the area is included
even if only a sliver of it overlaps.
"""

import logging

import pygeohash as pgh

from geo_api.engine.geodesy import (
    buffer_degrees,
    distance_meters,
    rhumb_bearing,
    rhumb_destination,
)
from geo_api.schemas.geo import BoundingBox, Point

logger = logging.getLogger(__name__)

DEFAULT_STEP_METERS = 1000.0
DEFAULT_BUFFER_METERS = 10000.0


def _cell_center(geohash: str) -> tuple[float, float, float, float]:
    """Return (lat, lon, cell height, cell width) for a geohash."""
    lat, lon, lat_err, lon_err = pgh.decode_exactly(geohash)
    return lat, lon, lat_err * 2, lon_err * 2


def box_coverage(box: BoundingBox, precision: int) -> set[str]:
    """Every geohash cell of ``precision`` that intersects ``box``.

    Encodes the two corners, then walks the cell grid between them one row at
    a time, encoding each cell center. The work is bounded by the number of
    cells in the box's grid extent.
    """
    south_west = pgh.encode(box.lat_min, box.lon_min, precision=precision)
    north_east = pgh.encode(box.lat_max, box.lon_max, precision=precision)
    if south_west == north_east:
        return {south_west}

    sw_lat, sw_lon, height, width = _cell_center(south_west)
    ne_lat, ne_lon, _, _ = _cell_center(north_east)

    rows = round((ne_lat - sw_lat) / height) + 1
    cols = round((ne_lon - sw_lon) / width) + 1

    hashes: set[str] = set()
    for row in range(max(rows, 1)):
        lat = sw_lat + row * height
        for col in range(max(cols, 1)):
            lon = sw_lon + col * width
            hashes.add(pgh.encode(lat, lon, precision=precision))
    return hashes


def _clamped_box(center: Point, buffer_meters: float) -> BoundingBox:
    lat_buffer, lon_buffer = buffer_degrees(center.lat, buffer_meters)
    return BoundingBox(
        lat_min=max(-90.0, center.lat - lat_buffer),
        lon_min=max(-180.0, center.lon - lon_buffer),
        lat_max=min(90.0, center.lat + lat_buffer),
        lon_max=min(180.0, center.lon + lon_buffer),
    )


def route_coverage(
    start: Point,
    end: Point,
    precision: int,
    step_meters: float = DEFAULT_STEP_METERS,
    buffer_meters: float = DEFAULT_BUFFER_METERS,
) -> set[str]:
    """Geohash cells covering a buffered corridor along a rhumb line.

    The route is sampled every ``step_meters`` (at least once), and the local
    box of half-width ``buffer_meters`` around each sample is covered. The
    endpoints' own cells are always included.
    """
    route_length = distance_meters(start, end)
    logger.debug("Route length from start to end: %.0f meters", route_length)

    hashes = {
        pgh.encode(start.lat, start.lon, precision=precision),
        pgh.encode(end.lat, end.lon, precision=precision),
    }

    bearing = rhumb_bearing(start, end)
    steps = int(route_length // step_meters)

    for i in range(steps + 1):
        sample = rhumb_destination(start, i * step_meters, bearing)
        hashes |= box_coverage(_clamped_box(sample, buffer_meters), precision)

    logger.debug(
        "Generated %d geohashes over %d route samples", len(hashes), steps + 1
    )
    return hashes
