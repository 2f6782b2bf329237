"""Spherical-earth distance and bearing helpers.

All angles are in degrees, all distances in meters.
"""

import math
from collections.abc import Sequence

from geo_api.schemas.geo import Point

EARTH_RADIUS_METERS = 6371000.0

# Flat-earth conversion used for corridor buffers
METERS_PER_LAT_DEGREE = 111000.0


def distance_meters(start: Point, end: Point) -> float:
    """Great-circle distance using the haversine formula."""
    phi1 = math.radians(start.lat)
    phi2 = math.radians(end.lat)
    delta_phi = math.radians(end.lat - start.lat)
    delta_lambda = math.radians(end.lon - start.lon)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def route_distance(points: Sequence[Point]) -> float:
    """Summed great-circle length of a polyline. Zero for fewer than two points."""
    return sum(
        distance_meters(points[i - 1], points[i]) for i in range(1, len(points))
    )


def _stretched_latitude_delta(phi1: float, phi2: float) -> float:
    """Difference of the Mercator-projected latitudes (radians)."""
    # Poles project to infinity
    limit = math.pi / 2 - 1e-12
    phi1 = max(-limit, min(limit, phi1))
    phi2 = max(-limit, min(limit, phi2))
    return math.log(
        math.tan(math.pi / 4 + phi2 / 2) / math.tan(math.pi / 4 + phi1 / 2)
    )


def _longitude_delta(start: Point, end: Point) -> float:
    """Longitude difference in radians, the shorter way round the antimeridian."""
    delta_lambda = math.radians(end.lon - start.lon)
    if abs(delta_lambda) > math.pi:
        delta_lambda = (
            -(2 * math.pi - delta_lambda) if delta_lambda > 0 else 2 * math.pi + delta_lambda
        )
    return delta_lambda


def rhumb_bearing(start: Point, end: Point) -> float:
    """Constant compass bearing from start to end, in [0, 360)."""
    phi1 = math.radians(start.lat)
    phi2 = math.radians(end.lat)

    delta_psi = _stretched_latitude_delta(phi1, phi2)
    theta = math.atan2(_longitude_delta(start, end), delta_psi)
    return (math.degrees(theta) + 360) % 360


def rhumb_distance(start: Point, end: Point) -> float:
    """Length of the constant-bearing path from start to end."""
    phi1 = math.radians(start.lat)
    phi2 = math.radians(end.lat)
    delta_phi = phi2 - phi1

    delta_psi = _stretched_latitude_delta(phi1, phi2)
    q = delta_phi / delta_psi if abs(delta_psi) > 1e-12 else math.cos(phi1)

    delta_lambda = _longitude_delta(start, end)
    return EARTH_RADIUS_METERS * math.hypot(delta_phi, q * delta_lambda)


def rhumb_path(start: Point, end: Point, step_meters: float) -> list[Point]:
    """Vertices every ``step_meters`` along the rhumb line, both endpoints included.

    A zero-length path is the single point ``start``.
    """
    if step_meters <= 0:
        raise ValueError("step_meters must be positive")

    length = rhumb_distance(start, end)
    if length == 0:
        return [start]

    bearing = rhumb_bearing(start, end)
    path = [start]
    travelled = step_meters
    while travelled < length:
        path.append(rhumb_destination(start, travelled, bearing))
        travelled += step_meters
    path.append(end)
    return path


def rhumb_destination(start: Point, distance: float, bearing: float) -> Point:
    """Point reached by travelling ``distance`` meters along a constant bearing."""
    delta = distance / EARTH_RADIUS_METERS
    phi1 = math.radians(start.lat)
    lambda1 = math.radians(start.lon)
    theta = math.radians(bearing)

    delta_phi = delta * math.cos(theta)
    phi2 = phi1 + delta_phi

    # Travelling past a pole
    if abs(phi2) > math.pi / 2:
        phi2 = math.pi - phi2 if phi2 > 0 else -math.pi - phi2

    delta_psi = _stretched_latitude_delta(phi1, phi2)
    # E-W course is ill-conditioned for the stretched ratio
    q = delta_phi / delta_psi if abs(delta_psi) > 1e-12 else math.cos(phi1)

    delta_lambda = delta * math.sin(theta) / q
    lambda2 = lambda1 + delta_lambda

    lon = (math.degrees(lambda2) + 540) % 360 - 180
    lat = max(-90.0, min(90.0, math.degrees(phi2)))
    return Point(lat=lat, lon=lon)


def buffer_degrees(lat: float, buffer_meters: float) -> tuple[float, float]:
    """Convert a buffer in meters to (lat, lon) degree offsets at a latitude.

    Flat-earth approximation; the longitude span grows without bound near the
    poles, so callers clamp the resulting box.
    """
    lat_buffer = buffer_meters / METERS_PER_LAT_DEGREE
    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-9:
        return lat_buffer, 180.0
    lon_buffer = buffer_meters / (METERS_PER_LAT_DEGREE * cos_lat)
    return lat_buffer, min(lon_buffer, 180.0)
