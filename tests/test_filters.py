"""Tests for geometric result filters."""

import math

import pytest

from geo_api.engine.filters import (
    distance_to_segment,
    distances_to_path,
    near_route,
    near_route_segment,
    parse_items,
    within_box,
)
from geo_api.engine.geodesy import rhumb_bearing, rhumb_destination, rhumb_distance
from geo_api.schemas.geo import BoundingBox, GeoItem, Point

# meters per degree of latitude on the 6371 km sphere
METERS_PER_DEGREE = 111_194.93


def _item(lat: float, lon: float, type: str = "Weather", **extra) -> GeoItem:
    return GeoItem(lat=lat, lon=lon, geo_hash="u10hb", type=type, **extra)


class TestParseItems:
    def test_ignores_key_attributes(self):
        raw = {
            "PK": "S1#u",
            "SK": "u10hbp2x",
            "GSI1PK": "u10h",
            "GSI1SK": "u10hbp2x",
            "ttl": 1700086400,
            "lat": 51.5,
            "lon": -0.1,
            "geoHash": "u10hbp2x",
            "type": "Weather",
            "windSpeed": 4.2,
        }
        (item,) = parse_items([raw])
        assert item.wind_speed == 4.2
        dumped = item.model_dump(by_alias=True)
        assert "PK" not in dumped and "ttl" not in dumped
        assert dumped["geoHash"] == "u10hbp2x"

    def test_skips_records_without_coordinates(self):
        raw = [
            {"lat": 51.5, "lon": -0.1, "geoHash": "u10hbp2x", "type": "Weather"},
            {"lon": -0.1, "geoHash": "u10hbp2x", "type": "Weather"},
            {"lat": "north", "lon": -0.1, "geoHash": "u10hbp2x", "type": "Weather"},
        ]
        assert len(parse_items(raw)) == 1

    def test_optional_fields_default_to_none(self):
        (item,) = parse_items([{"lat": 1, "lon": 2, "geoHash": "s0", "type": "Population"}])
        assert item.temperature is None
        assert item.population is None


class TestWithinBox:
    BOX = BoundingBox(lat_min=51.0, lon_min=-1.0, lat_max=51.5, lon_max=0.0)

    def test_inside_and_edges_kept(self):
        items = [_item(51.2, -0.5), _item(51.0, -1.0), _item(51.5, 0.0)]
        assert within_box(items, self.BOX) == items

    def test_outside_dropped(self):
        items = [_item(51.6, -0.5), _item(51.2, 0.1), _item(50.9, -0.5)]
        assert within_box(items, self.BOX) == []

    def test_duplicates_removed(self):
        items = [_item(51.2, -0.5), _item(51.2, -0.5), _item(51.2, -0.5, type="Population")]
        assert len(within_box(items, self.BOX)) == 2


class TestRouteProximity:
    START = Point(lat=0.0, lon=0.0)
    END = Point(lat=0.0, lon=1.0)

    def test_distance_to_segment(self):
        point = Point(lat=1000 / METERS_PER_DEGREE, lon=0.5)
        assert distance_to_segment(point, self.START, self.END) == pytest.approx(1000, rel=1e-3)

    def test_distance_beyond_segment_end(self):
        """Past the end of the segment the distance is measured to the endpoint."""
        point = Point(lat=0.0, lon=1.0 + 2000 / METERS_PER_DEGREE)
        assert distance_to_segment(point, self.START, self.END) == pytest.approx(2000, rel=1e-3)

    def test_population_threshold(self):
        near = _item(400 / METERS_PER_DEGREE, 0.5, type="Population")
        far = _item(600 / METERS_PER_DEGREE, 0.5, type="Population")
        assert near_route_segment(self.START, self.END, [near, far]) == [near]

    def test_weather_threshold(self):
        near = _item(15_000 / METERS_PER_DEGREE, 0.5)
        far = _item(25_000 / METERS_PER_DEGREE, 0.5)
        assert near_route_segment(self.START, self.END, [near, far]) == [near]

    def test_unknown_type_dropped(self):
        item = _item(0.0, 0.5, type="Airport")
        assert near_route_segment(self.START, self.END, [item]) == []

    def test_custom_thresholds(self):
        item = _item(0.0, 0.5, type="Airport")
        assert near_route_segment(self.START, self.END, [item], {"Airport": 10}) == [item]

    def test_multi_segment_route_deduplicates(self):
        """An item near two segments is returned once."""
        corner = Point(lat=0.0, lon=1.0)
        route = [self.START, corner, Point(lat=1.0, lon=1.0)]
        at_corner = _item(0.0, 1.0)
        only_second = _item(0.5, 1.0 + 1000 / METERS_PER_DEGREE)
        result = near_route(route, [at_corner, only_second])
        assert result == [at_corner, only_second]

    def test_single_point_route(self):
        assert near_route([self.START], [_item(0.0, 0.0)]) == []

    def test_zero_length_segment(self):
        near = _item(300 / METERS_PER_DEGREE, 0.0, type="Population")
        assert near_route_segment(self.START, self.START, [near]) == [near]


class TestLongRoutes:
    """Routes long enough that the rhumb line bows away from the chord."""

    START = Point(lat=40.0, lon=0.0)
    END = Point(lat=60.0, lon=30.0)

    def _on_rhumb_line(self, fraction: float) -> Point:
        bearing = rhumb_bearing(self.START, self.END)
        return rhumb_destination(self.START, rhumb_distance(self.START, self.END) * fraction, bearing)

    def test_town_on_rhumb_midpoint_kept(self):
        mid = self._on_rhumb_line(0.5)
        town = _item(mid.lat, mid.lon, type="Population")
        assert near_route([self.START, self.END], [town]) == [town]

    @pytest.mark.parametrize("fraction", [0.1, 0.25, 0.5, 0.75, 0.9])
    def test_distance_along_rhumb_line_is_zero(self, fraction):
        point = self._on_rhumb_line(fraction)
        assert distance_to_segment(point, self.START, self.END) < 10

    def test_town_off_rhumb_line_dropped(self):
        """One kilometre north of the line is outside the town corridor."""
        mid = self._on_rhumb_line(0.5)
        town = _item(mid.lat + 1000 / METERS_PER_DEGREE, mid.lon, type="Population")
        assert near_route([self.START, self.END], [town]) == []

    def test_distance_across_the_line(self):
        mid = self._on_rhumb_line(0.5)
        point = Point(lat=mid.lat + 10_000 / METERS_PER_DEGREE, lon=mid.lon)
        # Due north of the line, which runs at about 45 degrees to the meridian
        bearing = math.radians(rhumb_bearing(self.START, self.END))
        expected = 10_000 * math.sin(bearing)
        assert distance_to_segment(point, self.START, self.END) == pytest.approx(expected, rel=0.02)

    def test_far_items_report_infinity(self):
        distances = distances_to_path([0.0], [100.0], [self.START, self.END], max_distance=20_000)
        assert distances[0] == math.inf

    def test_antimeridian_crossing(self):
        start = Point(lat=10.0, lon=179.5)
        end = Point(lat=10.0, lon=-179.5)
        station = _item(10.0 + 5000 / METERS_PER_DEGREE, 180.0)
        assert near_route([start, end], [station]) == [station]
