"""Geospatial schemas - query geometry and stored point records."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Point(BaseModel):
    """A WGS84 coordinate."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lon: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class BoundingBox(BaseModel):
    """An axis-aligned latitude/longitude box.

    Callers must not submit inverted boxes; the engine does not repair them.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    lat_min: float = Field(..., ge=-90, le=90)
    lon_min: float = Field(..., ge=-180, le=180)
    lat_max: float = Field(..., ge=-90, le=90)
    lon_max: float = Field(..., ge=-180, le=180)

    @property
    def south_west(self) -> Point:
        return Point(lat=self.lat_min, lon=self.lon_min)

    @property
    def north_east(self) -> Point:
        return Point(lat=self.lat_max, lon=self.lon_max)

    def contains(self, lat: float, lon: float) -> bool:
        """Closed-interval containment test."""
        return self.lat_min <= lat <= self.lat_max and self.lon_min <= lon <= self.lon_max


class GeoItem(BaseModel):
    """A point record read from the spatial data table.

    Key attributes (PK, SK, GSI1PK, GSI1SK, ttl) are ignored on load, so they
    never leak into API responses.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    geo_hash: str = Field(..., min_length=1, description="Geohash at sort-key precision")
    type: str = Field(..., description="Record type, e.g. Weather or Population")

    name: str | None = None
    population: int | None = None
    temperature: float | None = None
    wind_speed: float | None = None
    wind_dir: float | None = None
    visibility: float | None = None
    precipitation_level: float | None = None
    data_timestamp: int | None = None
    record_timestamp: int | None = None


class BoundingBoxResult(BaseModel):
    """Response model for a bounding box query."""

    items: list[GeoItem]
    count: int


class RouteResult(BaseModel):
    """Response model for a route query."""

    items: list[GeoItem]
    count: int
    distance: float = Field(..., description="Great-circle route length in meters")
