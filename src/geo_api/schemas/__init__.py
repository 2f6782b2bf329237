"""Pydantic schemas for API request/response models."""

from geo_api.schemas.geo import (
    BoundingBox,
    BoundingBoxResult,
    GeoItem,
    Point,
    RouteResult,
)

__all__ = [
    "BoundingBox",
    "BoundingBoxResult",
    "GeoItem",
    "Point",
    "RouteResult",
]
