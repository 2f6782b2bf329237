"""Data access layer for the geo API."""

from geo_api.repositories.geo_items import (
    DynamoGeoItemStore,
    GeoItemStore,
    InMemoryGeoItemStore,
    build_item_keys,
)

__all__ = [
    "DynamoGeoItemStore",
    "GeoItemStore",
    "InMemoryGeoItemStore",
    "build_item_keys",
]
