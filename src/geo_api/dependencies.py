"""FastAPI dependencies for the geo API."""

from fastapi import Depends

from geo_api.config import settings
from geo_api.engine.service import GeospatialEngine
from geo_api.exceptions import ConfigurationError
from geo_api.repositories.geo_items import (
    DynamoGeoItemStore,
    GeoItemStore,
    InMemoryGeoItemStore,
)

# Lazy-loaded store client, shared by all requests
_store: GeoItemStore | None = None


def get_store() -> GeoItemStore:
    """Get or create the store for the configured backend."""
    global _store
    if _store is None:
        if settings.store_backend == "dynamodb":
            _store = DynamoGeoItemStore(
                settings.spatial_data_table,
                region_name=settings.aws_region,
                endpoint_url=settings.dynamodb_endpoint_url,
                max_workers=settings.query_batch_size,
            )
        elif settings.store_backend == "memory":
            _store = InMemoryGeoItemStore(settings.store_layout())
        else:
            raise ConfigurationError(f"Unknown store backend: {settings.store_backend}")
    return _store


def close_store() -> None:
    """Release the shared store, if one was created."""
    global _store
    if _store is not None:
        _store.close()
        _store = None


def get_engine(store: GeoItemStore = Depends(get_store)) -> GeospatialEngine:
    """Dependency that yields a query engine bound to the shared store."""
    return GeospatialEngine.from_settings(settings, store)
