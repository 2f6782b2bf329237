"""Pytest configuration and fixtures for geo API tests."""

import numpy as np
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from geo_api.dependencies import get_engine, get_store
from geo_api.engine.geodesy import rhumb_bearing, rhumb_destination, rhumb_distance
from geo_api.engine.queries import StoreLayout
from geo_api.engine.sampler import SpatialSampler
from geo_api.engine.service import GeospatialEngine
from geo_api.main import app
from geo_api.repositories.geo_items import InMemoryGeoItemStore
from geo_api.schemas.geo import Point

LONDON = (51.5, -0.1)
PARIS = (48.85, 2.35)


def seed_weather_grid(
    store: InMemoryGeoItemStore,
    lat_range: tuple[float, float] = (48.0, 53.0),
    lon_range: tuple[float, float] = (-2.0, 3.0),
    step: float = 0.1,
) -> None:
    """Weather stations on a regular grid."""
    for lat in np.arange(lat_range[0], lat_range[1] + step / 2, step):
        for lon in np.arange(lon_range[0], lon_range[1] + step / 2, step):
            store.put_item(
                round(float(lat), 4),
                round(float(lon), 4),
                "Weather",
                temperature=12.5,
                windSpeed=3.1,
                dataTimestamp=1700000000,
            )


def seed_route_population(store: InMemoryGeoItemStore, count: int = 20) -> None:
    """Population centers sitting on the London-Paris rhumb line."""
    start = Point(lat=LONDON[0], lon=LONDON[1])
    end = Point(lat=PARIS[0], lon=PARIS[1])
    length = rhumb_distance(start, end)
    bearing = rhumb_bearing(start, end)
    for i in range(count + 1):
        town = rhumb_destination(start, length * i / count, bearing)
        store.put_item(
            round(town.lat, 5),
            round(town.lon, 5),
            "Population",
            name=f"Town {i}",
            population=1000 + i,
        )


@pytest.fixture
def layout() -> StoreLayout:
    """Default table key layout (P=1, G=4, sort key 8, 10 shards)."""
    return StoreLayout()


@pytest.fixture
def store(layout: StoreLayout) -> InMemoryGeoItemStore:
    """Empty in-memory store with deterministic shard labels."""
    return InMemoryGeoItemStore(layout, rng=np.random.default_rng(7))


@pytest.fixture
def populated_store(store: InMemoryGeoItemStore) -> InMemoryGeoItemStore:
    """Store holding a weather grid over southern England / northern France."""
    seed_weather_grid(store)
    seed_route_population(store)
    return store


@pytest.fixture
def engine(populated_store: InMemoryGeoItemStore, layout: StoreLayout) -> GeospatialEngine:
    """Engine over the populated store with a seeded sampler."""
    return GeospatialEngine(
        populated_store,
        layout,
        sampler=SpatialSampler(np.random.default_rng(42)),
    )


@pytest_asyncio.fixture
async def client(populated_store: InMemoryGeoItemStore, engine: GeospatialEngine):
    """Async test client for FastAPI app."""
    app.dependency_overrides[get_store] = lambda: populated_store
    app.dependency_overrides[get_engine] = lambda: engine

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
