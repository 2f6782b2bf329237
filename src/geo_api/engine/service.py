"""Geospatial query engine - the bounding box and route entry points.

Both queries follow the same pipeline:

1. select a precision tier from the query's extent,
2. cover the query area with geohash cells of that precision,
3. shard-expand the cells when the tier uses the primary key,
4. fan the lookups out against the store,
5. confirm the results against the real geometry,
6. sample the confirmed items down to the requested limit.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

import numpy as np
from pydantic import ValidationError

from geo_api.engine.coverage import (
    DEFAULT_BUFFER_METERS,
    DEFAULT_STEP_METERS,
    box_coverage,
    route_coverage,
)
from geo_api.engine.executor import DEFAULT_BATCH_SIZE, QueryExecutor
from geo_api.engine.filters import (
    DEFAULT_ROUTE_PROXIMITY_METERS,
    near_route,
    parse_items,
    within_box,
)
from geo_api.engine.geodesy import route_distance
from geo_api.engine.precision import PRECISION_TIERS, PrecisionTier, select_precision
from geo_api.engine.queries import QueryPlan, StoreLayout, plan_keys, validate_tiers
from geo_api.engine.sampler import SpatialSampler
from geo_api.exceptions import InvalidQueryError
from geo_api.repositories.geo_items import GeoItemStore
from geo_api.schemas.geo import BoundingBox, BoundingBoxResult, Point, RouteResult

if TYPE_CHECKING:
    from geo_api.config import Settings

logger = logging.getLogger(__name__)


def parse_bounding_box(
    lat_min: float | None,
    lon_min: float | None,
    lat_max: float | None,
    lon_max: float | None,
) -> BoundingBox:
    """Build a BoundingBox from optional query parameters."""
    if any(v is None for v in (lat_min, lon_min, lat_max, lon_max)):
        raise InvalidQueryError("Missing bounding box parameters.")
    try:
        return BoundingBox(
            lat_min=lat_min, lon_min=lon_min, lat_max=lat_max, lon_max=lon_max
        )
    except ValidationError as e:
        raise InvalidQueryError("Invalid bounding box parameters.") from e


def parse_route(
    lat_start: float | None,
    lon_start: float | None,
    lat_end: float | None,
    lon_end: float | None,
) -> tuple[Point, Point]:
    """Build the route endpoints from optional query parameters."""
    if any(v is None for v in (lat_start, lon_start, lat_end, lon_end)):
        raise InvalidQueryError("Missing route parameters.")
    try:
        return Point(lat=lat_start, lon=lon_start), Point(lat=lat_end, lon=lon_end)
    except ValidationError as e:
        raise InvalidQueryError("Invalid route parameters.") from e


class GeospatialEngine:
    """Plans, executes and reduces spatial queries against a GeoItemStore."""

    def __init__(
        self,
        store: GeoItemStore,
        layout: StoreLayout,
        tiers: Sequence[PrecisionTier] = PRECISION_TIERS,
        sampler: SpatialSampler | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        minimum_fetch_limit: int = 10,
        route_step_meters: float = DEFAULT_STEP_METERS,
        route_buffer_meters: float = DEFAULT_BUFFER_METERS,
        route_proximity_meters: Mapping[str, float] = DEFAULT_ROUTE_PROXIMITY_METERS,
    ) -> None:
        validate_tiers(tiers, layout)
        self.layout = layout
        self.tiers = tuple(tiers)
        self.sampler = sampler or SpatialSampler()
        self.executor = QueryExecutor(
            store,
            layout,
            batch_size=batch_size,
            minimum_fetch_limit=minimum_fetch_limit,
        )
        self.route_step_meters = route_step_meters
        self.route_buffer_meters = route_buffer_meters
        self.route_proximity_meters = dict(route_proximity_meters)

    @classmethod
    def from_settings(cls, settings: "Settings", store: GeoItemStore) -> "GeospatialEngine":
        """Build an engine from application settings."""
        return cls(
            store,
            settings.store_layout(),
            sampler=SpatialSampler(np.random.default_rng(settings.sampler_seed)),
            batch_size=settings.query_batch_size,
            minimum_fetch_limit=settings.minimum_fetch_limit,
            route_step_meters=settings.route_step_meters,
            route_buffer_meters=settings.route_buffer_meters,
            route_proximity_meters=settings.route_proximity_meters,
        )

    def plan_bounding_box(self, box: BoundingBox) -> QueryPlan:
        """Tier and lookup keys for a box, sized by its diagonal."""
        tier, _ = select_precision(box.south_west, box.north_east, self.tiers)
        plan = plan_keys(box_coverage(box, tier.hash_precision), tier, self.layout)
        logger.info("Geohash prefixes intersecting the bounding box: %d", len(plan.keys))
        return plan

    def plan_route(self, start: Point, end: Point) -> QueryPlan:
        """Tier and lookup keys for the corridor around a route."""
        tier, _ = select_precision(start, end, self.tiers)
        hashes = route_coverage(
            start,
            end,
            tier.hash_precision,
            step_meters=self.route_step_meters,
            buffer_meters=self.route_buffer_meters,
        )
        plan = plan_keys(hashes, tier, self.layout)
        logger.info("Geohash prefixes intersecting the route: %d", len(plan.keys))
        return plan

    async def query_bounding_box(self, box: BoundingBox, limit: int) -> BoundingBoxResult:
        """All items inside ``box``, sampled down to ``limit``."""
        _check_limit(limit)
        plan = self.plan_bounding_box(box)

        raw_items = await self.executor.execute(plan, limit)
        filtered = within_box(parse_items(raw_items), box)
        logger.info("Filtered results within bounding box: %d", len(filtered))

        items = self.sampler.sample(filtered, limit)
        return BoundingBoxResult(items=items, count=len(items))

    async def query_route(self, start: Point, end: Point, limit: int) -> RouteResult:
        """All items near the start-end route, sampled down to ``limit``."""
        _check_limit(limit)
        plan = self.plan_route(start, end)

        raw_items = await self.executor.execute(plan, limit)
        route = [start, end]
        nearby = near_route(
            route,
            parse_items(raw_items),
            self.route_proximity_meters,
            step_meters=self.route_step_meters,
        )
        logger.info("Filtered results near the route: %d", len(nearby))

        items = self.sampler.sample(nearby, limit)
        return RouteResult(items=items, count=len(items), distance=route_distance(route))


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise InvalidQueryError("limit must be a positive integer.")
