"""Spatial query endpoints."""

import logging

from fastapi import APIRouter, Depends, Query

from geo_api.config import settings
from geo_api.dependencies import get_engine
from geo_api.engine.service import GeospatialEngine, parse_bounding_box, parse_route
from geo_api.schemas.geo import BoundingBoxResult, RouteResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["geo"])


@router.get("/bounding-box", response_model=BoundingBoxResult)
async def get_bounding_box(
    lat_min: float | None = Query(default=None, alias="latMin"),
    lon_min: float | None = Query(default=None, alias="lonMin"),
    lat_max: float | None = Query(default=None, alias="latMax"),
    lon_max: float | None = Query(default=None, alias="lonMax"),
    limit: int | None = Query(default=None, description="Maximum number of items"),
    engine: GeospatialEngine = Depends(get_engine),
) -> BoundingBoxResult:
    """
    Points of interest inside a bounding box.

    Results are sampled evenly across the box when more than ``limit`` match.
    """
    box = parse_bounding_box(lat_min, lon_min, lat_max, lon_max)
    query_limit = settings.maximum_records if limit is None else limit
    logger.info("Processing bounding box query: %s limit=%d", box, query_limit)
    return await engine.query_bounding_box(box, query_limit)


@router.get("/route", response_model=RouteResult)
async def get_route(
    lat_start: float | None = Query(default=None, alias="latStart"),
    lon_start: float | None = Query(default=None, alias="lonStart"),
    lat_end: float | None = Query(default=None, alias="latEnd"),
    lon_end: float | None = Query(default=None, alias="lonEnd"),
    limit: int | None = Query(default=None, description="Maximum number of items"),
    engine: GeospatialEngine = Depends(get_engine),
) -> RouteResult:
    """
    Points of interest along the route between two coordinates.

    Population centers must lie close to the route, weather stations may be
    further away.
    """
    start, end = parse_route(lat_start, lon_start, lat_end, lon_end)
    query_limit = settings.maximum_records if limit is None else limit
    logger.info("Processing route query: %s -> %s limit=%d", start, end, query_limit)
    return await engine.query_route(start, end, query_limit)
