"""API routes for the geo API."""

from geo_api.routes.geo import router as geo_router

__all__ = [
    "geo_router",
]
