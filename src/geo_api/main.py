"""FastAPI application entry point."""

import logging
import sys
import traceback
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from geo_api.config import settings
from geo_api.dependencies import close_store
from geo_api.exceptions import ConfigurationError, InvalidQueryError
from geo_api.routes import geo_router

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure logging for the API."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release the shared store client on shutdown."""
    yield
    close_store()
    logger.info("Store closed")


app = FastAPI(
    title="Geo API",
    description="Bounding box and route queries over geohash-indexed points of interest",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

# Item lists get large on wide boxes
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(geo_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "geo-api"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.exception_handler(InvalidQueryError)
async def invalid_query_handler(request: Request, exc: InvalidQueryError):
    """Missing or malformed spatial parameters.

    Returns 400 Bad Request; no store query has been issued.
    """
    logger.warning(f"Invalid query on {request.method} {request.url}: {exc}")
    return JSONResponse(status_code=400, content={"message": str(exc)})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Inconsistent precision table or key layout."""
    logger.error(f"Configuration error on {request.method} {request.url}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Service misconfigured", "error_type": "ConfigurationError"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler that logs errors and returns proper JSON responses."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url}: {exc}\n"
        f"{traceback.format_exc()}"
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_type": type(exc).__name__,
        },
    )


def run() -> None:
    """Entry point for the API server."""
    setup_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
