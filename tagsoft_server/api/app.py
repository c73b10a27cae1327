"""
FastAPI application factory for TagSoft.

This module creates the main FastAPI app with:
- CORS configuration
- One EntityStore, AccessGate and Aggregator per app, kept on app.state
- /v1 API routes behind the API key check
- Error handlers mapping TagSoftError kinds to status codes and JSON bodies
- Unmatched paths and methods answered with 404 and a route hint

Error body shape:
    {"error": "<message>", "error_code": "<CODE>", "details": {...}}
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .._version import __version__
from ..access import AccessGate
from ..analytics import Aggregator
from ..config import Settings
from ..errors import TagSoftError
from ..ids import IdGenerator
from ..store import EntityStore
from .routes import router

logger = logging.getLogger(__name__)

API_PREFIX = "/v1"

ROUTE_HINT = (
    "Available routes: GET /v1/health, GET|PUT /v1/accounts, GET /v1/accounts/{id}, "
    "GET|PUT /v1/containers, GET /v1/containers/{id}, POST /v1/ingest, "
    "GET /v1/analytics/overview, POST /v1/analysis/chat"
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log configuration on startup."""
    settings: Settings = app.state.settings
    settings.log_config()
    logger.info(f"TagSoft API {__version__} ready on {settings.host}:{settings.port}")

    yield

    logger.info("TagSoft API stopped")


def register_error_handlers(app: FastAPI) -> None:
    """Translate errors into JSON responses."""

    @app.exception_handler(TagSoftError)
    async def tagsoft_error_handler(request: Request, exc: TagSoftError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        return JSONResponse(
            {
                "error": "Invalid request",
                "error_code": "VALIDATION_ERROR",
                "details": {"errors": errors},
            },
            status_code=400,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # A known path with the wrong method is treated as an unknown route
        if exc.status_code in (404, 405):
            return JSONResponse(
                {
                    "error": f"Route {request.method} {request.url.path} not found",
                    "error_code": "ROUTE_NOT_FOUND",
                    "hint": ROUTE_HINT,
                },
                status_code=404,
            )
        return JSONResponse(
            {"error": str(exc.detail), "error_code": "HTTP_ERROR"},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"HTTP handler error: {exc}", exc_info=True)
        return JSONResponse({"error": str(exc), "error_code": "INTERNAL"}, status_code=500)


def create_app(settings: Settings | None = None, store: EntityStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration (loaded from env if not provided)
        store: Entity store to serve (a fresh one if not provided)

    Returns:
        FastAPI application
    """
    settings = settings or Settings()

    app = FastAPI(
        title="TagSoft API",
        description="Event ingestion and lightweight analytics for tag containers.",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store or EntityStore(
        id_generator=IdGenerator(max_attempts=settings.id_max_attempts)
    )
    app.state.gate = AccessGate(settings.api_key)
    app.state.aggregator = Aggregator(
        app.state.store, window=timedelta(hours=settings.analytics_window_hours)
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Health stays outside the API key check
    @app.get(f"{API_PREFIX}/health")
    async def health():
        return {"ok": True}

    app.include_router(router, prefix=API_PREFIX)

    return app
