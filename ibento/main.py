"""Ibento API — FastAPI application factory.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Middleware order, outermost first: request id → CORS → gzip → rate limit → body ceiling
    - Global error handlers map IbentoError → {"error": message} responses
    - The database is not contacted at startup; EventStore connects on first use

Design Decisions:
    - create_app() factory over a module-level app: settings are loaded when the
      app is built, so a missing MONGODB_URI fails `python -m ibento` cleanly
      and tests can build apps with their own Settings
      (serve with `uvicorn ibento.main:create_app --factory`)
    - Lifespan over @app.on_event: closes the MongoDB client on shutdown
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from ibento.api.error_handlers import register_error_handlers
from ibento.api.middleware import (
    REQUEST_ID_HEADER, BodySizeLimitMiddleware, RateLimitMiddleware,
    RequestIdMiddleware,
)
from ibento.api.routes import events, health
from ibento.config import Settings, get_settings
from ibento.core.rate_window import FixedWindowRateLimiter
from ibento.infrastructure.database import EventStore
from ibento.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format)
    logger.info("Ibento API started")
    yield
    await app.state.event_store.close()
    logger.info("Ibento API shutting down")


def create_app(
    settings: Settings | None = None, event_store: EventStore | None = None,
) -> FastAPI:
    """Build the application with its middleware chain, routes and handlers."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Ibento Events API", version=health.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.event_store = event_store or EventStore(
        settings.mongodb_uri,
        database_name=settings.mongodb_database,
        collection_name=settings.mongodb_collection,
    )

    # add_middleware wraps: the last one added runs first
    app.add_middleware(
        BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes,
    )
    app.state.rate_limiter = None
    if settings.rate_limit_max_requests > 0:
        app.state.rate_limiter = FixedWindowRateLimiter(
            settings.rate_limit_max_requests,
            settings.rate_limit_window_seconds,
        )
        app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter)
    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(health.router)
    app.include_router(events.router)

    register_error_handlers(app)
    return app
