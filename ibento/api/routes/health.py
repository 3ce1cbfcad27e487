"""Root & Health Probes — welcome text, liveness and readiness endpoints.

Invariants:
    - GET / and GET /health always return 200 if the process is up
    - GET /health/ready returns 503 if MongoDB is unreachable
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from ibento.infrastructure.database import EventStore

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

SERVICE_NAME = "ibento-api"
SERVICE_VERSION = "1.0.0"


@router.get("/", response_class=PlainTextResponse)
async def welcome():
    return "Welcome to the Event Management Backend!"


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness probe — includes database connectivity."""
    store: EventStore = request.app.state.event_store
    if not await store.ping():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
            },
        )
    return {"status": "ready", "checks": {"database": "healthy"}}
