"""Event Routes — HTTP surface for the events collection.

Invariants:
    - Path ids are parsed before the collection is resolved (malformed id → 400
      even when the database is down)
    - page/limit are integers >= 1; violations are request validation errors (400)
    - Bodies are JSON objects; an empty POST body inserts an empty document

Design Decisions:
    - Errors raised as IbentoError and rendered by the global handlers:
      routes stay free of try/except
    - max_page_limit read from app.state.settings so tests can build apps with
      their own settings
"""

from typing import Any

from bson import ObjectId
from fastapi import APIRouter, Body, Depends, Query, Request, status
from pymongo.asynchronous.collection import AsyncCollection

from ibento.core.errors import PageLimitExceededError
from ibento.core.event_documents import parse_event_id
from ibento.infrastructure.database import get_events_collection
from ibento.schemas.event import (
    EventCreatedResponse, EventDeletedResponse, EventPage,
    EventUpdatedResponse,
)
from ibento.services import events as event_service

router = APIRouter(prefix="/events", tags=["events"])


def valid_event_id(event_id: str) -> ObjectId:
    return parse_event_id(event_id)


def page_limit(request: Request, limit: int = Query(10, ge=1)) -> int:
    """Page size, checked against the optional configured ceiling."""
    max_limit = request.app.state.settings.max_page_limit
    if max_limit is not None and limit > max_limit:
        raise PageLimitExceededError(limit, max_limit)
    return limit


@router.post(
    "", response_model=EventCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_event(
    payload: dict[str, Any] | None = Body(None),
    collection: AsyncCollection = Depends(get_events_collection),
):
    """Create an event from an arbitrary JSON object."""
    result = await event_service.create_event(collection, payload or {})
    return EventCreatedResponse(result=result)


@router.get("", response_model=EventPage)
async def list_events(
    page: int = Query(1, ge=1),
    limit: int = Depends(page_limit),
    city: str | None = Query(None),
    collection: AsyncCollection = Depends(get_events_collection),
):
    """List events by ascending date, optionally filtered by city."""
    return await event_service.list_events(collection, page, limit, city)


@router.get("/{event_id}")
async def get_event(
    event_id: ObjectId = Depends(valid_event_id),
    collection: AsyncCollection = Depends(get_events_collection),
) -> dict[str, Any]:
    return await event_service.get_event(collection, event_id)


@router.put("/{event_id}", response_model=EventUpdatedResponse)
async def update_event(
    event_id: ObjectId = Depends(valid_event_id),
    fields: dict[str, Any] = Body(...),
    collection: AsyncCollection = Depends(get_events_collection),
):
    """Partially update an event; only the named fields change."""
    result = await event_service.update_event(collection, event_id, fields)
    return EventUpdatedResponse(result=result)


@router.delete("/{event_id}", response_model=EventDeletedResponse)
async def delete_event(
    event_id: ObjectId = Depends(valid_event_id),
    collection: AsyncCollection = Depends(get_events_collection),
):
    await event_service.delete_event(collection, event_id)
    return EventDeletedResponse()
