"""Event Operations — create/list/get/update/delete against the events collection.

Invariants:
    - Each operation issues one store call (list issues the page query plus one count)
    - Driver/BSON failures surface as DatabaseError carrying the operation's
      short client message; missing documents surface as EventNotFoundError
    - Create and update never write a caller-supplied _id (build_insert and
      build_update strip it)

Design Decisions:
    - Operations take the collection as an argument: no hidden global, routes
      inject it via Depends(get_events_collection)
    - Ids arrive already parsed (ObjectId): malformed ids fail before any store call
"""

import logging
from typing import Any

from bson import ObjectId
from bson.errors import BSONError
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from ibento.core.errors import DatabaseError, EventNotFoundError
from ibento.core.event_documents import (
    LIST_PROJECTION, LIST_SORT, build_insert, build_list_filter, build_update,
    page_offset, serialize_document,
)
from ibento.schemas.event import EventPage, InsertResult, UpdateResult

logger = logging.getLogger(__name__)

STORE_ERRORS = (PyMongoError, BSONError)


async def create_event(
    collection: AsyncCollection, payload: dict[str, Any],
) -> InsertResult:
    """Insert payload as a new document; the store assigns _id."""
    document = build_insert(payload)
    try:
        result = await collection.insert_one(document)
    except STORE_ERRORS as e:
        logger.error(f"Error adding event: {e}", exc_info=True)
        raise DatabaseError("Failed to add event", "insert") from e
    event_id = str(result.inserted_id)
    logger.info("Event created", extra={"event_id": event_id})
    return InsertResult(acknowledged=result.acknowledged, inserted_id=event_id)


async def list_events(
    collection: AsyncCollection, page: int, limit: int, city: str | None = None,
) -> EventPage:
    """Date-ascending page of projected events plus the total match count."""
    query = build_list_filter(city)
    try:
        cursor = (
            collection.find(query, LIST_PROJECTION)
            .sort(LIST_SORT)
            .skip(page_offset(page, limit))
            .limit(limit)
        )
        events = await cursor.to_list()
        total = await collection.count_documents(query)
    except STORE_ERRORS as e:
        logger.error(f"Error fetching events: {e}", exc_info=True)
        raise DatabaseError("Failed to fetch events", "find") from e
    return EventPage(
        events=[serialize_document(e) for e in events],
        total=total, page=page, limit=limit,
    )


async def get_event(
    collection: AsyncCollection, event_id: ObjectId,
) -> dict[str, Any]:
    try:
        event = await collection.find_one({"_id": event_id})
    except STORE_ERRORS as e:
        logger.error(f"Error fetching event: {e}", exc_info=True)
        raise DatabaseError("Failed to fetch event", "find_one") from e
    if event is None:
        raise EventNotFoundError(str(event_id))
    return serialize_document(event)


async def update_event(
    collection: AsyncCollection, event_id: ObjectId, fields: dict[str, Any],
) -> UpdateResult:
    """Merge fields into the event ($set); unnamed fields stay as stored."""
    update = build_update(fields)
    try:
        result = await collection.update_one({"_id": event_id}, update)
    except STORE_ERRORS as e:
        logger.error(f"Error updating event: {e}", exc_info=True)
        raise DatabaseError("Failed to update event", "update") from e
    if result.matched_count == 0:
        raise EventNotFoundError(str(event_id))
    logger.info("Event updated", extra={"event_id": str(event_id)})
    upserted_id = result.upserted_id
    return UpdateResult(
        acknowledged=result.acknowledged,
        matched_count=result.matched_count,
        modified_count=result.modified_count,
        upserted_id=str(upserted_id) if upserted_id is not None else None,
        upserted_count=0 if upserted_id is None else 1,
    )


async def delete_event(collection: AsyncCollection, event_id: ObjectId) -> None:
    try:
        result = await collection.delete_one({"_id": event_id})
    except STORE_ERRORS as e:
        logger.error(f"Error deleting event: {e}", exc_info=True)
        raise DatabaseError("Failed to delete event", "delete") from e
    if result.deleted_count == 0:
        raise EventNotFoundError(str(event_id))
    logger.info("Event deleted", extra={"event_id": str(event_id)})
