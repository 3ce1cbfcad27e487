"""Event Documents — pure helpers for building queries and shaping documents.

Invariants:
    - Identity (_id) is never caller-supplied: stripped from inserts and $set documents
    - serialize_document() leaves no ObjectId in its output (wire form is hex str)
    - List projection always includes _id (MongoDB default)

Design Decisions:
    - Documents stay dict[str, Any]: events are schemaless, unknown fields pass through
    - Malformed ids are a client error (InvalidEventIdError → 400), not a store error
"""

from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

from ibento.core.errors import EmptyUpdateError, InvalidEventIdError

LIST_PROJECTION = {"name": 1, "date": 1, "city": 1, "description": 1}
LIST_SORT = [("date", 1)]
IDENTITY_FIELD = "_id"


def parse_event_id(raw_id: str) -> ObjectId:
    """Parse a path identifier into an ObjectId or raise InvalidEventIdError."""
    try:
        return ObjectId(raw_id)
    except (InvalidId, TypeError):
        raise InvalidEventIdError(raw_id)


def build_list_filter(city: str | None) -> dict[str, Any]:
    """Exact-match filter on city; empty or missing city matches everything."""
    return {"city": city} if city else {}


def page_offset(page: int, limit: int) -> int:
    """Documents to skip for a 1-based page."""
    return (page - 1) * limit


def build_insert(payload: dict[str, Any]) -> dict[str, Any]:
    """Copy of the caller payload without identity; the store assigns _id."""
    return {k: v for k, v in payload.items() if k != IDENTITY_FIELD}


def build_update(fields: dict[str, Any]) -> dict[str, Any]:
    """Build a $set update from caller fields, dropping identity."""
    settable = {k: v for k, v in fields.items() if k != IDENTITY_FIELD}
    if not settable:
        raise EmptyUpdateError()
    return {"$set": settable}


def serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def serialize_document(document: dict[str, Any]) -> dict[str, Any]:
    """Convert a stored document into its JSON-safe wire form."""
    return serialize_value(document)
