"""Event Schemas — response envelopes for the events API.

Invariants:
    - Event documents themselves stay free-form (dict[str, Any]); only envelopes are typed
    - Wire names follow the original camelCase result metadata (insertedId, matchedCount)

Design Decisions:
    - serialization_alias over renamed attributes: Python side stays snake_case,
      FastAPI serializes response models by alias
"""

from typing import Any

from pydantic import BaseModel, Field


class InsertResult(BaseModel):
    acknowledged: bool
    inserted_id: str = Field(serialization_alias="insertedId")


class EventCreatedResponse(BaseModel):
    message: str = "Event added successfully"
    result: InsertResult


class UpdateResult(BaseModel):
    acknowledged: bool
    matched_count: int = Field(serialization_alias="matchedCount")
    modified_count: int = Field(serialization_alias="modifiedCount")
    upserted_id: str | None = Field(None, serialization_alias="upsertedId")
    upserted_count: int = Field(0, serialization_alias="upsertedCount")


class EventUpdatedResponse(BaseModel):
    message: str = "Event updated successfully"
    result: UpdateResult


class EventDeletedResponse(BaseModel):
    message: str = "Event deleted successfully"


class EventPage(BaseModel):
    """One page of events plus the unpaginated match count."""
    events: list[dict[str, Any]]
    total: int
    page: int
    limit: int
