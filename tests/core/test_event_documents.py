"""Tests for event_documents — id parsing, filters, $set building, serialization."""

from datetime import datetime, timezone

import pytest
from bson import ObjectId

from ibento.core.errors import EmptyUpdateError, InvalidEventIdError
from ibento.core.event_documents import (
    build_insert, build_list_filter, build_update, page_offset, parse_event_id,
    serialize_document,
)


def test_parse_event_id_accepts_hex_string():
    oid = ObjectId()
    assert parse_event_id(str(oid)) == oid


@pytest.mark.parametrize("raw", ["", "abc", "E1", "g" * 24, "0" * 25])
def test_parse_event_id_rejects_malformed(raw):
    with pytest.raises(InvalidEventIdError) as exc_info:
        parse_event_id(raw)
    assert exc_info.value.http_status == 400
    assert exc_info.value.raw_id == raw


def test_list_filter_matches_city_exactly():
    assert build_list_filter("Berlin") == {"city": "Berlin"}


def test_list_filter_without_city_matches_all():
    assert build_list_filter(None) == {}
    assert build_list_filter("") == {}


def test_page_offset_is_one_based():
    assert page_offset(1, 10) == 0
    assert page_offset(3, 2) == 4


def test_build_insert_strips_identity_and_keeps_payload_intact():
    payload = {"_id": "custom", "name": "n"}
    assert build_insert(payload) == {"name": "n"}
    assert payload == {"_id": "custom", "name": "n"}


def test_build_update_sets_named_fields_only():
    assert build_update({"city": "Munich"}) == {"$set": {"city": "Munich"}}


def test_build_update_strips_identity():
    update = build_update({"_id": "x", "name": "n"})
    assert update == {"$set": {"name": "n"}}


def test_build_update_with_nothing_to_set_raises():
    with pytest.raises(EmptyUpdateError):
        build_update({})
    with pytest.raises(EmptyUpdateError):
        build_update({"_id": "x"})


def test_serialize_document_converts_nested_object_ids():
    oid, ref = ObjectId(), ObjectId()
    when = datetime(2025, 1, 1, tzinfo=timezone.utc)
    doc = {"_id": oid, "organizer": {"id": ref}, "links": [ref], "at": when}
    assert serialize_document(doc) == {
        "_id": str(oid), "organizer": {"id": str(ref)},
        "links": [str(ref)], "at": when,
    }
