"""Tests for JSONFormatter and RequestIdFilter — structured fields, request id, exceptions."""

import json
import logging
import sys

from ibento.infrastructure.observability import (
    JSONFormatter, RequestIdFilter, request_id_var,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "ibento.test", logging.WARNING, __file__, 1, "Event not found", None, None,
    )
    record.__dict__.update(extra)
    return record


def test_formats_core_fields():
    log = json.loads(JSONFormatter().format(_record()))
    assert log["level"] == "WARNING"
    assert log["logger"] == "ibento.test"
    assert log["message"] == "Event not found"
    assert "timestamp" in log


def test_surfaces_known_extra_fields_only():
    log = json.loads(JSONFormatter().format(
        _record(error_code="EVENT_NOT_FOUND", path="/events/1", unrelated="x"),
    ))
    assert log["error_code"] == "EVENT_NOT_FOUND"
    assert log["path"] == "/events/1"
    assert "unrelated" not in log
    assert "event_id" not in log


def test_includes_exception_text():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record()
        record.exc_info = sys.exc_info()
    log = json.loads(JSONFormatter().format(record))
    assert "ValueError: boom" in log["exception"]


def test_includes_request_id_bound_to_context():
    token = request_id_var.set("abc123")
    try:
        log = json.loads(JSONFormatter().format(_record()))
    finally:
        request_id_var.reset(token)
    assert log["request_id"] == "abc123"


def test_omits_request_id_outside_a_request():
    log = json.loads(JSONFormatter().format(_record()))
    assert "request_id" not in log


def test_filter_stamps_records_for_text_format():
    outside = _record()
    assert RequestIdFilter().filter(outside) is True
    assert outside.request_id == "-"

    token = request_id_var.set("abc123")
    try:
        inside = _record()
        RequestIdFilter().filter(inside)
    finally:
        request_id_var.reset(token)
    assert inside.request_id == "abc123"
    assert json.loads(JSONFormatter().format(outside)).get("request_id") is None
