"""Structured Logging — JSON formatter, request correlation, and setup.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (error_code, path, event_id, client) surfaced when present
    - Logs emitted while a request is in flight carry its request_id
    - JSON format in production, human-readable in development

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - request_id lives in a ContextVar set by RequestIdMiddleware: services and
      the store log without threading the id through their signatures
    - setup_logging called once on startup; repeated calls replace the handler
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone

EXTRA_KEYS = (
    "request_id", "error_code", "path", "method", "event_id", "client", "operation",
)

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

_handler: logging.Handler | None = None


class RequestIdFilter(logging.Filter):
    """Stamp records with the current request id ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None and val != "-":
                log[key] = val
        if "request_id" not in log:
            request_id = request_id_var.get()
            if request_id:
                log["request_id"] = request_id
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    global _handler
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(request_id)s] - %(message)s",
        ))
    if _handler is not None:
        logging.root.removeHandler(_handler)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    _handler = handler
