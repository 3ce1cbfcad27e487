"""Error Hierarchy — typed, categorized exceptions for every failure mode of the API.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Client errors (400-level) are recoverable; store errors (500-level) are critical
    - to_response() carries only the short human message (no codes on the wire)

Design Decisions:
    - Single hierarchy with IbentoError base: one global handler catches all
    - code/category/severity feed structured logs, not clients
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity for observability."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFIGURATION = "configuration"
    DATABASE = "database"
    RATE_LIMIT = "rate_limit"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Context attached to an error for logging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str | None = None
    operation: str | None = None


class IbentoError(Exception):
    """Base exception for all API errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to the REST error body."""
        return {"error": self.message}

    def log_extra(self) -> dict:
        """Structured fields for the JSON log formatter."""
        return {
            "error_code": self.code,
            "event_id": self.context.event_id,
        }


# ─── Client Errors (400-level) ──────────────────────────────────

class InvalidEventIdError(IbentoError):
    """Path identifier is not a valid ObjectId."""
    def __init__(self, raw_id: str, context: ErrorContext | None = None):
        super().__init__(
            "Invalid event id", "INVALID_EVENT_ID", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.raw_id = raw_id


class EmptyUpdateError(IbentoError):
    """Update body has no settable fields."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "No fields to update", "EMPTY_UPDATE", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class PageLimitExceededError(IbentoError):
    """Requested page size is above the configured ceiling."""
    def __init__(self, limit: int, max_limit: int, context: ErrorContext | None = None):
        super().__init__(
            f"limit must not exceed {max_limit}", "PAGE_LIMIT_EXCEEDED",
            ErrorCategory.VALIDATION, ErrorSeverity.WARNING, context, 400,
        )
        self.limit = limit
        self.max_limit = max_limit


class RateLimitExceededError(IbentoError):
    """Client used up its request quota for the current window."""
    def __init__(self, retry_after_s: int, context: ErrorContext | None = None):
        super().__init__(
            "Too many requests, please try again later.", "RATE_LIMITED",
            ErrorCategory.RATE_LIMIT, ErrorSeverity.WARNING, context, 429,
        )
        self.retry_after_s = retry_after_s


class PayloadTooLargeError(IbentoError):
    """Request body above the configured byte ceiling."""
    def __init__(self, size: int, max_size: int, context: ErrorContext | None = None):
        super().__init__(
            "Request entity too large", "PAYLOAD_TOO_LARGE",
            ErrorCategory.VALIDATION, ErrorSeverity.WARNING, context, 413,
        )
        self.size = size
        self.max_size = max_size


class EventNotFoundError(IbentoError):
    """No event matches the identifier."""
    def __init__(self, event_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.event_id = event_id
        super().__init__(
            "Event not found", "EVENT_NOT_FOUND",
            ErrorCategory.RESOURCE_NOT_FOUND, ErrorSeverity.INFO, ctx, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class ConfigurationError(IbentoError):
    """Required settings missing or invalid. Fatal at startup."""
    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(
            message, "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, None, 500,
        )
        self.fields = fields or []


class DatabaseConnectionError(IbentoError):
    """Initial connection to MongoDB failed."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "DATABASE_CONNECTION_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 500,
        )


class DatabaseError(IbentoError):
    """A store operation failed. message is the client-facing summary."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            message, "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, ctx, 500,
        )
        self.operation = operation
