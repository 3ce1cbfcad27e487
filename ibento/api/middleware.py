"""HTTP Edge Middleware — request correlation, rate limiting and request body ceiling.

Invariants:
    - Every HTTP response carries X-Request-ID (echoed when the caller sent a
      well-formed one, generated otherwise). Unhandled-exception 500s are
      rendered by Starlette outside the middleware stack and carry none
    - Rate limiting runs before routing; rejected requests never reach a handler
    - Every rate-limited response path carries RateLimit-* headers
    - Bodies declared larger than max_body_bytes are rejected with 413 before routing
    - Streamed bodies that overrun the ceiling fail while being read (parse error)

Design Decisions:
    - Pure ASGI classes over BaseHTTPMiddleware: no extra task per request,
      response streaming left untouched
    - Client identity is the socket peer address; no X-Forwarded-For trust
"""

import logging
import re
import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ibento.core.errors import PayloadTooLargeError, RateLimitExceededError
from ibento.core.rate_window import FixedWindowRateLimiter, RateLimitStatus
from ibento.infrastructure.observability import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def client_key(scope: Scope) -> str:
    client = scope.get("client")
    return client[0] if client else "unknown"


def rate_limit_headers(status: RateLimitStatus) -> dict[str, str]:
    return {
        "RateLimit-Limit": str(status.limit),
        "RateLimit-Remaining": str(status.remaining),
        "RateLimit-Reset": str(status.reset_after_s),
    }


class RateLimitMiddleware:
    """Fixed-window limiter keyed by client address."""

    def __init__(self, app: ASGIApp, limiter: FixedWindowRateLimiter):
        self.app = app
        self.limiter = limiter

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        key = client_key(scope)
        status = self.limiter.hit(key)
        headers = rate_limit_headers(status)

        if not status.allowed:
            exc = RateLimitExceededError(status.reset_after_s)
            logger.warning(
                f"Rate limit exceeded for {key}",
                extra={
                    "client": key, "path": scope["path"],
                    "error_code": exc.code,
                },
            )
            response = JSONResponse(
                exc.to_response(), status_code=exc.http_status,
                headers={**headers, "Retry-After": str(exc.retry_after_s)},
            )
            await response(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                for name, value in headers.items():
                    response_headers.append(name, value)
            await send(message)

        await self.app(scope, receive, send_with_headers)


class BodySizeLimitMiddleware:
    """Reject request bodies above max_body_bytes."""

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit():
            size = int(declared)
            if size > self.max_body_bytes:
                exc = PayloadTooLargeError(size, self.max_body_bytes)
                logger.warning(
                    f"Rejected {size}-byte body on {scope['path']}",
                    extra={"path": scope["path"], "error_code": exc.code},
                )
                response = JSONResponse(
                    exc.to_response(), status_code=exc.http_status,
                )
                await response(scope, receive, send)
                return

        received = 0

        async def receive_limited() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    raise PayloadTooLargeError(received, self.max_body_bytes)
            return message

        await self.app(scope, receive_limited, send)


def request_id_from(scope: Scope) -> str:
    """Caller's X-Request-ID when well-formed, else a fresh uuid4 hex."""
    incoming = Headers(scope=scope).get(REQUEST_ID_HEADER)
    if incoming and _REQUEST_ID_PATTERN.fullmatch(incoming):
        return incoming
    return uuid.uuid4().hex


class RequestIdMiddleware:
    """Bind a request id to the logging context and echo it on the response."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = request_id_from(scope)
        token = request_id_var.set(request_id)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            request_id_var.reset(token)
