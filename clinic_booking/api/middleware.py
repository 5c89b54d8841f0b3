"""Request logging and API key middleware."""

import hmac
import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _client(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with its outcome and tag the response with timing.

    An incoming ``X-Request-ID`` is echoed back; otherwise one is generated so
    booking conflicts in the logs can be tied to a single call.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        started = time.perf_counter()

        response = await call_next(request)

        elapsed = time.perf_counter() - started
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            "%s %s -> %d in %.3fs [req=%s client=%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
            request_id,
            _client(request),
        )

        response.headers["X-Process-Time"] = f"{elapsed:.3f}"
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Require a shared API key on everything except health and docs.

    The key may be sent as ``Authorization: Bearer <key>`` or ``X-API-Key``.
    """

    OPEN_PREFIXES = ("/health", "/docs", "/redoc", "/openapi.json")

    def __init__(self, app, api_key: str):
        super().__init__(app)
        self.api_key = api_key

    def _provided_key(self, request: Request) -> str | None:
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            return auth.removeprefix("Bearer ")
        return request.headers.get("X-API-Key")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.startswith(self.OPEN_PREFIXES):
            return await call_next(request)

        provided = self._provided_key(request)
        if provided and hmac.compare_digest(provided.encode(), self.api_key.encode()):
            return await call_next(request)

        logger.warning(
            "Rejected %s %s: missing or invalid API key (client=%s)",
            request.method,
            request.url.path,
            _client(request),
        )
        return JSONResponse(
            status_code=401,
            content={"error": "Unauthorized", "detail": "Invalid or missing API key"},
        )
