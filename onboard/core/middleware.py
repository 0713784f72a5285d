"""Middleware: request ID propagation, access log keyed by hashed user id."""

import hashlib
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from onboard.dependencies import USER_ID_HEADER

logger = logging.getLogger("onboard.access")

REQUEST_ID_HEADER = "X-Request-ID"


def _incoming_request_id(request: Request) -> str | None:
    raw = request.headers.get(REQUEST_ID_HEADER)
    if not raw:
        return None
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        return None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID, reusing a well-formed one from the client.

    A client-supplied ID ties the client's own logs to this access log.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _incoming_request_id(request) or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        elapsed_ms = (time.monotonic() - start) * 1000

        user_header = request.headers.get(USER_ID_HEADER)
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "request_id=%s user=%s method=%s path=%s status=%d elapsed_ms=%.1f",
            getattr(request.state, "request_id", "-"),
            hash_user_id(user_header) if user_header else "-",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


def hash_user_id(uid: str) -> str:
    """First 12 hex chars of SHA-256; raw user ids never reach the log."""
    return hashlib.sha256(uid.encode()).hexdigest()[:12]
