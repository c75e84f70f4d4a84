"""
DevDoc Backend — Request ID Middleware
========================================

What:  Gives every request a short correlation id.
How:   Uses the client's X-Request-ID header when present, otherwise
       generates one; stores it in a ContextVar and request.state and
       echoes it back in the X-Request-ID response header.
Who:   Read by the access log; error_body() puts it in every error body
       built by main.py and the rate limiter.
"""

import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_CLIENT_ID_LENGTH = 64


def error_body(message: str, code: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """{"error": ..., "code": ..., "request_id": ...} plus optional details."""
    body: Dict[str, Any] = {"error": message, "code": code, "request_id": request_id_var.get("") or None}
    if details:
        body["details"] = details
    return body


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns (or accepts) a request id and returns it in the response headers."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")[:MAX_CLIENT_ID_LENGTH]
        if not rid:
            rid = uuid.uuid4().hex[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
