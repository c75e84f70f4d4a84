"""
DevDoc Backend — Rate Limiting Middleware
===========================================

What:  Per-IP sliding window rate limiter (default 200 requests / 15 min).
How:   Keeps a list of recent request timestamps per client IP in memory;
       timestamps older than the window are dropped on every request, and a
       client already at the limit gets a 429 with a Retry-After header.
When:  Outermost middleware, so rejected requests cost almost nothing.

Single-process only: each uvicorn worker keeps its own counters.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import settings
from app.exceptions import RateLimitExceededError
from app.middleware.request_id import error_body

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Configuration (constructor arguments, defaulting to settings):
        max_requests:    RATE_LIMIT_REQUESTS (200)
        window_seconds:  RATE_LIMIT_WINDOW (900)

    Health checks, docs and uploaded file downloads are never limited.
    """

    EXCLUDED_PATHS = {"/api/health", "/docs", "/openapi.json", "/redoc"}
    EXCLUDED_PREFIXES = ("/uploads/",)

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    def is_excluded(self, path: str) -> bool:
        return path in self.EXCLUDED_PATHS or path.startswith(self.EXCLUDED_PREFIXES)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self.is_excluded(request.url.path):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window_seconds

        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                self.window_seconds,
            )
            # Raised exceptions do not reach the app's handlers from inside
            # BaseHTTPMiddleware
            error = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=error.status_code,
                content=error_body(error.message, error.code, {"retry_after": retry_after}),
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)

        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Forget IPs with no requests inside the current window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
