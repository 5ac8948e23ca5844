"""
Fadetrack Backend: Per-IP Rate Limiting
=======================================

What:  Sliding-window request cap per client address, independent of the
       AI search quota (which is per identity and persisted).
How:   Each address keeps the timestamps of its requests inside the last
       `rate_limit_window` seconds. At `rate_limit_requests` the request is
       answered with 429 and a Retry-After header naming when the oldest
       timestamp leaves the window.

State is held in process memory, so each uvicorn worker counts on its own.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from fadetrack.config import settings
from fadetrack.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop when behind a proxy, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
    SWEEP_EVERY = 1000

    def __init__(self, app, max_requests: int = None, window: int = None, **kwargs):
        super().__init__(app, **kwargs)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window = window or settings.rate_limit_window
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._seen = 0

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS or path.startswith("/storage/"):
            return await call_next(request)

        ip = client_ip(request)
        now = time.time()
        window_start = now - self.window
        hits = self._hits[ip]
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= self.max_requests:
            retry_after = int(hits[0] + self.window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds", ip, len(hits), self.window
            )
            error = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": error.message,
                    "details": error.context,
                    "request_id": getattr(request.state, "request_id", None),
                },
                headers={"Retry-After": str(retry_after)},
            )

        hits.append(now)
        self._seen += 1
        if self._seen % self.SWEEP_EVERY == 0:
            self._sweep(window_start)

        return await call_next(request)

    def _sweep(self, window_start: float) -> None:
        idle = [ip for ip, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for ip in idle:
            del self._hits[ip]
        if idle:
            logger.debug("Dropped %d idle rate-limit entries", len(idle))
