"""
Fadetrack Backend: Access Log Middleware
========================================

One line per request on the `fadetrack.access` logger:

    POST /api/createReview 201 42.3ms [a1b2c3d4] from 203.0.113.7

Level follows the status class: 5xx → ERROR, 4xx → WARNING, else INFO.
The same fields are attached as `extra` for structured handlers. Request
bodies are never logged; they carry emails and review text.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from fadetrack.middleware.rate_limit import client_ip
from fadetrack.middleware.request_id import request_id_var

logger = logging.getLogger("fadetrack.access")

QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        rid = request_id_var.get("")
        ip = client_ip(request)
        logger.log(
            level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": ip,
            },
        )
        return response
