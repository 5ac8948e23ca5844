"""
Fadetrack Backend: Request ID Middleware
========================================

Tags each request with a short correlation ID. A caller-supplied
`X-Request-ID` header is reused so a browser error report can be matched
to server logs; otherwise a fresh 8-character ID is generated. The ID is
echoed back in the response header and included in every error body.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):

    HEADER = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get(self.HEADER) or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[self.HEADER] = rid
        return response
