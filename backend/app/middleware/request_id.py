"""
Photo Enhancement Backend — Request ID Middleware
==================================================

What:  Assigns a correlation ID to every request and echoes it in the response.
How:   Reuses an incoming X-Request-ID header or generates a short UUID, stores
       it in a ContextVar and on request.state, and sets the response header.
Who:   Applied to every request; read by the access log, the exception
       handlers, and EnhancementClient (forwarded on each dispatch call so a
       cron run can be traced into the enhancement endpoint's logs).
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a unique ID to each request for tracing.

    Behavior:
        1. Use the caller's X-Request-ID if present (schedulers may send one)
        2. Otherwise generate the first 8 characters of a UUID4
        3. Store it in request_id_var and request.state.request_id
        4. Return it in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
