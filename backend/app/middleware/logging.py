"""
Photo Enhancement Backend — Request Logging Middleware
=======================================================

What:  One access-log line per HTTP request.
How:   Measures wall time around the handler and logs method, path, status,
       duration, request ID and client IP. The level follows the status:
       5xx → ERROR, 4xx → WARNING, otherwise INFO.
Who:   Applied to every request except /health.

Typical durations:
    GET  /health                    1-5ms
    GET  /api/cron/stuck-photos     10-50ms
    GET  /api/cron/process-photos   dominated by up to 5 sequential dispatches

Never logged: request bodies and the Authorization header (cron secrets).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("photo_enhance.access")

SKIPPED_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs structured information about each HTTP request and response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
