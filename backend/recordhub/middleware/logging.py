"""
RecordHub Backend - Request Logging Middleware
===============================================

What:  One access log line per request: method, path, status, duration.
Who:   Every request that gets past CORS (preflights are answered earlier).
When:  After RequestIDMiddleware, so lines carry the correlation ID.

Example line:
    2024-01-15T12:00:00 [INFO] recordhub.access: GET /api/health 200 1.4ms [a1b2c3d4] from 127.0.0.1

Level by outcome:
    5xx → ERROR, 4xx → WARNING, everything else → INFO

Request bodies, cookies and Authorization headers are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from recordhub.middleware.request_id import request_id_var

logger = logging.getLogger("recordhub.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
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
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
