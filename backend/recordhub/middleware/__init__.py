"""
RecordHub Backend - Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [CORS] → [Request ID] → [Logging] → [Error Boundary] → Route Handler

    1. CORS first: preflight OPTIONS requests are answered here and never
       reach the rest of the chain.
    2. Request ID: correlation ID for log lines and the X-Request-ID header.
    3. Logging: one access line per request, with the final status code.
    4. Error Boundary: turns unhandled handler exceptions into the generic
       500 body, inside Logging so the 500 is what gets logged.

    Responses travel the chain in reverse.
"""

from recordhub.middleware.errors import ErrorBoundaryMiddleware
from recordhub.middleware.logging import RequestLoggingMiddleware
from recordhub.middleware.request_id import RequestIDMiddleware, request_id_var

__all__ = [
    "ErrorBoundaryMiddleware",
    "RequestIDMiddleware",
    "RequestLoggingMiddleware",
    "request_id_var",
]
