"""
RecordHub Backend - Error Boundary Middleware
==============================================

What:  Last line of defence for exceptions no handler claimed.
How:   Catches anything raised below it, logs the full traceback and answers
       with a fixed 500 body. Known error types are translated earlier by
       the exception handlers in main.py; this only sees the unexpected.

Response (always the same, nothing from the exception is included):
    HTTP 500
    {"success": false, "message": "Something went wrong!"}
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from recordhub.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

GENERIC_ERROR_BODY = {"success": False, "message": "Something went wrong!"}


def server_error_response() -> JSONResponse:
    return JSONResponse(status_code=500, content=dict(GENERIC_ERROR_BODY))


class ErrorBoundaryMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "[%s] Unhandled error on %s %s: %s",
                request_id_var.get(""),
                request.method,
                request.url.path,
                exc,
                exc_info=True,
            )
            return server_error_response()
