"""
RecordHub Backend - FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers, route groups and
       the /uploads static mount around an injected Database handle.
Who:   server.py (production start-up) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────┐ ┌────────┐ ┌─────────┐ ┌────────────────┐      │
    │  │ CORS │→│ Req ID │→│ Logging │→│ Error Boundary │      │
    │  └──────┘ └────────┘ └─────────┘ └────────────────┘      │
    │                                                          │
    │  Routes:                                                 │
    │  /api/health  /api/auth  /api/records  /api/user         │
    │  /api/duplicates  /api/files  /uploads (static)          │
    │  OPTIONS /{path} → 204 (non-preflight OPTIONS)           │
    │                                                          │
    │  Exception Handlers:                                     │
    │  malformed JSON→400 │ schema→422 │ ValidationError→400   │
    │  NotFoundError→404 │ no route→404 │ other app errors→500 │
    └──────────────────────────────────────────────────────────┘

The app does not connect to MongoDB itself; the bootstrap in server.py
connects before the app is built and closes after the server has drained.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Mapping, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from recordhub import __version__
from recordhub.config import Settings, get_settings
from recordhub.database import Database
from recordhub.exceptions import NotFoundError, RecordHubError, ValidationError
from recordhub.middleware import (
    ErrorBoundaryMiddleware,
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    request_id_var,
)
from recordhub.middleware.errors import server_error_response
from recordhub.routes import default_route_groups, health
from recordhub.services.file_service import FileService, ensure_upload_dir

logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization", "Accept"]
# Browsers hide this from scripts unless exposed; downloads read the filename from it
CORS_EXPOSE_HEADERS = ["Content-Disposition"]

ROUTE_NOT_FOUND_BODY = {"message": "Route not found"}


async def answer_options() -> Response:
    """Any OPTIONS request CORSMiddleware did not treat as a preflight."""
    return Response(status_code=204)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure process-wide logging: one stdout handler, one format.

    uvicorn is started with log_config=None, so its own loggers propagate
    to this handler too.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # RequestLoggingMiddleware already writes one line per request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    logger.info("Upload directory: %s", app.state.file_service.upload_dir)
    logger.info("Serving API on port %d (%s)", settings.port, settings.environment)

    yield

    # Runs once uvicorn has stopped accepting and in-flight requests are done
    logger.info("HTTP server closed")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map known exception types to JSON responses.

    Handler hierarchy:
        StarletteHTTPException 404/405 → 404 {"message": "Route not found"}
        StarletteHTTPException (other) → its status, {"success": false, "message": detail}
        RequestValidationError         → 400 malformed JSON, else 422
        ValidationError                → 400
        NotFoundError                  → 404
        RecordHubError (base)          → 500 generic body
    Anything else reaches ErrorBoundaryMiddleware.
    """

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        # 405 means the path exists for other methods only: still no route for this request
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content=dict(ROUTE_NOT_FOUND_BODY))
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if any(error.get("type") == "json_invalid" for error in errors):
            return JSONResponse(
                status_code=400,
                content={"success": False, "message": "Malformed JSON in request body"},
            )
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": "Request validation failed",
                "errors": jsonable_encoder(
                    [{"loc": e["loc"], "msg": e["msg"], "type": e["type"]} for e in errors]
                ),
            },
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=400, content={"success": False, "message": exc.message})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"success": False, "message": exc.message})

    @app.exception_handler(RecordHubError)
    async def handle_app_error(request: Request, exc: RecordHubError):
        logger.error(
            "[%s] %s: %s | Context: %s",
            request_id_var.get(""),
            type(exc).__name__,
            exc.message,
            exc.context,
            exc_info=exc,
        )
        return server_error_response()


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    routers: Optional[Mapping[str, APIRouter]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Defaults to the process settings from get_settings().
        database: Connector handle, normally already connected by server.py.
                  Defaults to an unconnected one built from settings.
        routers: Prefix → router overrides for the mounted route groups.
    """
    settings = settings or get_settings()
    database = database or Database.from_settings(settings)

    app = FastAPI(
        title="RecordHub API",
        description="Records, duplicate lookup and file uploads for the RecordHub frontend.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.file_service = FileService(
        upload_dir=settings.upload_dir,
        max_file_size=settings.max_upload_size,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: CORS → RequestID → Logging → ErrorBoundary
    app.add_middleware(ErrorBoundaryMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
        expose_headers=CORS_EXPOSE_HEADERS,
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    groups = default_route_groups()
    groups.update(routers or {})
    for prefix, router in groups.items():
        app.include_router(router, prefix=prefix)

    # Registered last so route-specific OPTIONS handlers win
    app.add_api_route(
        "/{path:path}", answer_options, methods=["OPTIONS"], include_in_schema=False
    )

    # ── Static Uploads ────────────────────────────────────────────────────
    upload_dir = ensure_upload_dir(settings.upload_dir)
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

    return app
