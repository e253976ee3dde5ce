"""
RecordHub Backend - Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for startup and request-time failures.
How:   Each exception carries a message and an optional context dict.
       Startup errors are handled by the bootstrap in server.py (exit 1);
       request-time errors are translated to JSON by the handlers registered
       in main.py.

Exception Hierarchy:
    RecordHubError (base)
    ├── ConfigurationError        → fatal at startup
    ├── DatabaseConnectionError   → fatal at startup
    ├── DatabaseError             → 500 Internal Server Error
    ├── ValidationError           → 400 Bad Request
    ├── NotFoundError             → 404 Not Found
    └── FileStorageError          → 500 Internal Server Error

Only `message` of a 4xx error ever reaches the client. `context` is for
server-side logs.
"""

from typing import Any, Dict, Optional


class RecordHubError(Exception):
    """
    Base exception for all RecordHub application errors.

    Attributes:
        message:  Human-readable error description
        context:  Additional debug info (logged, never returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(RecordHubError):
    """A required setting is missing or unusable. Raised before the server listens."""

    def __init__(
        self,
        message: str = "Invalid configuration",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseConnectionError(RecordHubError):
    """
    The boot-time connection to MongoDB failed.

    Covers malformed URIs, unreachable hosts and authentication failures.
    The bootstrap does not retry; the process exits with status 1.
    """

    def __init__(
        self,
        message: str = "Could not connect to MongoDB",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(RecordHubError):
    """
    Raised when a database operation fails at request time.

    The client always gets the generic 500 body; the driver error is logged.
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ValidationError(RecordHubError):
    """
    Raised when client input fails a business rule.

    Example response:
        {"success": false, "message": "File type '.exe' is not supported"}
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(RecordHubError):
    """Raised when a requested resource (record, user, file) does not exist."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(RecordHubError):
    """Could not read, write, or delete a file in the upload directory."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
