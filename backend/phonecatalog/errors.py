"""
Error taxonomy and the JSON error envelope.

Every error leaves the API as
``{"success": false, "error": {"code", "message", "status", "details"?}}``.
Stack traces are added only in development.
"""
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from phonecatalog.logging_config import get_logger


log = get_logger("errors")

AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /health",
    "GET /api",
    "GET /api/devices",
    "GET /api/devices/filters",
    "POST /api/devices/search",
    "GET /api/devices/{id}",
]

# MySQL error number -> (status, code, message)
MYSQL_ERROR_CODES = {
    1062: (409, "DUPLICATE_ENTRY", "Duplicate entry found"),
    1452: (400, "FOREIGN_KEY_CONSTRAINT", "Foreign key constraint violation"),
    1054: (400, "INVALID_COLUMN", "Invalid column in query"),
    1146: (500, "TABLE_NOT_FOUND", "Database table not found"),
}

# Can't connect, server gone away, lost connection
MYSQL_CONNECTION_ERRNOS = {2002, 2003, 2006, 2013}


class APIError(Exception):
    """Base class for errors with an HTTP status and a stable code."""

    def __init__(
        self,
        message: str,
        status: int = 500,
        code: str = "API_ERROR",
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details


class ValidationError(APIError):
    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message, 400, "VALIDATION_ERROR", details)


class NotFoundError(APIError):
    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found", 404, "NOT_FOUND")


class DatabaseConnectionError(APIError):
    def __init__(self, message: str = "Database connection failed") -> None:
        super().__init__(message, 503, "DATABASE_CONNECTION_ERROR")


def driver_errno(exc: DBAPIError) -> Optional[int]:
    """Numeric error code of the underlying driver exception, if it has one."""
    args = getattr(exc.orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def describe_database_error(exc: DBAPIError, development: bool = False) -> tuple[int, str, str, Any]:
    """Map a driver error to (status, code, message, details)."""
    errno = driver_errno(exc)
    if errno in MYSQL_ERROR_CODES:
        status, code, message = MYSQL_ERROR_CODES[errno]
        return status, code, message, None
    if errno in MYSQL_CONNECTION_ERRNOS or exc.connection_invalidated:
        return 503, "DATABASE_CONNECTION_ERROR", "Database connection failed", None

    details = str(exc.orig) if development else None
    return 500, "DATABASE_ERROR", "Database operation failed", details


def error_body(
    status: int,
    code: str,
    message: str,
    details: Any = None,
    exc: Optional[BaseException] = None,
    development: bool = False,
    **extra: Any,
) -> dict:
    error: dict[str, Any] = {"code": code, "message": message, "status": status}
    if details is not None:
        error["details"] = details
    error.update(extra)
    if development:
        if exc is not None:
            error["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        error["timestamp"] = datetime.now(timezone.utc).isoformat()
    return {"success": False, "error": error}


def register_exception_handlers(app: FastAPI, development: bool = False) -> None:
    """Attach handlers translating every error type into the JSON envelope."""

    def respond(request: Request, exc: BaseException, status: int, code: str,
                message: str, details: Any = None, **extra: Any) -> JSONResponse:
        log_method = log.error if status >= 500 else log.warning
        log_method(
            "request_failed",
            method=request.method,
            path=request.url.path,
            status=status,
            code=code,
            error=str(exc),
        )
        return JSONResponse(
            status_code=status,
            content=error_body(status, code, message, details, exc, development, **extra),
        )

    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
        return respond(request, exc, exc.status, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        if any(err.get("type") == "json_invalid" for err in errors):
            return respond(request, exc, 400, "INVALID_JSON", "Invalid JSON in request body")

        details = [
            {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
            for err in errors
        ]
        message = details[0]["message"] if len(details) == 1 else "Request validation failed"
        return respond(request, exc, 400, "VALIDATION_ERROR", message, details)

    @app.exception_handler(DBAPIError)
    async def handle_database_error(request: Request, exc: DBAPIError) -> JSONResponse:
        status, code, message, details = describe_database_error(exc, development)
        return respond(request, exc, status, code, message, details)

    @app.exception_handler(PoolTimeoutError)
    async def handle_pool_timeout(request: Request, exc: PoolTimeoutError) -> JSONResponse:
        return respond(request, exc, 503, "DATABASE_CONNECTION_ERROR",
                       "Timed out waiting for a database connection")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return respond(
                request, exc, 404, "ROUTE_NOT_FOUND",
                f"Route {request.method} {request.url.path} not found",
                availableEndpoints=AVAILABLE_ENDPOINTS,
            )
        if exc.status_code == 405:
            return respond(request, exc, 405, "METHOD_NOT_ALLOWED",
                           f"Method {request.method} not allowed for {request.url.path}")
        return respond(request, exc, exc.status_code, "API_ERROR", str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        log.exception("unhandled_error", path=request.url.path)
        message = str(exc) if development and str(exc) else "Internal Server Error"
        return respond(request, exc, 500, "INTERNAL_ERROR", message)
