"""
Main FastAPI application.
"""

import platform
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError

from phonecatalog.config import Settings, settings as default_settings
from phonecatalog.database import Database
from phonecatalog.errors import (
    AVAILABLE_ENDPOINTS,
    DatabaseConnectionError,
    ValidationError,
    register_exception_handlers,
)
from phonecatalog.filters import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, SortSpec
from phonecatalog.logging_config import get_logger, setup_logging
from phonecatalog.queries import QueryBuilder
from phonecatalog.schemas import (
    APIResponse,
    DeviceList,
    ErrorResponse,
    FilterOptions,
    PhoneDetails,
    SearchRequest,
    SearchResults,
)
from phonecatalog.service import CatalogService


API_TITLE = "Mobile Phone Recommendation API"
API_VERSION = "1.0.0"

log = get_logger("api")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; the database pool lives for the app's lifespan."""
    settings = settings or default_settings

    # Lifespan context manager for startup/shutdown
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Handle startup and shutdown events."""
        setup_logging(development=settings.is_development)

        db = Database(
            settings.database_url,
            pool_size=settings.DB_POOL_SIZE,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            log_queries=settings.is_development,
        )
        app.state.db = db
        app.state.service = CatalogService(db, QueryBuilder(db.dialect))
        app.state.started = time.monotonic()

        try:
            await db.connect()
        except DatabaseConnectionError as e:
            # Keep serving; /health reports the outage
            log.error("database_unavailable_at_startup", error=e.message)

        log.info(
            "server_started",
            host=settings.HOST,
            port=settings.PORT,
            environment=settings.NODE_ENV,
            backend=db.dialect.name,
        )

        yield

        # Shutdown
        log.info("server_shutting_down")
        await db.close()

    app = FastAPI(
        title=API_TITLE,
        description="Search and browse a catalog of mobile phone specifications",
        version=API_VERSION,
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        if not request.url.path.startswith("/api/"):
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        log.info(
            "request",
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else None,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    register_exception_handlers(app, development=settings.is_development)

    def index() -> dict:
        return {
            "success": True,
            "message": API_TITLE,
            "version": API_VERSION,
            "endpoints": AVAILABLE_ENDPOINTS,
            "timestamp": _now(),
        }

    @app.get("/")
    async def root() -> dict:
        """Service index."""
        return index()

    @app.get("/api")
    async def api_index() -> dict:
        """Endpoint index."""
        return index()

    @app.get("/health")
    async def health_check(request: Request) -> JSONResponse:
        """Liveness probe with database round-trip time and pool usage."""
        db: Database = request.app.state.db
        started = time.perf_counter()
        try:
            await db.execute("SELECT 1")
        except (DatabaseConnectionError, DBAPIError) as e:
            log.error("health_check_failed", error=str(e))
            return JSONResponse(
                status_code=503,
                content={
                    "success": False,
                    "status": "ERROR",
                    "message": "Database connection failed",
                    "error": str(e) if settings.is_development else "Service Unavailable",
                    "timestamp": _now(),
                },
            )
        response_ms = round((time.perf_counter() - started) * 1000, 2)

        return JSONResponse(
            content={
                "success": True,
                "status": "OK",
                "message": "Service is healthy",
                "services": {
                    "database": {
                        "status": "Connected",
                        "responseTime": f"{response_ms}ms",
                        "pool": db.pool_stats(),
                    },
                    "server": {
                        "status": "Running",
                        "uptime": round(time.monotonic() - request.app.state.started, 2),
                        "python": platform.python_version(),
                        "environment": settings.NODE_ENV,
                    },
                },
                "timestamp": _now(),
            }
        )

    def get_service(request: Request) -> CatalogService:
        return request.app.state.service

    error_responses = {
        400: {"model": ErrorResponse, "description": "Invalid input"},
        500: {"model": ErrorResponse, "description": "Server error"},
        503: {"model": ErrorResponse, "description": "Database unavailable"},
    }

    @app.get("/api/devices", response_model=APIResponse[DeviceList], responses=error_responses)
    async def list_devices(
        page: int = Query(DEFAULT_PAGE, description="Page number; values below 1 are raised to 1"),
        limit: int = Query(DEFAULT_PAGE_SIZE, description="Page size; clamped to 1..100"),
        service: CatalogService = Depends(get_service),
    ) -> APIResponse[DeviceList]:
        """Unfiltered catalog page, ordered by phone id."""
        return await service.list_devices(page, limit)

    # Registered before /api/devices/{device_id} so "filters" isn't taken for an id
    @app.get(
        "/api/devices/filters",
        response_model=APIResponse[FilterOptions],
        responses=error_responses,
    )
    async def get_filter_options(
        service: CatalogService = Depends(get_service),
    ) -> APIResponse[FilterOptions]:
        """Brands, chipsets, display types, storage sizes and price bounds in use."""
        return await service.get_filter_options()

    @app.post(
        "/api/devices/search",
        response_model=APIResponse[SearchResults],
        responses=error_responses,
    )
    async def search_devices(
        body: Optional[SearchRequest] = None,
        service: CatalogService = Depends(get_service),
    ) -> APIResponse[SearchResults]:
        """
        Filtered, sorted, paginated search.

        Flow:
        1. Validate pagination and sort order (400 on bad values)
        2. Normalize the filters, dropping unusable fields
        3. Run list and count queries with the same WHERE clause
        """
        body = body or SearchRequest()
        sort = SortSpec(sort_by=body.sort_by, sort_order=body.sort_order)
        return await service.search(body.filters, sort, body.page, body.limit)

    @app.get(
        "/api/devices/{device_id}",
        response_model=APIResponse[PhoneDetails],
        responses={**error_responses, 404: {"model": ErrorResponse, "description": "Unknown phone"}},
    )
    async def get_device(
        device_id: str,
        service: CatalogService = Depends(get_service),
    ) -> APIResponse[PhoneDetails]:
        """Full specification of one phone with colors and pricing variants."""
        if not (device_id.isascii() and device_id.isdigit()) or int(device_id) < 1:
            raise ValidationError(
                "Device ID must be a positive integer",
                [{"field": "id", "message": "Device ID must be a positive integer"}],
            )
        return await service.get_phone(int(device_id))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "phonecatalog.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.is_development,
    )
