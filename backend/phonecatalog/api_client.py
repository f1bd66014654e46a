"""
Async client for the catalog REST API.

Used by scripts and by anything that consumes the catalog over HTTP:
- 30 second timeout per attempt
- Retries with backoff (1s, 2s, 4s) on timeouts, network errors, 5xx, 408, 429
- Never raises for HTTP or transport failures; returns an ApiResponse instead
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import httpx

from phonecatalog.config import settings
from phonecatalog.logging_config import get_logger


log = get_logger("api_client")

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_DELAYS = (1.0, 2.0, 4.0)
RETRYABLE_CLIENT_STATUSES = {408, 429}


@dataclass
class ApiError:
    """Failure as seen by the caller."""

    code: str  # e.g. TIMEOUT_ERROR, NETWORK_ERROR, NOT_FOUND
    message: str
    status: int


@dataclass
class ApiResponse:
    """Decoded response envelope."""

    success: bool
    data: Any = None
    sql_query: Optional[str] = None
    execution_time: Optional[float] = None
    error: Optional[ApiError] = None


class _HTTPStatusFailure(Exception):
    def __init__(self, status: int, message: str, code: Optional[str] = None):
        super().__init__(f"{message} (Status: {status})")
        self.status = status
        self.message = message
        self.code = code


def _error_from_body(response: httpx.Response) -> tuple[str, Optional[str]]:
    """Message and code from an error envelope, falling back to the status."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code} error", None
    if not isinstance(body, dict):
        return f"HTTP {response.status_code} error", None
    error = body.get("error") if isinstance(body.get("error"), dict) else {}
    message = error.get("message") or body.get("message") or f"HTTP {response.status_code} error"
    return message, error.get("code")


def should_retry(exc: Exception) -> bool:
    """Transient failures only; other 4xx mean the request itself is wrong."""
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exc, _HTTPStatusFailure):
        return exc.status >= 500 or exc.status in RETRYABLE_CLIENT_STATUSES
    return False


def to_api_error(exc: Exception) -> ApiError:
    if isinstance(exc, httpx.TimeoutException):
        return ApiError(
            code="TIMEOUT_ERROR",
            message="Request timed out. Please check your connection and try again.",
            status=408,
        )
    if isinstance(exc, httpx.TransportError):
        return ApiError(
            code="NETWORK_ERROR",
            message="Unable to connect to server. Please check your internet connection.",
            status=503,
        )
    if isinstance(exc, _HTTPStatusFailure):
        if exc.status == 404:
            code = "NOT_FOUND"
        elif exc.status == 429:
            code = "RATE_LIMITED"
        elif exc.status >= 500:
            code = "SERVER_ERROR"
        else:
            code = exc.code or "UNKNOWN_ERROR"
        return ApiError(code=code, message=exc.message, status=exc.status)
    return ApiError(code="UNKNOWN_ERROR", message=str(exc) or "An unexpected error occurred", status=500)


class CatalogAPIClient:
    """
    Client for the phone catalog API.

    Configure via API_BASE_URL (defaults to http://localhost:3001/api).
    Pass ``transport`` to route requests somewhere other than the network.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.retry_delays = tuple(retry_delays)
        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def _send(self, method: str, endpoint: str, json: Any = None) -> ApiResponse:
        url = endpoint if endpoint.startswith(("http://", "https://")) else f"{self.base_url}{endpoint}"
        response = await self.client.request(method, url, json=json)
        if response.status_code >= 400:
            message, code = _error_from_body(response)
            raise _HTTPStatusFailure(response.status_code, message, code)

        body = response.json()
        if not isinstance(body, dict):
            raise ValueError("Unexpected response body")
        return ApiResponse(
            success=bool(body.get("success", True)),
            data=body.get("data", body),
            sql_query=body.get("sqlQuery"),
            execution_time=body.get("executionTime"),
        )

    async def request(self, method: str, endpoint: str, json: Any = None) -> ApiResponse:
        """
        Send a request, retrying transient failures on the fixed delay schedule.

        Returns a failed ApiResponse once retries are exhausted or the error
        is not retryable.
        """
        attempt = 0
        while True:
            try:
                return await self._send(method, endpoint, json)
            except (httpx.HTTPError, _HTTPStatusFailure, ValueError) as e:
                log.warning(
                    "api_request_failed",
                    method=method,
                    endpoint=endpoint,
                    attempt=attempt + 1,
                    error=str(e) or type(e).__name__,
                )
                if attempt < len(self.retry_delays) and should_retry(e):
                    delay = self.retry_delays[attempt]
                    log.info("api_request_retrying", endpoint=endpoint, delay_s=delay)
                    await asyncio.sleep(delay)
                    attempt += 1
                    continue
                return ApiResponse(success=False, error=to_api_error(e))

    async def get_filter_options(self) -> ApiResponse:
        return await self.request("GET", "/devices/filters")

    async def search_phones(
        self,
        filters: Optional[Dict[str, Any]] = None,
        sort_by: str = "p.phone_id",
        sort_order: str = "asc",
        page: int = 1,
        limit: int = 20,
    ) -> ApiResponse:
        """
        Filtered search.

        Args:
            filters: Filter criteria keyed the way the API expects
                (brand, ramGb, priceRange, ...)
            sort_by: Sort column, e.g. "ps.ram_gb"
            sort_order: "asc" or "desc"
            page: Page number, starting at 1
            limit: Results per page (max 100)
        """
        return await self.request(
            "POST",
            "/devices/search",
            json={
                "filters": filters or {},
                "sortBy": sort_by,
                "sortOrder": sort_order,
                "page": page,
                "limit": limit,
            },
        )

    async def get_phone_details(self, phone_id: int) -> ApiResponse:
        return await self.request("GET", f"/devices/{phone_id}")

    async def list_devices(self, page: int = 1, limit: int = 20) -> ApiResponse:
        return await self.request("GET", f"/devices?page={page}&limit={limit}")

    async def health(self) -> ApiResponse:
        """Server health; /health lives beside /api, not under it."""
        root = self.base_url[: -len("/api")] if self.base_url.endswith("/api") else self.base_url
        return await self.request("GET", f"{root}/health")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
