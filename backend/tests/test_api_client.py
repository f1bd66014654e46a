"""Tests for the catalog API client (no network: httpx.MockTransport)."""

import asyncio
import json

import httpx

from phonecatalog.api_client import CatalogAPIClient

NO_WAIT = (0, 0, 0)


def make_client(handler, **kwargs):
    kwargs.setdefault("retry_delays", NO_WAIT)
    return CatalogAPIClient(
        base_url="http://catalog.test/api",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def run(client, call):
    async def go():
        try:
            return await call(client)
        finally:
            await client.close()

    return asyncio.run(go())


class CountingHandler:
    """Serves queued responses and records each request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def ok(data, **extra):
    return httpx.Response(200, json={"success": True, "data": data, **extra})


def error(status, code="SOME_ERROR", message="Something failed"):
    return httpx.Response(
        status, json={"success": False, "error": {"code": code, "message": message, "status": status}}
    )


class TestSuccess:
    def test_search_sends_body(self):
        handler = CountingHandler(ok({"phones": []}, sqlQuery="SELECT 1", executionTime=1.5))
        response = run(
            make_client(handler),
            lambda c: c.search_phones({"brand": "Samsung"}, "ps.ram_gb", "desc", 2, 10),
        )

        assert response.success is True
        assert response.data == {"phones": []}
        assert response.sql_query == "SELECT 1"
        assert response.execution_time == 1.5

        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "http://catalog.test/api/devices/search"
        assert json.loads(request.content) == {
            "filters": {"brand": "Samsung"},
            "sortBy": "ps.ram_gb",
            "sortOrder": "desc",
            "page": 2,
            "limit": 10,
        }

    def test_endpoints(self):
        handler = CountingHandler(ok({}))
        client = make_client(handler)

        async def calls(c):
            await c.get_filter_options()
            await c.get_phone_details(7)
            await c.list_devices(3, 50)
            await c.health()

        run(client, calls)
        assert [str(r.url) for r in handler.requests] == [
            "http://catalog.test/api/devices/filters",
            "http://catalog.test/api/devices/7",
            "http://catalog.test/api/devices?page=3&limit=50",
            "http://catalog.test/health",
        ]


class TestRetries:
    def test_server_error_then_success(self):
        handler = CountingHandler(error(500), error(503), ok({"phone": {"phone_id": 1}}))
        response = run(make_client(handler), lambda c: c.get_phone_details(1))
        assert response.success is True
        assert len(handler.requests) == 3

    def test_gives_up_after_three_retries(self):
        handler = CountingHandler(error(502))
        response = run(make_client(handler), lambda c: c.get_filter_options())
        assert len(handler.requests) == 4
        assert response.success is False
        assert response.error.code == "SERVER_ERROR"
        assert response.error.status == 502

    def test_client_errors_not_retried(self):
        handler = CountingHandler(error(404, "NOT_FOUND", "Phone with ID 9 not found"))
        response = run(make_client(handler), lambda c: c.get_phone_details(9))
        assert len(handler.requests) == 1
        assert response.error.code == "NOT_FOUND"
        assert response.error.message == "Phone with ID 9 not found"
        assert response.error.status == 404

    def test_validation_error_keeps_server_code(self):
        handler = CountingHandler(error(400, "VALIDATION_ERROR", "Page must be a positive integer"))
        response = run(make_client(handler), lambda c: c.search_phones(page=0))
        assert len(handler.requests) == 1
        assert response.error.code == "VALIDATION_ERROR"

    def test_rate_limited_is_retried(self):
        handler = CountingHandler(error(429), ok({}))
        response = run(make_client(handler), lambda c: c.get_filter_options())
        assert response.success is True
        assert len(handler.requests) == 2

    def test_timeout(self):
        handler = CountingHandler(httpx.ReadTimeout("timed out"))
        response = run(make_client(handler), lambda c: c.get_filter_options())
        assert len(handler.requests) == 4
        assert response.error.code == "TIMEOUT_ERROR"
        assert response.error.status == 408

    def test_network_error(self):
        handler = CountingHandler(httpx.ConnectError("connection refused"))
        response = run(make_client(handler, retry_delays=()), lambda c: c.get_filter_options())
        assert len(handler.requests) == 1
        assert response.error.code == "NETWORK_ERROR"
        assert response.error.status == 503

    def test_non_json_error_body(self):
        handler = CountingHandler(httpx.Response(418, text="teapot"))
        response = run(make_client(handler), lambda c: c.get_filter_options())
        assert response.error.code == "UNKNOWN_ERROR"
        assert response.error.message == "HTTP 418 error"

    def test_default_schedule(self):
        client = CatalogAPIClient(base_url="http://catalog.test/api")
        assert client.retry_delays == (1.0, 2.0, 4.0)
        asyncio.run(client.close())
