"""
RecordHub Backend - Frontend API Helper Tests
==============================================

The helper's HTTP calls go through httpx.MockTransport, so no server runs.
"""

import httpx
import pytest

from recordhub.client import (
    API_BASE_URL,
    API_ENDPOINTS,
    build_endpoints,
    check_server_health,
    get_auth_headers,
    handle_api_error,
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestEndpoints:
    def test_default_map(self):
        assert API_BASE_URL == "http://localhost:5000"
        assert API_ENDPOINTS["HEALTH"] == "http://localhost:5000/api/health"
        assert API_ENDPOINTS["UPLOAD"] == API_ENDPOINTS["RECORDS"]

    def test_custom_base_trailing_slash(self):
        endpoints = build_endpoints("http://localhost:8081/")

        assert endpoints["EXPORT"] == "http://localhost:8081/api/records/export"


class TestAuthHeaders:
    def test_with_token(self):
        headers = get_auth_headers({"token": "abc123"})

        assert headers["Authorization"] == "Bearer abc123"
        assert headers["Content-Type"] == "application/json"

    def test_without_token(self):
        assert get_auth_headers({})["Authorization"] == ""


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_ok(self):
        def handler(request):
            assert request.url == API_ENDPOINTS["HEALTH"]
            return httpx.Response(200, json={"status": "ok", "dbStatus": "connected"})

        async with _client(handler) as client:
            assert await check_server_health(client) is True

    @pytest.mark.asyncio
    async def test_db_down(self):
        def handler(request):
            return httpx.Response(200, json={"status": "error", "dbStatus": "disconnected"})

        async with _client(handler) as client:
            assert await check_server_health(client) is False

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            assert await check_server_health(client) is False

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>proxy error</html>")

        async with _client(handler) as client:
            assert await check_server_health(client) is False


class TestHandleApiError:
    def _status_error(self, response: httpx.Response) -> httpx.HTTPStatusError:
        request = httpx.Request("GET", API_ENDPOINTS["RECORDS"])
        response.request = request
        return httpx.HTTPStatusError("failed", request=request, response=response)

    def test_server_message(self):
        error = self._status_error(httpx.Response(400, json={"message": "Invalid record ID 'x'"}))

        assert handle_api_error(error) == "Invalid record ID 'x'"

    def test_server_without_message(self):
        error = self._status_error(httpx.Response(502, text="Bad Gateway"))

        assert handle_api_error(error) == "An error occurred"

    def test_no_response(self):
        error = httpx.ConnectTimeout("timed out", request=httpx.Request("GET", API_BASE_URL))

        assert handle_api_error(error) == "No response from server. Please check your connection."

    def test_other_error(self):
        assert handle_api_error(ValueError("bad input")) == "bad input"
        assert handle_api_error(RuntimeError()) == "Network error occurred"
