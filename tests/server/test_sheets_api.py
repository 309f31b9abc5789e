"""Tests for the Sheets REST client."""

import httpx
import pytest

from conftest import json_body
from google_sheets_mcp.exceptions import SheetsApiError
from google_sheets_mcp.sheets_api import SheetsApiClient, encode_range


class TestEncodeRange:
    @pytest.mark.parametrize(
        ("a1_range", "expected"),
        [
            ("A1", "A1"),
            ("Sheet1!A1:B2", "Sheet1%21A1%3AB2"),
            ("'My Sheet'!A:A", "%27My%20Sheet%27%21A%3AA"),
            ("Data/2024", "Data%2F2024"),
        ],
    )
    def test_encodes_path_segment(self, a1_range, expected):
        assert encode_range(a1_range) == expected


class TestSheetsApiClient:
    """Request building and response parsing."""

    @pytest.fixture
    def recorded(self):
        return []

    def _client(self, make_http_client, recorded, response):
        def handler(request):
            recorded.append(request)
            return response

        return SheetsApiClient("ya29.token", http_client=make_http_client(handler))

    @pytest.mark.asyncio
    async def test_get_sends_bearer_and_params(self, make_http_client, recorded):
        api = self._client(
            make_http_client, recorded, httpx.Response(200, json={"ok": True})
        )

        result = await api.request("GET", "/spreadsheets/abc", params=[("fields", "x")])

        assert result == {"ok": True}
        request = recorded[0]
        assert str(request.url) == "https://sheets.googleapis.com/v4/spreadsheets/abc?fields=x"
        assert request.headers["authorization"] == "Bearer ya29.token"
        assert "content-type" not in request.headers

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self, make_http_client, recorded):
        api = self._client(
            make_http_client, recorded, httpx.Response(200, json={"ok": True})
        )

        await api.request("POST", "/spreadsheets", {"properties": {"title": "T"}})

        request = recorded[0]
        assert request.headers["content-type"] == "application/json"
        assert json_body(request) == {"properties": {"title": "T"}}

    @pytest.mark.asyncio
    async def test_error_status_raises(self, make_http_client, recorded):
        api = self._client(
            make_http_client,
            recorded,
            httpx.Response(403, json={"error": {"message": "The caller does not have permission"}}),
        )

        with pytest.raises(SheetsApiError) as exc_info:
            await api.request("GET", "/spreadsheets/abc")

        assert exc_info.value.status_code == 403
        message = str(exc_info.value)
        assert message.startswith("Google Sheets API error: 403 Forbidden - ")
        assert "The caller does not have permission" in message

    @pytest.mark.asyncio
    async def test_empty_json_body_is_success(self, make_http_client, recorded):
        api = self._client(
            make_http_client,
            recorded,
            httpx.Response(200, headers={"content-type": "application/json"}, content=b""),
        )

        assert await api.request("POST", "/spreadsheets/abc:batchUpdate", {}) == {
            "success": True,
            "message": "Operation completed successfully",
        }

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, make_http_client, recorded):
        api = self._client(
            make_http_client,
            recorded,
            httpx.Response(200, headers={"content-type": "application/json"}, content=b"{oops"),
        )

        with pytest.raises(SheetsApiError):
            await api.request("GET", "/spreadsheets/abc")

    @pytest.mark.asyncio
    async def test_non_json_response_returns_text(self, make_http_client, recorded):
        api = self._client(make_http_client, recorded, httpx.Response(200, text="plain"))
        assert await api.request("GET", "/spreadsheets/abc") == "plain"

    @pytest.mark.asyncio
    async def test_empty_non_json_response(self, make_http_client, recorded):
        api = self._client(make_http_client, recorded, httpx.Response(204))
        assert await api.request("DELETE", "/spreadsheets/abc") == "Success"
