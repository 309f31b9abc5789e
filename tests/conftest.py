"""Test configuration and fixtures for Google Sheets MCP tests."""

import json
from collections.abc import Callable
from urllib.parse import parse_qs

import httpx
import pytest

from google_sheets_mcp.config import Settings

TEST_CLIENT_ID = "test-client-id.apps.googleusercontent.com"
TEST_CLIENT_SECRET = "test-client-secret"
TEST_BASE_URL = "https://sheets-mcp.example.com"

TOKENINFO_HOST = "oauth2.googleapis.com"
SHEETS_HOST = "sheets.googleapis.com"


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class GoogleStub:
    """Records outbound requests and answers them like Google would.

    ``tokens`` maps access tokens to their remaining lifetime in seconds;
    any other token is rejected by tokeninfo. ``sheets_responses`` maps
    ``(method, path)`` to ``(status, json_body)``.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.tokens: dict[str, int] = {}
        self.sheets_responses: dict[tuple[str, str], tuple[int, object]] = {}
        self.token_response: tuple[int, object] = (
            200,
            {"access_token": "ya29.new", "expires_in": 3599, "token_type": "Bearer"},
        )

    def requests_to(self, host: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.url.host == host and (path is None or r.url.path == path)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.host == TOKENINFO_HOST and request.url.path == "/tokeninfo":
            token = request.url.params.get("access_token")
            if token in self.tokens:
                return httpx.Response(
                    200,
                    json={"expires_in": str(self.tokens[token]), "scope": "spreadsheets"},
                )
            return httpx.Response(400, json={"error": "invalid_token"})

        if request.url.host == TOKENINFO_HOST and request.url.path == "/token":
            status, body = self.token_response
            return httpx.Response(status, json=body)

        if request.url.host == SHEETS_HOST:
            key = (request.method, request.url.raw_path.decode().split("?")[0])
            if key in self.sheets_responses:
                status, body = self.sheets_responses[key]
                return httpx.Response(status, json=body)
            return httpx.Response(
                404, json={"error": {"code": 404, "message": "Requested entity was not found."}}
            )

        return httpx.Response(500, text="unexpected request")


def form_body(request: httpx.Request) -> dict[str, str]:
    """Decode a form-encoded request body into single values."""
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def json_body(request: httpx.Request) -> object:
    return json.loads(request.content)


@pytest.fixture
def settings() -> Settings:
    """HTTP transport settings with test credentials."""
    return Settings(
        transport="http",
        base_url=TEST_BASE_URL,
        google_client_id=TEST_CLIENT_ID,
        google_client_secret=TEST_CLIENT_SECRET,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def google() -> GoogleStub:
    return GoogleStub()


@pytest.fixture
def http_client(google) -> httpx.AsyncClient:
    """Async client whose every request is answered by the Google stub."""
    return httpx.AsyncClient(transport=httpx.MockTransport(google.handler))


@pytest.fixture
def make_http_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def _make(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
