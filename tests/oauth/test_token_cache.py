"""Tests for the token validation cache."""

import httpx
import pytest

from conftest import FakeClock, TOKENINFO_HOST
from google_sheets_mcp.oauth.token_cache import TokenValidationCache


def _tokeninfo_calls(google) -> int:
    return len(google.requests_to(TOKENINFO_HOST, "/tokeninfo"))


class TestTokenCacheStore:
    """LRU and retention behaviour of the underlying store."""

    @pytest.fixture
    def cache(self, clock):
        return TokenValidationCache(max_size=3, expired_buffer=300, clock=clock)

    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            TokenValidationCache(max_size=0)

    def test_get_miss_returns_none(self, cache):
        assert cache.get("unknown") is None

    def test_set_and_get(self, cache, clock):
        cache.set("token-a", clock.now + 60)
        assert cache.get("token-a") == clock.now + 60
        assert "token-a" in cache
        assert len(cache) == 1

    def test_evicts_least_recently_used(self, cache, clock):
        for token in ("a", "b", "c"):
            cache.set(token, clock.now + 60)

        # Touch "a" so "b" becomes the oldest entry
        cache.get("a")
        cache.set("d", clock.now + 60)

        assert len(cache) == 3
        assert "b" not in cache
        assert cache.tokens() == ["c", "a", "d"]

    def test_updating_existing_entry_does_not_evict(self, cache, clock):
        for token in ("a", "b", "c"):
            cache.set(token, clock.now + 60)

        cache.set("a", clock.now + 120)

        assert len(cache) == 3
        assert cache.tokens() == ["b", "c", "a"]
        assert cache.get("a") == clock.now + 120

    def test_never_exceeds_capacity(self, cache, clock):
        for i in range(50):
            cache.set(f"token-{i}", clock.now + 60)
            assert len(cache) <= 3

    def test_expired_entry_is_kept_for_buffer(self, cache, clock):
        cache.set("a", clock.now + 10)
        clock.advance(10 + 299)
        assert cache.get("a") is not None

        clock.advance(1)
        assert cache.get("a") is None
        assert "a" not in cache

    def test_clear(self, cache, clock):
        cache.set("a", clock.now + 60)
        cache.clear()
        assert len(cache) == 0


class TestTokenValidation:
    """Validation against the tokeninfo endpoint."""

    @pytest.fixture
    def cache(self, http_client, clock):
        return TokenValidationCache(
            http_client, max_size=10, expired_buffer=300, clock=clock
        )

    @pytest.mark.asyncio
    async def test_valid_token_is_cached(self, cache, google):
        google.tokens["ya29.valid"] = 3600

        assert await cache.is_valid("ya29.valid") is True
        assert await cache.is_valid("ya29.valid") is True
        assert _tokeninfo_calls(google) == 1

    @pytest.mark.asyncio
    async def test_token_is_sent_as_query_parameter(self, cache, google):
        google.tokens["ya29.valid"] = 3600

        await cache.is_valid("ya29.valid")

        request = google.requests_to(TOKENINFO_HOST, "/tokeninfo")[0]
        assert request.method == "GET"
        assert request.url.params["access_token"] == "ya29.valid"

    @pytest.mark.asyncio
    async def test_cached_token_expires_without_new_query(self, cache, google, clock):
        google.tokens["ya29.short"] = 60

        assert await cache.is_valid("ya29.short") is True
        clock.advance(61)

        assert await cache.is_valid("ya29.short") is False
        assert _tokeninfo_calls(google) == 1

    @pytest.mark.asyncio
    async def test_expired_token_is_requeried_after_buffer(self, cache, google, clock):
        google.tokens["ya29.short"] = 60
        await cache.is_valid("ya29.short")

        clock.advance(60 + 300)
        # Google now reports a fresh lifetime for the same token
        google.tokens["ya29.short"] = 100

        assert await cache.is_valid("ya29.short") is True
        assert _tokeninfo_calls(google) == 2

    @pytest.mark.asyncio
    async def test_rejected_token_is_negatively_cached(self, cache, google, clock):
        assert await cache.is_valid("ya29.revoked") is False
        clock.advance(299)
        assert await cache.is_valid("ya29.revoked") is False

        assert _tokeninfo_calls(google) == 1
        assert "ya29.revoked" in cache

    @pytest.mark.asyncio
    async def test_rejected_token_is_requeried_once_after_buffer(
        self, cache, google, clock
    ):
        await cache.is_valid("ya29.revoked")
        clock.advance(300)

        assert await cache.is_valid("ya29.revoked") is False
        assert await cache.is_valid("ya29.revoked") is False
        assert _tokeninfo_calls(google) == 2

    @pytest.mark.asyncio
    async def test_network_error_is_invalid_and_not_cached(self, make_http_client, clock):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        cache = TokenValidationCache(make_http_client(handler), clock=clock)

        assert await cache.is_valid("ya29.any") is False
        assert "ya29.any" not in cache

    @pytest.mark.asyncio
    async def test_non_json_body_is_invalid_and_not_cached(self, make_http_client, clock):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        cache = TokenValidationCache(make_http_client(handler), clock=clock)

        assert await cache.is_valid("ya29.any") is False
        assert "ya29.any" not in cache

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            ({"expires_in": "120"}, True),
            ({"expires_in": 120}, True),
            ({"expires_in": "0"}, False),
            ({"expires_in": "soon"}, False),
            ({}, False),
        ],
    )
    async def test_expires_in_parsing(self, make_http_client, body, expected):
        def handler(request):
            return httpx.Response(200, json=body)

        clock = FakeClock()
        cache = TokenValidationCache(make_http_client(handler), clock=clock)

        assert await cache.is_valid("ya29.any") is expected
        assert "ya29.any" in cache

    @pytest.mark.asyncio
    async def test_respects_capacity_under_many_tokens(self, cache, google):
        for i in range(25):
            google.tokens[f"ya29.{i}"] = 3600
            await cache.is_valid(f"ya29.{i}")

        assert len(cache) == 10
        assert cache.tokens() == [f"ya29.{i}" for i in range(15, 25)]
