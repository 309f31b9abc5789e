"""Token validation functionality for the MCP resource endpoint.

Google access tokens are opaque, so validity can only be proven by asking
Google's tokeninfo endpoint. Results are cached by expiry time so that the
HTTP boundary can answer 401 (and let the client refresh) before a request ever
reaches the MCP transport, which would otherwise wrap the failure in an HTTP 200
JSON-RPC error.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import NamedTuple

import httpx

from ..utils.logger import logger

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"

TOKEN_CACHE_MAX_SIZE = 100
TOKEN_CACHE_EXPIRED_BUFFER = 300.0  # 5 minutes


def _parse_expires_in(value: object) -> float:
    """Google reports expires_in as a string; absent or garbage means expired."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    return 0.0


class _CacheEntry(NamedTuple):
    expires_at: float
    retain_until: float


class TokenValidationCache:
    """Bounded TTL + LRU cache of token expiry timestamps.

    Entries map a token to an absolute expiry (seconds, same clock as
    ``clock``). Each entry is also retained only for ``expired_buffer`` seconds
    past the point it stopped being useful: a valid token stays answerable as
    "expired" for that long after its expiry, and a token Google rejected is
    stored with an expiry ``expired_buffer`` in the past and answered locally
    for the next ``expired_buffer`` seconds. Past that horizon the entry is
    dropped and the next lookup asks tokeninfo again.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        tokeninfo_url: str = GOOGLE_TOKENINFO_URL,
        max_size: int = TOKEN_CACHE_MAX_SIZE,
        expired_buffer: float = TOKEN_CACHE_EXPIRED_BUFFER,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._http_client = http_client
        self._tokeninfo_url = tokeninfo_url
        self.max_size = max_size
        self.expired_buffer = expired_buffer
        self._clock = clock
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()
        # Guards the entries only; never held across an await
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: object) -> bool:
        return token in self._entries

    def get(self, token: str) -> float | None:
        """Return the cached expiry and mark the entry most recently used.

        Entries past their retention horizon are dropped and reported as a miss.
        """
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            if entry.retain_until <= self._clock():
                del self._entries[token]
                return None
            self._entries.move_to_end(token)
            return entry.expires_at

    def set(
        self, token: str, expires_at: float, retain_until: float | None = None
    ) -> None:
        """Store an expiry, evicting the least recently used entry when full."""
        if retain_until is None:
            retain_until = expires_at + self.expired_buffer
        entry = _CacheEntry(expires_at, retain_until)
        with self._lock:
            if token in self._entries:
                self._entries[token] = entry
                self._entries.move_to_end(token)
                return
            if len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
                logger.debug("Token cache full - evicted least recently used entry")
            self._entries[token] = entry

    def clear(self) -> None:
        """Clear the token validation cache."""
        with self._lock:
            self._entries.clear()

    def tokens(self) -> list[str]:
        """Cached tokens from least to most recently used."""
        with self._lock:
            return list(self._entries)

    async def is_valid(self, token: str) -> bool:
        """Return True if ``token`` is currently valid.

        A cache hit is authoritative and never contacts Google. On a miss the
        tokeninfo endpoint is queried once. This never raises: a transport error
        or unreadable response counts as invalid.
        """
        cached_expires_at = self.get(token)
        if cached_expires_at is not None:
            return cached_expires_at > self._clock()

        try:
            response = await self._fetch_tokeninfo(token)
        except Exception as e:
            logger.warning("Token introspection request failed: %s", type(e).__name__)
            return False

        now = self._clock()
        if not response.is_success:
            logger.info(
                "Token introspection rejected token: HTTP %d", response.status_code
            )
            self.set(
                token, now - self.expired_buffer, retain_until=now + self.expired_buffer
            )
            return False

        try:
            data = response.json()
        except ValueError:
            logger.warning("Token introspection returned a non-JSON body")
            return False

        expires_in = _parse_expires_in(
            data.get("expires_in") if isinstance(data, dict) else None
        )
        expires_at = now + expires_in
        self.set(token, expires_at)
        logger.debug("Token validated - expires in %.0f seconds", expires_in)
        return expires_at > now

    async def _fetch_tokeninfo(self, token: str) -> httpx.Response:
        params = {"access_token": token}
        if self._http_client is not None:
            return await self._http_client.get(self._tokeninfo_url, params=params)
        async with httpx.AsyncClient() as client:
            return await client.get(self._tokeninfo_url, params=params)
