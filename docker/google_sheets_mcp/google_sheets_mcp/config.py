"""Runtime configuration loaded from environment variables."""

import os
from dataclasses import dataclass

from .exceptions import ConfigurationError
from .utils.logger import logger

TRANSPORTS = ("stdio", "http")
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

DEFAULT_PORT = 3000
DEFAULT_TOKEN_CACHE_MAX_SIZE = 100
DEFAULT_TOKEN_CACHE_EXPIRED_BUFFER_SECONDS = 300
DEFAULT_HTTP_TIMEOUT_SECONDS = 30


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Environment variable {name} must be an integer, got {raw!r}"
        ) from e


@dataclass
class Settings:
    """Settings for both transports.

    The HTTP transport acts as an OAuth authorization server in front of Google
    and needs the upstream client credentials. The stdio transport skips OAuth
    entirely and uses a pre-obtained access token.
    """

    transport: str = "stdio"
    host: str = "0.0.0.0"  # nosec B104 - Required for containerized service
    port: int = DEFAULT_PORT
    base_url: str = ""
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_access_token: str | None = None
    log_level: str = "info"
    token_cache_max_size: int = DEFAULT_TOKEN_CACHE_MAX_SIZE
    token_cache_expired_buffer: float = DEFAULT_TOKEN_CACHE_EXPIRED_BUFFER_SECONDS
    http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not self.base_url:
            self.base_url = f"http://localhost:{self.port}"
        self.base_url = self.base_url.rstrip("/")

    @classmethod
    def from_env(
        cls,
        transport: str | None = None,
        host: str | None = None,
        port: int | None = None,
        base_url: str | None = None,
        log_level: str | None = None,
    ) -> "Settings":
        """Build settings from the environment.

        Arguments (typically parsed CLI flags) are used only where the matching
        environment variable is unset.
        """
        return cls(
            transport=os.getenv("MCP_TRANSPORT", transport or "stdio").lower(),
            host=os.getenv("HOST", host or "0.0.0.0"),  # nosec B104
            port=_int_env("PORT", port or DEFAULT_PORT),
            base_url=os.getenv("MCP_BASE_URL", base_url or ""),
            google_client_id=os.getenv("GOOGLE_CLIENT_ID") or None,
            google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET") or None,
            google_access_token=os.getenv("GOOGLE_ACCESS_TOKEN") or None,
            log_level=os.getenv("LOG_LEVEL", log_level or "info").lower(),
            token_cache_max_size=_int_env(
                "TOKEN_CACHE_MAX_SIZE", DEFAULT_TOKEN_CACHE_MAX_SIZE
            ),
            token_cache_expired_buffer=_int_env(
                "TOKEN_CACHE_EXPIRED_BUFFER_SECONDS",
                DEFAULT_TOKEN_CACHE_EXPIRED_BUFFER_SECONDS,
            ),
            http_timeout=_int_env("HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS),
        )

    @property
    def callback_url(self) -> str:
        """Redirect URI registered with Google; the provider only ever talks to us."""
        return f"{self.base_url}/callback"

    @property
    def resource_url(self) -> str:
        return f"{self.base_url}/mcp"

    def validate(self) -> None:
        """Raise ConfigurationError if the selected transport cannot start."""
        if self.transport not in TRANSPORTS:
            raise ConfigurationError(
                f"Unknown transport: {self.transport}. Use MCP_TRANSPORT=stdio or MCP_TRANSPORT=http"
            )

        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level: {self.log_level}. Use one of {', '.join(LOG_LEVELS)}"
            )

        if self.token_cache_max_size < 1:
            raise ConfigurationError("TOKEN_CACHE_MAX_SIZE must be at least 1")

        missing = []
        if self.transport == "http":
            if not self.google_client_id:
                missing.append("GOOGLE_CLIENT_ID")
            if not self.google_client_secret:
                missing.append("GOOGLE_CLIENT_SECRET")
        elif not self.google_access_token:
            missing.append("GOOGLE_ACCESS_TOKEN")

        if missing:
            for var in missing:
                logger.error("Missing required environment variable: %s", var)
            raise ConfigurationError(
                f"Missing required environment variable(s) for {self.transport} transport: {', '.join(missing)}"
            )
