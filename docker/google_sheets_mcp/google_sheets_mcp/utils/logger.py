import logging
import os
import sys


def set_log_level(level: str) -> None:
    """Set the service logger and its handlers to a level name from config.

    Args:
        level: One of debug, info, warning, error or critical (any case)
    """
    numeric_level = getattr(logging, level.upper())

    logger.setLevel(numeric_level)
    for handler in logger.handlers:
        handler.setLevel(numeric_level)

    logger.debug("Logger level set to %s", level.upper())


def mask_secrets(params: dict, secret_keys: tuple[str, ...] = ()) -> dict:
    """Return a copy of request parameters that is safe to log."""
    hidden = set(secret_keys) | {
        "access_token",
        "client_secret",
        "code",
        "code_verifier",
        "refresh_token",
    }
    return {k: "***" if k in hidden else v for k, v in params.items()}


## Set up default logger ##

# Determine initial log level from environment variables
if os.getenv("DEBUG_MODE", "false") == "true":
    loglevel = logging.DEBUG
else:
    env_level = os.getenv("LOGLEVEL", "INFO").upper()
    loglevel = (
        getattr(logging, env_level)
        if env_level in ["DEBUG", "INFO", "WARN", "ERROR", "CRITICAL"]
        else logging.INFO
    )

logger = logging.getLogger("google-sheets-mcp")
logger.setLevel(loglevel)
logger.propagate = False  # Prevent double logging by uvicorn

# stdout is reserved for the MCP stdio transport
stderr_handler = logging.StreamHandler(sys.stderr)
stderr_handler.setLevel(loglevel)

formatter = logging.Formatter("%(levelname)s - %(message)s")
stderr_handler.setFormatter(formatter)

logger.addHandler(stderr_handler)
