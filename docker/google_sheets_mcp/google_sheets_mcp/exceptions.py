"""Exception types raised by the Google Sheets MCP service."""


class SheetsMcpError(Exception):
    """Base class for all service errors."""


class ConfigurationError(SheetsMcpError, ValueError):
    """Required configuration is missing or malformed."""


class InvalidStateError(SheetsMcpError):
    """An OAuth state parameter could not be decoded."""


class SheetsApiError(SheetsMcpError):
    """The Google Sheets REST API answered with a non-success status."""

    def __init__(self, message: str, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenExchangeError(SheetsMcpError):
    """The provider token endpoint could not be reached or answered garbage."""
