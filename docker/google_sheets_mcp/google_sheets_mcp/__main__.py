"""Main entry point for the Google Sheets MCP server."""

import argparse
import asyncio
import logging
import sys

import httpx
import uvicorn
from mcp.server.stdio import stdio_server

from .config import DEFAULT_PORT, LOG_LEVELS, TRANSPORTS, Settings
from .exceptions import ConfigurationError
from .mcp_server import create_mcp_server, package_version
from .server import create_app
from .utils.logger import logger, set_log_level


def _setup_argument_parser() -> argparse.ArgumentParser:
    """Set up and return the argument parser for the Google Sheets MCP server."""
    parser = argparse.ArgumentParser(
        description="MCP server for Google Sheets with an OAuth proxy for the HTTP transport",
        epilog=(
            "Examples:\n"
            "  GOOGLE_ACCESS_TOKEN=ya29... google-sheets-mcp\n"
            "  GOOGLE_CLIENT_ID=... GOOGLE_CLIENT_SECRET=... google-sheets-mcp --transport http\n"
            "  google-sheets-mcp --transport http --base-url https://sheets.example.com --debug\n"
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {package_version()}",
        help="Show the version and exit",
    )

    parser.add_argument(
        "--transport",
        choices=TRANSPORTS,
        default=None,
        help="Transport to serve MCP on. Default is MCP_TRANSPORT env var or stdio",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=f"Port for the HTTP transport. Default is {DEFAULT_PORT}",
    )

    parser.add_argument(
        "--host",
        default=None,
        help="Host for the HTTP transport. Default is 0.0.0.0",
    )

    parser.add_argument(
        "--base-url",
        default=None,
        help="Public base URL used in OAuth metadata and redirects. Default is http://localhost:<port>",
    )

    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="info",
        help="Logging level. Default is info",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (equivalent to --log-level debug)",
    )

    return parser


async def run_stdio(settings: Settings) -> None:
    """Serve MCP over stdin/stdout with the configured access token."""
    async with httpx.AsyncClient(timeout=settings.http_timeout) as http_client:
        app = create_mcp_server(
            access_token=settings.google_access_token, http_client=http_client
        )
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Google Sheets MCP server running on stdio")
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )


def run_http(settings: Settings) -> None:
    app = create_app(settings)

    logger.info("Starting Google Sheets MCP server on %s:%d", settings.host, settings.port)
    logger.info("MCP endpoint: %s", settings.resource_url)
    logger.info("OAuth callback URL: %s", settings.callback_url)
    logger.info("Log level: %s", settings.log_level)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        access_log=settings.log_level == "debug",  # Only show access logs in DEBUG mode
    )


def main() -> None:
    """Main entry point for the Google Sheets MCP server."""
    parser = _setup_argument_parser()
    args = parser.parse_args()

    log_level = "debug" if args.debug else args.log_level

    try:
        settings = Settings.from_env(
            transport=args.transport,
            host=args.host,
            port=args.port,
            base_url=args.base_url,
            log_level=log_level,
        )
        settings.validate()
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    set_log_level(settings.log_level)

    # Request URLs to tokeninfo carry the access token
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if settings.transport == "http":
        run_http(settings)
    else:
        asyncio.run(run_stdio(settings))


if __name__ == "__main__":
    main()
