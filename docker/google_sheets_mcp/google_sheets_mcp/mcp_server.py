"""MCP server exposing the Google Sheets tools."""

import typing as t
from importlib.metadata import PackageNotFoundError, version

import httpx
from mcp import types
from mcp.server.lowlevel import Server
from pydantic import ValidationError

from .exceptions import SheetsApiError
from .sheets_api import SheetsApiClient
from .tools import sheets, spreadsheet, values
from .tools.base import SheetsTool, error_result, json_result
from .utils.logger import logger

SERVER_NAME = "google-sheets-mcp"

ALL_TOOLS: list[SheetsTool] = [*spreadsheet.TOOLS, *values.TOOLS, *sheets.TOOLS]


def package_version() -> str:
    try:
        return version("google-sheets-mcp")
    except PackageNotFoundError:
        return "0.1.0"


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer ") :] or None


def create_mcp_server(
    access_token: str | None = None,
    http_client: httpx.AsyncClient | None = None,
    tools: list[SheetsTool] | None = None,
) -> Server:
    """Create the low-level MCP server.

    Args:
        access_token: Token for every call (stdio mode). When None the token is
            taken from the Authorization header of the HTTP request carrying
            each MCP message.
        http_client: Optional shared client for Sheets API calls.
        tools: Tool set to expose, defaults to all Sheets tools.
    """
    app = Server(SERVER_NAME, version=package_version())
    registry = {tool.name: tool for tool in (tools or ALL_TOOLS)}

    def _request_token() -> str | None:
        if access_token is not None:
            return access_token
        try:
            request = app.request_context.request
        except LookupError:
            return None
        headers = getattr(request, "headers", None)
        if headers is None:
            return None
        return extract_bearer_token(headers.get("authorization"))

    async def _list_tools(_: t.Any) -> types.ServerResult:  # noqa: ANN401
        return types.ServerResult(
            types.ListToolsResult(tools=[tool.definition() for tool in registry.values()])
        )

    async def _call_tool(req: types.CallToolRequest) -> types.ServerResult:
        tool_name = req.params.name
        tool = registry.get(tool_name)
        if tool is None:
            logger.warning("Call to unknown tool '%s'", tool_name)
            return types.ServerResult(error_result(f"Unknown tool: {tool_name}"))

        token = _request_token()
        if not token:
            return types.ServerResult(
                error_result("Unauthorized: no Google access token available")
            )

        api = SheetsApiClient(token, http_client=http_client)
        try:
            logger.debug("Calling tool '%s'", tool_name)
            data = await tool.run(api, dict(req.params.arguments or {}))
        except ValidationError as e:
            logger.info("Tool '%s' rejected invalid data: %s", tool_name, e)
            return types.ServerResult(
                error_result(f"Invalid data for tool {tool_name}: {e}")
            )
        except SheetsApiError as e:
            logger.warning(
                "Tool '%s' failed - Sheets API HTTP %d", tool_name, e.status_code
            )
            return types.ServerResult(error_result(str(e)))
        except (httpx.HTTPError, KeyError, IndexError, TypeError) as e:
            logger.error("Tool call failed for '%s': %s", tool_name, e)
            return types.ServerResult(
                error_result(f"Tool {tool_name} failed: {type(e).__name__}: {e}")
            )

        return types.ServerResult(json_result(data))

    app.request_handlers[types.ListToolsRequest] = _list_tools
    app.request_handlers[types.CallToolRequest] = _call_tool
    return app
