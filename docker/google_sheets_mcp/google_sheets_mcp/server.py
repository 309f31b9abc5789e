"""FastAPI server for the Google Sheets MCP service (HTTP transport)."""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.middleware.cors import CORSMiddleware
from starlette.types import Message, Receive, Scope, Send

from .config import Settings
from .exceptions import InvalidStateError, TokenExchangeError
from .mcp_server import create_mcp_server, extract_bearer_token, package_version
from .oauth.proxy import OAuthProxy
from .oauth.token_cache import TokenValidationCache
from .utils.logger import logger, mask_secrets

UNAUTHORIZED_CODE = -32001
# Listing tools is allowed without a token so clients can discover the server
UNAUTHENTICATED_METHODS = frozenset({"tools/list"})

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def _oauth_error(status_code: int, error: str, description: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "error_description": description},
    )


def _jsonrpc_method(body: bytes) -> str | None:
    """JSON-RPC method of a single request body, None for batches or garbage."""
    try:
        message = json.loads(body)
    except ValueError:
        return None
    if isinstance(message, dict) and isinstance(message.get("method"), str):
        return message["method"]
    return None


class MCPEndpoint:
    """ASGI endpoint guarding the MCP transport with bearer token validation.

    Rejections happen here, as real HTTP 401s, because once a request reaches
    the MCP transport every failure is reported inside an HTTP 200 JSON-RPC
    response and clients never learn they should refresh their token.
    """

    def __init__(
        self,
        session_manager: StreamableHTTPSessionManager,
        token_cache: TokenValidationCache,
        settings: Settings,
    ) -> None:
        self.session_manager = session_manager
        self.token_cache = token_cache
        self.settings = settings

    def _unauthorized(self, message: str, invalid_token: bool) -> JSONResponse:
        resource_metadata = (
            f"{self.settings.base_url}/.well-known/oauth-protected-resource"
        )
        auth_header = f'Bearer resource_metadata="{resource_metadata}"'
        if invalid_token:
            auth_header += ', error="invalid_token", error_description="Token validation failed"'
        return JSONResponse(
            status_code=401,
            content={
                "jsonrpc": "2.0",
                "error": {"code": UNAUTHORIZED_CODE, "message": message},
                "id": None,
            },
            headers={"WWW-Authenticate": auth_header},
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        body = await request.body()
        token = extract_bearer_token(request.headers.get("authorization"))

        if token is None:
            method = _jsonrpc_method(body)
            if method not in UNAUTHENTICATED_METHODS:
                logger.info(
                    "Rejected unauthenticated MCP request (method: %s)", method or "unknown"
                )
                response = self._unauthorized(
                    "Unauthorized: Bearer token required", invalid_token=False
                )
                await response(scope, receive, send)
                return
        elif not await self.token_cache.is_valid(token):
            logger.info("Rejected MCP request with invalid or expired token")
            response = self._unauthorized(
                "Unauthorized: Invalid or expired token", invalid_token=True
            )
            await response(scope, receive, send)
            return

        # The body has been consumed; hand the transport a replay of it
        body_sent = False

        async def replay_receive() -> Message:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.session_manager.handle_request(scope, replay_receive, send)


def create_app(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
    token_cache: TokenValidationCache | None = None,
) -> FastAPI:
    """Build the HTTP application.

    Args:
        settings: Validated HTTP transport settings.
        http_client: Shared client for Google calls; tests pass one backed by
            ``httpx.MockTransport``. When omitted the app creates one and
            closes it on shutdown.
        token_cache: Token validation cache, one per process.
    """
    owns_http_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.http_timeout)

    oauth_proxy = OAuthProxy(settings, http_client=http_client)
    if token_cache is None:
        token_cache = TokenValidationCache(
            http_client,
            max_size=settings.token_cache_max_size,
            expired_buffer=settings.token_cache_expired_buffer,
        )
    mcp_app = create_mcp_server(http_client=http_client)
    session_manager = StreamableHTTPSessionManager(
        app=mcp_app,
        event_store=None,
        json_response=True,
        stateless=True,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info("Application startup - serving MCP at %s", settings.resource_url)
        try:
            async with session_manager.run():
                yield
        finally:
            token_cache.clear()
            if owns_http_client:
                await http_client.aclose()
            logger.info("Application shutdown completed")

    app = FastAPI(
        title="Google Sheets MCP Server",
        description="MCP server for Google Sheets with an OAuth 2.1 proxy in front of Google",
        version=package_version(),
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.oauth_proxy = oauth_proxy
    app.state.token_cache = token_cache

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["WWW-Authenticate", "Mcp-Session-Id"],
    )

    @app.get("/.well-known/oauth-authorization-server")
    async def oauth_authorization_server() -> JSONResponse:
        return JSONResponse(oauth_proxy.authorization_server_metadata())

    @app.get("/.well-known/oauth-protected-resource")
    @app.get("/.well-known/oauth-protected-resource/mcp")
    async def oauth_protected_resource() -> JSONResponse:
        return JSONResponse(oauth_proxy.protected_resource_metadata())

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {
            "status": "healthy",
            "service": "google-sheets-mcp",
            "version": package_version(),
        }

    @app.post("/register")
    async def dynamic_client_registration(request: Request) -> JSONResponse:
        """Handle OAuth 2.1 Dynamic Client Registration (RFC 7591)."""
        try:
            metadata = await request.json()
        except ValueError:
            metadata = None

        if not isinstance(metadata, dict):
            logger.warning("Rejected DCR request with a non-object body")
            return _oauth_error(
                400,
                "invalid_client_metadata",
                "Request body must be a JSON object",
            )

        registration = oauth_proxy.register_client(metadata)
        logger.info(
            "DCR successful - client_name: %s, redirect_uris: %s",
            metadata.get("client_name", "unknown"),
            metadata.get("redirect_uris", []),
        )
        return JSONResponse(
            status_code=201, content=registration, headers=NO_STORE_HEADERS
        )

    @app.get("/authorize")
    async def oauth_authorization_proxy(request: Request) -> Response:
        """Redirect the client's authorization request to Google."""
        params = dict(request.query_params)
        logger.debug("Authorization request parameters: %s", mask_secrets(params))
        return RedirectResponse(
            url=oauth_proxy.authorization_redirect_url(params), status_code=302
        )

    @app.get("/callback")
    async def oauth_callback_forwarding(request: Request) -> Response:
        """Forward Google's callback to the redirect_uri wrapped in state."""
        query_params = request.query_params
        try:
            redirect_url = oauth_proxy.client_redirect_url(
                code=query_params.get("code", ""),
                wrapped_state=query_params.get("state", ""),
                error=query_params.get("error", ""),
            )
        except InvalidStateError as e:
            logger.warning("OAuth callback with undecodable state: %s", e)
            return _oauth_error(
                400, "invalid_state", "Could not decode state parameter"
            )
        return RedirectResponse(url=redirect_url, status_code=302)

    @app.post("/token")
    async def oauth_token_proxy(request: Request) -> Response:
        """Proxy token requests to Google, injecting the real client credentials."""
        params = await _read_token_request(request)
        if params is None:
            return _oauth_error(
                400,
                "invalid_request",
                "Token request body must be form-encoded or a JSON object",
            )

        try:
            status_code, body = await oauth_proxy.exchange_token(params)
        except TokenExchangeError:
            return _oauth_error(500, "server_error", "Token exchange failed")

        return JSONResponse(
            status_code=status_code, content=body, headers=NO_STORE_HEADERS
        )

    app.add_route(
        "/mcp",
        MCPEndpoint(session_manager, token_cache, settings),
        methods=["POST"],
    )

    return app


async def _read_token_request(request: Request) -> dict[str, Any] | None:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    form_data = await request.form()
    return {k: v for k, v in form_data.items() if isinstance(v, str)}
