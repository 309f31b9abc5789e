"""OAuth authorization server facade in front of Google.

MCP clients speak plain OAuth 2.1 (discovery, dynamic registration,
authorization code + PKCE) and cannot be given Google client credentials. This
proxy redirects them through Google with its own client id, forwards the code
back to them, and injects the real client id/secret when they exchange it.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx

from ..config import Settings
from ..exceptions import TokenExchangeError
from ..utils.logger import logger, mask_secrets
from .state import StateCodec

GOOGLE_AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Every registering client gets the same id; the upstream credential pair is fixed
REGISTERED_CLIENT_ID = "google-sheets-mcp"

DEFAULT_CODE_CHALLENGE_METHOD = "S256"

RESOURCE_NAME = "Google Sheets MCP Server"
RESOURCE_DOCUMENTATION = "https://github.com/domdomegg/google-sheets-mcp"


def _append_query(url: str, params: Mapping[str, str]) -> str:
    """Add params to ``url`` keeping any query string it already has verbatim."""
    parts = urlsplit(url)
    query = "&".join(q for q in (parts.query, urlencode(params)) if q)
    return urlunsplit(parts._replace(query=query))


class OAuthProxy:
    """Stateless request translation between MCP clients and Google OAuth."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        state_codec: StateCodec | None = None,
    ) -> None:
        if not settings.google_client_id or not settings.google_client_secret:
            raise ValueError("OAuth proxy requires Google client id and secret")
        self.settings = settings
        self.client_id: str = settings.google_client_id
        self._client_secret: str = settings.google_client_secret
        self._http_client = http_client
        self.state_codec = state_codec or StateCodec(
            signing_key=self._client_secret.encode("utf-8")
        )

    def authorization_server_metadata(self) -> dict[str, Any]:
        """OAuth Authorization Server Metadata (RFC 8414)."""
        base_url = self.settings.base_url
        return {
            "issuer": base_url,
            "authorization_endpoint": f"{base_url}/authorize",
            "token_endpoint": f"{base_url}/token",
            "registration_endpoint": f"{base_url}/register",
            "response_types_supported": ["code"],
            "grant_types_supported": ["authorization_code", "refresh_token"],
            "code_challenge_methods_supported": [DEFAULT_CODE_CHALLENGE_METHOD],
            "scopes_supported": SHEETS_SCOPES,
        }

    def protected_resource_metadata(self) -> dict[str, Any]:
        """OAuth Protected Resource Metadata (RFC 9728)."""
        return {
            "resource": self.settings.resource_url,
            "authorization_servers": [self.settings.base_url],
            "scopes_supported": SHEETS_SCOPES,
            "resource_name": RESOURCE_NAME,
            "resource_documentation": RESOURCE_DOCUMENTATION,
        }

    def register_client(self, metadata: dict[str, Any]) -> dict[str, Any]:
        """Dynamic Client Registration (RFC 7591) without persistence.

        Whatever the client registers, tokens are exchanged with our own Google
        credentials, so the metadata is simply echoed back.
        """
        return {
            **metadata,
            "client_id": REGISTERED_CLIENT_ID,
            "client_id_issued_at": int(datetime.now(UTC).timestamp()),
        }

    def authorization_redirect_url(self, params: Mapping[str, str]) -> str:
        """Build the Google authorization URL for a client's authorize request.

        The client's redirect_uri and state are wrapped into the state sent to
        Google. A missing redirect_uri is carried as an empty string rather than
        substituted with any default destination.
        """
        client_redirect_uri = params.get("redirect_uri", "")
        client_state = params.get("state", "")
        code_challenge = params.get("code_challenge", "")
        code_challenge_method = (
            params.get("code_challenge_method") or DEFAULT_CODE_CHALLENGE_METHOD
        )

        if not client_redirect_uri:
            logger.warning("Authorization request without redirect_uri")

        wrapped_state = self.state_codec.encode(client_redirect_uri, client_state)

        google_params = {
            "client_id": self.client_id,
            "redirect_uri": self.settings.callback_url,
            "response_type": "code",
            "scope": " ".join(SHEETS_SCOPES),
            # Force offline access and consent so Google always issues a refresh token
            "access_type": "offline",
            "prompt": "consent",
            "state": wrapped_state,
            "code_challenge": code_challenge,
            "code_challenge_method": code_challenge_method,
        }

        logger.info(
            "Proxying authorization request for %s via %s",
            client_redirect_uri or "<no redirect_uri>",
            self.settings.callback_url,
        )
        return f"{GOOGLE_AUTH_ENDPOINT}?{urlencode(google_params)}"

    def client_redirect_url(self, code: str, wrapped_state: str, error: str) -> str:
        """Build the redirect back to the client after Google's callback.

        Raises:
            InvalidStateError: if ``wrapped_state`` was not produced by this proxy.
        """
        decoded = self.state_codec.decode(wrapped_state)

        forward_params = {}
        if code:
            forward_params["code"] = code
        if decoded.state:
            forward_params["state"] = decoded.state
        if error:
            forward_params["error"] = error

        logger.info(
            "Forwarding OAuth callback to %s (code: %s, error: %s)",
            decoded.redirect_uri,
            "present" if code else "missing",
            error or "none",
        )
        return _append_query(decoded.redirect_uri, forward_params)

    def token_request_params(self, params: Mapping[str, str]) -> dict[str, str]:
        """Replace client credentials and redirect_uri with the proxy's own."""
        corrected_params = dict(params)
        corrected_params["client_id"] = self.client_id
        corrected_params["client_secret"] = self._client_secret
        corrected_params["redirect_uri"] = self.settings.callback_url
        return corrected_params

    async def exchange_token(self, params: Mapping[str, str]) -> tuple[int, Any]:
        """Forward a grant request to Google and return its status and JSON body.

        Raises:
            TokenExchangeError: on transport failure or a non-JSON response.
        """
        corrected_params = self.token_request_params(params)
        logger.info(
            "Forwarding %s token exchange request to Google OAuth",
            params.get("grant_type", "unknown"),
        )
        logger.debug("Token exchange parameters: %s", mask_secrets(corrected_params))

        try:
            response = await self._post_token(corrected_params)
        except httpx.HTTPError as e:
            logger.error("Token exchange request failed: %s", e)
            raise TokenExchangeError("Unable to connect to OAuth provider") from e

        try:
            body = response.json()
        except ValueError as e:
            logger.error(
                "Token exchange failed - Google returned a non-JSON body: HTTP %d",
                response.status_code,
            )
            raise TokenExchangeError("OAuth provider returned an invalid response") from e

        if response.is_success:
            logger.info("Token exchange successful - received tokens from Google")
        else:
            logger.warning(
                "Token exchange failed - Google error: HTTP %d %s",
                response.status_code,
                body.get("error") if isinstance(body, dict) else "",
            )
        return response.status_code, body

    async def _post_token(self, data: dict[str, str]) -> httpx.Response:
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if self._http_client is not None:
            return await self._http_client.post(
                GOOGLE_TOKEN_ENDPOINT, data=data, headers=headers
            )
        async with httpx.AsyncClient(timeout=self.settings.http_timeout) as client:
            return await client.post(GOOGLE_TOKEN_ENDPOINT, data=data, headers=headers)
