"""Google Sheets REST API client."""

from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from .exceptions import SheetsApiError
from .utils.logger import logger

SHEETS_API_BASE_URL = "https://sheets.googleapis.com/v4"

QueryParams = Sequence[tuple[str, str]]


def encode_range(a1_range: str) -> str:
    """Percent-encode an A1 range for use as a URL path segment."""
    return quote(a1_range, safe="")


class SheetsApiClient:
    """Authenticated calls against the Sheets v4 API on behalf of one token."""

    def __init__(
        self,
        access_token: str,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = SHEETS_API_BASE_URL,
        timeout: float = 30.0,
    ) -> None:
        self._access_token = access_token
        self._http_client = http_client
        self._base_url = base_url
        self._timeout = timeout

    def _headers(self, has_body: bool) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
        }
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        params: QueryParams | None = None,
    ) -> Any:
        """Call ``endpoint`` (path below the API base URL) and parse the result.

        Raises:
            SheetsApiError: if the API answers with a non-2xx status.
        """
        url = f"{self._base_url}{endpoint}"
        kwargs: dict[str, Any] = {
            "headers": self._headers(body is not None),
            "params": list(params) if params else None,
        }
        if body is not None:
            kwargs["json"] = body

        logger.debug("Sheets API call: %s %s", method, endpoint)
        if self._http_client is not None:
            response = await self._http_client.request(method, url, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, **kwargs)

        return self._parse_response(response)

    @staticmethod
    def _parse_response(response: httpx.Response) -> Any:
        if not response.is_success:
            raise SheetsApiError(
                f"Google Sheets API error: {response.status_code} {response.reason_phrase} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            if not response.text.strip():
                return {"success": True, "message": "Operation completed successfully"}
            try:
                return response.json()
            except ValueError as e:
                raise SheetsApiError(
                    f"Failed to parse JSON response: {e}",
                    status_code=response.status_code,
                    body=response.text,
                ) from e

        return response.text or "Success"
