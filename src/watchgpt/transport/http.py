"""
REST HTTP client for the OpenAI-compatible API.

The bearer token is read from a provider on every request so a key synced
mid-session is picked up without rebuilding the client.
"""

import logging
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from watchgpt.config import DEFAULT_BASE_URL
from watchgpt.errors import ChatAPIError
from watchgpt.models.completion import APIErrorResponse

logger = logging.getLogger(__name__)

USER_AGENT = "watchgpt/0.1.0"


class HttpClient:
    def __init__(
        self,
        token_provider: Callable[[], Optional[str]],
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
            transport=transport,
        )

    def _auth_headers(self) -> dict[str, str]:
        token = self._token_provider()
        if not token or not token.strip():
            raise ChatAPIError("No API key set. Add one with `watchgpt key set` or sync it from the companion.",
                               code="missing_api_key")
        return {"Content-Type": "application/json", "Authorization": f"Bearer {token.strip()}"}

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        headers = self._auth_headers()
        try:
            return await self._client.post(path, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"POST {path} failed: {e!r}")
            raise ChatAPIError(f"Network error: {e}", code="network_error")

    @staticmethod
    def _error_message(resp: httpx.Response) -> Optional[str]:
        try:
            return APIErrorResponse.model_validate(resp.json()).error.message
        except (ValueError, ValidationError):
            return None

    async def post_json(self, path: str, body: dict[str, Any]) -> Any:
        resp = await self._post(path, body)
        if resp.status_code == 401:
            raise ChatAPIError("Invalid API key. Please check your OpenAI API key.",
                               code="invalid_api_key", status_code=401)
        if resp.status_code >= 300:
            message = self._error_message(resp)
            if message:
                raise ChatAPIError(f"API error: {message}", code="api_error", status_code=resp.status_code)
            raise ChatAPIError(f"HTTP error: {resp.status_code}", code="http_error", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise ChatAPIError(f"Failed to decode response: {e}", code="decoding_error")

    async def post_bytes(self, path: str, body: dict[str, Any]) -> bytes:
        """POST expecting a binary body; JSON is only parsed on failure."""
        resp = await self._post(path, body)
        if resp.status_code != 200:
            message = self._error_message(resp)
            text = f"HTTP {resp.status_code}: {message}" if message else f"HTTP error: {resp.status_code}"
            raise ChatAPIError(text, code="http_error", status_code=resp.status_code)
        return resp.content

    async def close(self) -> None:
        await self._client.aclose()
