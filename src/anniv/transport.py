"""Thin httpx wrapper: base URL joining, timeouts and uniform error mapping."""

import logging
from typing import Any, Optional

import httpx

from .errors import ApiError, ApiTimeoutError, MalformedResponseError

logger = logging.getLogger(__name__)


def join_url(base_url: str, path: str) -> str:
    """Join base and path without doubling or dropping the slash."""
    base = base_url.rstrip("/")
    return f"{base}{path if path.startswith('/') else '/' + path}"


class ApiTransport:
    """Owns one AsyncClient for a backend and maps failures onto ApiError."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._client = client

    def get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Send a request; any transport error or non-2xx status raises ApiError."""
        url = join_url(self.base_url, path)
        try:
            response = await self.get_client().request(
                method,
                url,
                json=json,
                params=params,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise ApiTimeoutError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise ApiError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            text = response.text
            logger.warning("%s %s -> HTTP %s", method, path, response.status_code)
            raise ApiError(
                f"HTTP {response.status_code} {response.reason_phrase}" + (f" - {text}" if text else ""),
                status_code=response.status_code,
                body=text,
            )
        return response

    async def request_json(self, method: str, path: str, **kwargs: Any) -> dict:
        """Like request() but decodes a JSON object body."""
        response = await self.request(method, path, **kwargs)
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                "response body is not JSON", status_code=response.status_code, body=response.text
            ) from exc
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                "response body is not a JSON object", status_code=response.status_code, body=response.text
            )
        return payload
