"""
HTTP transport using httpx for async requests.

Provides:
- Lazily created shared AsyncClient
- Streaming POST with the body exposed as an async byte iterator
- Mapping of httpx failures and non-2xx responses onto library errors
"""

from __future__ import annotations

import importlib.util
import json as json_module
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING, Any

import httpx

from ollama_stream.errors import RemoteError, TransportError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ollama_stream.config import ClientConfig


_UA_VERSION: str | None = None


def _http2_enabled() -> bool:
    """Enable HTTP/2 only when the optional dependency is present."""
    return importlib.util.find_spec("h2") is not None


def _get_ua_version() -> str:
    """Get package version for User-Agent (cached)."""
    global _UA_VERSION
    if _UA_VERSION is None:
        from importlib.metadata import PackageNotFoundError, version

        try:
            _UA_VERSION = version("ollama-stream")
        except PackageNotFoundError:
            _UA_VERSION = "0.0.0"
    return _UA_VERSION


class HttpTransport:
    """HTTP transport for the model server.

    Example:
        >>> transport = HttpTransport(ClientConfig())
        >>> async with transport.stream_post("/api/chat", payload) as response:
        ...     async for chunk in response.aiter_bytes():
        ...         process(chunk)
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize HTTP transport.

        Args:
            config: Client configuration (host and timeouts)
            http_transport: Optional httpx transport, e.g. httpx.MockTransport
        """
        self._base_url = config.host
        self._timeout = httpx.Timeout(
            config.request_timeout_s, connect=config.connect_timeout_s
        )
        # Streamed bodies may legitimately pause for a long time between
        # tokens; the logical-call deadline bounds them instead.
        self._stream_timeout = httpx.Timeout(None, connect=config.connect_timeout_s)
        self._http_transport = http_transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            kwargs: dict[str, Any] = {
                "base_url": self._base_url,
                "timeout": self._timeout,
                "trust_env": False,
            }
            if self._http_transport is not None:
                kwargs["transport"] = self._http_transport
            else:
                kwargs["http2"] = _http2_enabled()
            self._client = httpx.AsyncClient(**kwargs)

        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_headers(self, extra_headers: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"ollama-stream/{_get_ua_version()}",
        }
        if extra_headers:
            headers.update(extra_headers)
        return headers

    def _wrap_httpx_error(self, e: httpx.HTTPError, path: str) -> TransportError:
        url = f"{self._base_url}{path}"
        if isinstance(e, httpx.ConnectError):
            return TransportError(f"Connection failed: {e}", url=url, cause=e)
        if isinstance(e, httpx.TimeoutException):
            return TransportError(f"Request timed out: {e}", url=url, cause=e)
        return TransportError(f"HTTP error: {e}", url=url, cause=e)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a buffered HTTP request.

        Raises:
            TransportError: On network/connection errors
            RemoteError: On non-2xx responses
        """
        client = self._get_client()

        try:
            response = await client.request(
                method=method,
                url=path,
                json=json,
                headers=self._build_headers(headers),
            )
        except httpx.HTTPError as e:
            raise self._wrap_httpx_error(e, path) from e

        if response.status_code >= 400:
            body = None
            with suppress(ValueError):
                body = response.json()
            raise RemoteError.from_response(
                status_code=response.status_code,
                body=body,
                headers=dict(response.headers),
            )

        return response

    async def post(
        self,
        path: str,
        json: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a POST request."""
        return await self.request("POST", path, json=json, headers=headers)

    async def get(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", path, headers=headers)

    @asynccontextmanager
    async def stream_post(
        self,
        path: str,
        json: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Make a streaming POST request.

        The response is closed when the context exits, whether the body was
        fully read, an error was raised or the surrounding task was cancelled.

        Raises:
            TransportError: On network errors, including mid-stream drops
            RemoteError: On non-2xx responses
        """
        client = self._get_client()
        request_headers = self._build_headers(headers)
        request_headers["Accept"] = "application/x-ndjson"

        try:
            async with client.stream(
                "POST",
                path,
                json=json,
                headers=request_headers,
                timeout=self._stream_timeout,
            ) as response:
                if response.status_code >= 400:
                    body_bytes = await response.aread()
                    body = None
                    with suppress(ValueError):
                        body = json_module.loads(body_bytes)
                    raise RemoteError.from_response(
                        status_code=response.status_code,
                        body=body,
                        headers=dict(response.headers),
                    )

                yield response

        except httpx.HTTPError as e:
            raise self._wrap_httpx_error(e, path) from e

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
