"""Byte-source transports for event stream sessions.

A transport opens one HTTP GET and yields the raw response body in chunks.
The session only sees this interface; httpx and aiohttp adapters are
interchangeable behind it.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol

import aiohttp
import httpx
import structlog

from ssekit.errors import TransportError

log = structlog.get_logger()


class Transport(Protocol):
    def open(
        self, url: str, headers: Mapping[str, str]
    ) -> AbstractAsyncContextManager[AsyncIterator[bytes]]:
        """Open a read; raise TransportError on failure or non-2xx status."""
        ...


def _status_error(url: str, status_code: int, body: str) -> TransportError:
    log.error("upstream_error", url=url, status_code=status_code, body=body[:500])
    return TransportError(
        f"Unexpected status {status_code} from {url}", status_code=status_code
    )


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient.stream``."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        connect_timeout: float = 10.0,
        read_timeout: float | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        # Event streams stay open indefinitely; only bound the connect phase.
        self._timeout = httpx.Timeout(connect_timeout, read=read_timeout)

    @asynccontextmanager
    async def open(
        self, url: str, headers: Mapping[str, str]
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        try:
            async with self._client.stream(
                "GET", url, headers=dict(headers), timeout=self._timeout,
            ) as response:
                if not response.is_success:
                    # Read error body while response is still open
                    await response.aread()
                    raise _status_error(url, response.status_code, response.text)
                yield response.aiter_bytes()
        except httpx.HTTPError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class AiohttpTransport:
    """Transport backed by ``aiohttp.ClientSession.get``."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        connect_timeout: float = 10.0,
        read_timeout: float | None = None,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(
            total=None, connect=connect_timeout, sock_read=read_timeout,
        )

    def _get_session(self) -> aiohttp.ClientSession:
        # ClientSession must be created inside a running event loop.
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    @asynccontextmanager
    async def open(
        self, url: str, headers: Mapping[str, str]
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        try:
            async with self._get_session().get(
                url, headers=dict(headers), timeout=self._timeout,
            ) as response:
                if not 200 <= response.status < 300:
                    body = await response.text(errors="replace")
                    raise _status_error(url, response.status, body)
                yield response.content.iter_any()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
