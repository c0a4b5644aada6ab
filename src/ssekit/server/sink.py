"""Outbound byte sinks for event stream writers.

Any object with ``write(bytes)`` and ``write_eof()`` coroutines works as a
sink; aiohttp's ``web.StreamResponse`` qualifies as-is once prepared.
"""

from __future__ import annotations

import asyncio
from typing import Protocol


class EventSink(Protocol):
    async def write(self, data: bytes) -> None: ...

    async def write_eof(self) -> None: ...


class QueueSink:
    """In-memory sink; iterate it to receive written chunks until EOF."""

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue(maxsize)

    async def write(self, data: bytes) -> None:
        await self._queue.put(data)

    async def write_eof(self) -> None:
        await self._queue.put(None)

    def __aiter__(self) -> QueueSink:
        return self

    async def __anext__(self) -> bytes:
        chunk = await self._queue.get()
        if chunk is None:
            # Keep the marker for any further readers.
            self._queue.put_nowait(None)
            raise StopAsyncIteration
        return chunk
