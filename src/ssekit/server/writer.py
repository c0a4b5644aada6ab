"""Server-side event stream writer.

Encodes records and pushes them to an outbound sink, e.g. an aiohttp
``web.StreamResponse``. The writer has a single owner and closes once.
"""

from __future__ import annotations

from typing import Any

import structlog

from ssekit.errors import StreamClosedError
from ssekit.payload import JsonPayloadCodec, PayloadCodec
from ssekit.protocol.encoder import encode_comment, encode_event
from ssekit.protocol.event import EventRecord

from .sink import EventSink

log = structlog.get_logger()


class EventStreamWriter:
    """Writes SSE events to a sink until closed."""

    def __init__(self, sink: EventSink, codec: PayloadCodec | None = None) -> None:
        self._sink = sink
        self._codec = codec or JsonPayloadCodec()
        self._closed = False
        self.events_sent = 0
        self.bytes_sent = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def _write(self, data: bytes) -> None:
        if self._closed:
            raise StreamClosedError()
        await self._sink.write(data)
        self.bytes_sent += len(data)

    async def send(self, record: EventRecord) -> None:
        """Send one event. Raises StreamClosedError after close()."""
        await self._write(encode_event(record))
        self.events_sent += 1

    async def send_payload(
        self,
        payload: Any,
        *,
        event: str | None = None,
        id: str | None = None,
        retry: int | None = None,
        codec: PayloadCodec | None = None,
    ) -> None:
        """Encode a structured payload as the event data and send it.

        Raises StreamClosedError after close() without encoding the payload.
        """
        if self._closed:
            raise StreamClosedError()
        data = (codec or self._codec).encode(payload)
        await self.send(EventRecord(data=data, id=id, event=event, retry=retry))

    async def send_comment(self, text: str = "") -> None:
        """Send a comment line; clients ignore it, proxies see traffic."""
        await self._write(encode_comment(text))

    async def close(self) -> None:
        """Signal end of stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._sink.write_eof()
        log.debug(
            "event_stream_closed",
            events_sent=self.events_sent,
            bytes_sent=self.bytes_sent,
        )

    async def __aenter__(self) -> EventStreamWriter:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
