"""Event stream session: connect, decode, reconnect, resume.

A ``StreamSession`` owns the connection loop for one event stream URL. It
feeds every attempt's bytes through a fresh decoder, remembers the last event
id and the server's ``retry:`` interval across reconnects, and waits between
attempts according to its reconnect policy.

Records reach the caller through an ``EventStream``: a background task runs
the loop and pushes into a bounded queue that the caller drains with
``async for``. Closing the stream cancels the task, which aborts a pending
read or backoff sleep.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

import structlog

from ssekit.errors import InvalidEncodingError, TransportError
from ssekit.protocol.decoder import EventDecoder
from ssekit.protocol.event import EventRecord, TypedEvent

from .policy import ExponentialBackoff, ReconnectPolicy, policy_from_config
from .state_machine import SessionPhase, transition
from .transport import HttpxTransport, Transport

if TYPE_CHECKING:
    from ssekit.config import SSEConfig
    from ssekit.payload import PayloadCodec

log = structlog.get_logger()

Emit = Callable[[EventRecord], Awaitable[None]]


def _retry_seconds(retry_ms: int) -> float:
    """Server ``retry:`` milliseconds as seconds, capped at the largest float."""
    try:
        return retry_ms / 1000.0
    except OverflowError:
        return sys.float_info.max


class StreamSession:
    """Reconnecting client for a single event stream URL."""

    def __init__(
        self,
        url: str,
        transport: Transport,
        *,
        headers: Mapping[str, str] | None = None,
        policy: ReconnectPolicy | None = None,
        last_event_id: str | None = None,
        queue_size: int = 64,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.url = url
        self.transport = transport
        self.headers = dict(headers or {})
        self.policy = policy if policy is not None else ExponentialBackoff()
        self.queue_size = queue_size
        self._sleep = sleep

        self.phase = SessionPhase.IDLE
        self.attempt: int = 0
        # Persist across reconnects; only the owning task writes them.
        self.last_event_id: str | None = last_event_id
        self.server_retry: float | None = None

        self._stream: EventStream | None = None

    @classmethod
    def from_config(
        cls,
        url: str,
        config: SSEConfig,
        *,
        transport: Transport | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> StreamSession:
        if transport is None:
            transport = HttpxTransport(
                connect_timeout=config.connect_timeout,
                read_timeout=config.read_timeout,
            )
        return cls(
            url,
            transport,
            headers=headers,
            policy=policy_from_config(config),
            queue_size=config.queue_size,
        )

    def request_headers(self) -> dict[str, str]:
        """Headers for the next connection attempt."""
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        headers.update(self.headers)
        if self.last_event_id:
            headers["Last-Event-ID"] = self.last_event_id
        return headers

    def events(self) -> EventStream:
        """Return the record stream. Only one may be active at a time."""
        if self._stream is not None and not self._stream.closed:
            raise RuntimeError("StreamSession already has an active event stream")
        self._stream = EventStream(self, self.queue_size)
        return self._stream

    async def typed_events(
        self,
        event_type: str,
        shape: Any,
        codec: PayloadCodec | None = None,
    ) -> AsyncIterator[TypedEvent[Any]]:
        """Yield payloads of records whose event type matches ``event_type``."""
        async with self.events() as stream:
            async for record in stream:
                if record.event == event_type:
                    yield TypedEvent(
                        payload=record.decode_payload(shape, codec),
                        id=record.id,
                        event=record.event,
                    )

    def _enter(self, target: SessionPhase, trigger: str = "") -> None:
        self.phase = transition(self.phase, target, self.url, trigger)

    async def run(self, emit: Emit) -> None:
        """Drive the connect/stream/backoff loop until the policy stops it.

        Raises the last TransportError if the policy does not reconnect after
        a failure. Cancellation leaves the session in the CANCELLED phase.
        """
        self.phase = SessionPhase.IDLE
        try:
            while True:
                self._enter(SessionPhase.CONNECTING, trigger=f"attempt={self.attempt}")
                failure: TransportError | None = None
                try:
                    await self._stream_once(emit)
                except TransportError as exc:
                    log.warning(
                        "stream_failed",
                        url=self.url,
                        attempt=self.attempt,
                        status_code=exc.status_code,
                        error=str(exc),
                    )
                    self._enter(SessionPhase.FAILED, trigger="transport_error")
                    failure = exc
                else:
                    self._enter(SessionPhase.COMPLETED, trigger="stream_end")
                    self.attempt = 0

                if not self.policy.reconnects:
                    self._enter(SessionPhase.CLOSED, trigger="policy_never")
                    if failure is not None:
                        raise failure
                    return

                delay = self.policy.delay(self.attempt, self.server_retry)
                self._enter(SessionPhase.BACKOFF)
                log.info(
                    "reconnect_scheduled",
                    url=self.url,
                    attempt=self.attempt,
                    delay=delay,
                    server_retry=self.server_retry,
                    last_event_id=self.last_event_id,
                )
                await self._sleep(delay)
                self.attempt += 1
        except asyncio.CancelledError:
            if self.phase not in (SessionPhase.CLOSED, SessionPhase.CANCELLED):
                self._enter(SessionPhase.CANCELLED, trigger="cancelled")
            raise

    async def _stream_once(self, emit: Emit) -> None:
        decoder = EventDecoder()
        async with self.transport.open(self.url, self.request_headers()) as chunks:
            self._enter(SessionPhase.STREAMING)
            log.debug("stream_opened", url=self.url, last_event_id=self.last_event_id)
            total_bytes = 0
            async for chunk in chunks:
                total_bytes += len(chunk)
                try:
                    records = decoder.decode(chunk)
                except InvalidEncodingError as exc:
                    log.warning("chunk_dropped", url=self.url, error=str(exc))
                    continue
                for record in records:
                    if record.id is not None:
                        self.last_event_id = record.id
                    if record.retry is not None:
                        self.server_retry = _retry_seconds(record.retry)
                    await emit(record)
        log.debug("stream_ended", url=self.url, total_bytes=total_bytes)


class _End:
    pass


class _Failure:
    def __init__(self, error: BaseException) -> None:
        self.error = error


class EventStream:
    """Lazily started async iterator over a session's records."""

    def __init__(self, session: StreamSession, maxsize: int = 64) -> None:
        self._session = session
        self._queue: asyncio.Queue[EventRecord | _End | _Failure] = asyncio.Queue(maxsize)
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> EventStream:
        return self

    async def __anext__(self) -> EventRecord:
        if self._closed:
            raise StopAsyncIteration
        if self._task is None:
            self._task = asyncio.create_task(self._produce())

        item = await self._queue.get()
        # Closed while waiting; nothing is delivered after aclose().
        if self._closed:
            raise StopAsyncIteration
        if isinstance(item, _End):
            self._closed = True
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._closed = True
            raise item.error
        return item

    async def _produce(self) -> None:
        try:
            await self._session.run(self._queue.put)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            await self._queue.put(_Failure(exc))
        else:
            await self._queue.put(_End())

    async def aclose(self) -> None:
        """Stop the stream, aborting any pending read or backoff sleep."""
        self._closed = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})
        # Wake a consumer blocked in __anext__ from another task.
        if not self._queue.full():
            self._queue.put_nowait(_End())

    async def __aenter__(self) -> EventStream:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
