"""End-to-end tests: aiohttp server writer feeding reconnecting client sessions."""

import asyncio

import pytest
from aiohttp import web
from pydantic import BaseModel

from ssekit.client.policy import Immediate, Never
from ssekit.client.session import StreamSession
from ssekit.client.transport import AiohttpTransport, HttpxTransport
from ssekit.errors import TransportError
from ssekit.protocol.event import TypedEvent
from ssekit.server.writer import EventStreamWriter

BATCH = 2


class Count(BaseModel):
    n: int


async def counter(request: web.Request) -> web.StreamResponse:
    """Send BATCH numbered events after Last-Event-ID, then end the stream."""
    last_id = request.headers.get("Last-Event-ID")
    request.app["resume_ids"].append(last_id)
    start = int(last_id) + 1 if last_id else 1

    response = web.StreamResponse(
        headers={"content-type": "text/event-stream", "cache-control": "no-cache"},
    )
    await response.prepare(request)
    async with EventStreamWriter(response) as writer:
        await writer.send_comment("stream start")
        for n in range(start, start + BATCH):
            await writer.send_payload(Count(n=n), event="count", id=str(n))
    return response


async def unavailable(request: web.Request) -> web.Response:
    return web.Response(status=503, text="try later")


@pytest.fixture
async def client(aiohttp_client):
    app = web.Application()
    app["resume_ids"] = []
    app.router.add_get("/count", counter)
    app.router.add_get("/down", unavailable)
    return await aiohttp_client(app)


async def _take(stream, count):
    records = []
    for _ in range(count):
        records.append(await asyncio.wait_for(anext(stream), timeout=5.0))
    return records


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_aiohttp_client_resumes_across_reconnects(self, client):
        session = StreamSession(
            str(client.make_url("/count")),
            AiohttpTransport(client.session),
            policy=Immediate(),
        )
        async with session.events() as stream:
            records = await _take(stream, 2 * BATCH)
        assert [r.id for r in records] == ["1", "2", "3", "4"]
        assert [r.decode_payload(Count).n for r in records] == [1, 2, 3, 4]
        assert client.app["resume_ids"][:2] == [None, "2"]

    @pytest.mark.asyncio
    async def test_httpx_client_single_connection(self, client):
        transport = HttpxTransport()
        session = StreamSession(
            str(client.make_url("/count")), transport, policy=Never(),
        )
        try:
            typed = [t async for t in session.typed_events("count", Count)]
        finally:
            await transport.aclose()
        assert typed == [
            TypedEvent(payload=Count(n=1), id="1", event="count"),
            TypedEvent(payload=Count(n=2), id="2", event="count"),
        ]

    @pytest.mark.asyncio
    async def test_resume_from_known_id(self, client):
        session = StreamSession(
            str(client.make_url("/count")),
            AiohttpTransport(client.session),
            policy=Never(),
            last_event_id="10",
        )
        records = [r async for r in session.events()]
        assert [r.id for r in records] == ["11", "12"]
        assert session.last_event_id == "12"

    @pytest.mark.asyncio
    async def test_server_error_surfaced_under_never(self, client):
        session = StreamSession(
            str(client.make_url("/down")),
            AiohttpTransport(client.session),
            policy=Never(),
        )
        with pytest.raises(TransportError) as exc_info:
            [r async for r in session.events()]
        assert exc_info.value.status_code == 503
