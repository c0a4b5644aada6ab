"""Entry point: python -m ssekit URL"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from .client.session import StreamSession
from .client.transport import HttpxTransport
from .config import SSEConfig
from .errors import TransportError
from .logging_config import setup_logging


def _parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


def main() -> None:
    parser = argparse.ArgumentParser(description="Tail a Server-Sent Events stream")
    parser.add_argument("url", help="Event stream URL")
    parser.add_argument(
        "-H", "--header", action="append", type=_parse_header, default=[],
        help="Extra request header, 'Name: value' (repeatable)",
    )
    parser.add_argument("--last-event-id", default=None, help="Resume after this event id")
    parser.add_argument(
        "--reconnect", choices=["never", "immediate", "exponential"], default=None,
        help="Reconnect policy (default: exponential)",
    )
    parser.add_argument("--event", default=None, help="Only print events of this type")
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    args = parser.parse_args()

    config = SSEConfig()
    if args.reconnect:
        config.reconnect = args.reconnect
    if args.log_level:
        config.log_level = args.log_level

    setup_logging(config.log_dir, config.log_level, config.json_logs)

    try:
        asyncio.run(_tail(args, config))
    except KeyboardInterrupt:
        pass
    except TransportError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


async def _tail(args: argparse.Namespace, config: SSEConfig) -> None:
    transport = HttpxTransport(
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
    )
    session = StreamSession.from_config(
        args.url, config, transport=transport, headers=dict(args.header),
    )
    session.last_event_id = args.last_event_id
    try:
        async with session.events() as stream:
            async for record in stream:
                if args.event is not None and record.event != args.event:
                    continue
                print(json.dumps({
                    "id": record.id,
                    "event": record.event,
                    "data": record.data,
                    "retry": record.retry,
                }), flush=True)
    finally:
        await transport.aclose()


if __name__ == "__main__":
    main()
