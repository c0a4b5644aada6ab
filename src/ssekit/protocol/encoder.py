"""Serialize event records to SSE wire format."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .event import EventRecord


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def encode_event(record: EventRecord) -> bytes:
    """Encode one record: id, event, retry, data lines, blank terminator."""
    lines: list[str] = []
    if record.id is not None:
        lines.append(f"id: {record.id}")
    if record.event is not None:
        lines.append(f"event: {record.event}")
    if record.retry is not None:
        lines.append(f"retry: {record.retry}")
    for data_line in normalize_newlines(record.data).split("\n"):
        lines.append(f"data: {data_line}")
    lines.append("")  # blank line terminates event
    return ("\n".join(lines) + "\n").encode()


def encode_comment(text: str = "") -> bytes:
    """Encode a comment block, typically sent as a keep-alive ping."""
    lines = [f": {line}" if line else ":" for line in normalize_newlines(text).split("\n")]
    lines.append("")
    return ("\n".join(lines) + "\n").encode()
