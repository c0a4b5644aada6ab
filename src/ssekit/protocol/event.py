"""Decoded SSE event records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from ssekit.payload import PayloadCodec

T = TypeVar("T")


@dataclass(frozen=True)
class EventRecord:
    """A single Server-Sent Event.

    ``retry`` is the server's reconnection time in milliseconds.
    """

    data: str
    id: str | None = None
    event: str | None = None
    retry: int | None = None

    def __post_init__(self) -> None:
        if self.retry is not None and self.retry < 0:
            raise ValueError(f"retry must be non-negative, got {self.retry}")
        if self.id is not None:
            if "\0" in self.id:
                raise ValueError("id must not contain a null byte")
            _check_single_line("id", self.id)
        if self.event is not None:
            _check_single_line("event", self.event)

    def to_bytes(self) -> bytes:
        """Serialize to SSE wire format."""
        from .encoder import encode_event

        return encode_event(self)

    def decode_payload(self, shape: Any, codec: PayloadCodec | None = None) -> Any:
        """Decode ``data`` into a value of the given shape (JSON by default)."""
        if codec is None:
            from ssekit.payload import JsonPayloadCodec

            codec = JsonPayloadCodec()
        return codec.decode(self.data, shape)


@dataclass(frozen=True)
class TypedEvent(Generic[T]):
    """An event whose data has been decoded into a typed payload."""

    payload: T
    id: str | None = None
    event: str | None = None


def _check_single_line(name: str, value: str) -> None:
    if "\n" in value or "\r" in value:
        raise ValueError(f"{name} must not contain line breaks")
