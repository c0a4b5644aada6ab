"""Structured payload codecs for event data.

The codec turns the text of an event's ``data`` field into a typed value and
back. JSON via pydantic is the default; anything implementing
``PayloadCodec`` can be passed instead.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Protocol

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from .errors import PayloadError


class PayloadCodec(Protocol):
    def decode(self, text: str, shape: Any) -> Any: ...

    def encode(self, value: Any) -> str: ...


@lru_cache(maxsize=256)
def _adapter(shape: Any) -> TypeAdapter[Any]:
    return TypeAdapter(shape)


class JsonPayloadCodec:
    """JSON payloads validated against any pydantic-compatible shape."""

    def decode(self, text: str, shape: Any) -> Any:
        try:
            return _adapter(shape).validate_json(text)
        except ValidationError as exc:
            raise PayloadError(f"Invalid payload for {shape!r}: {exc}") from exc

    def encode(self, value: Any) -> str:
        try:
            return to_json(value).decode()
        except PydanticSerializationError as exc:
            raise PayloadError(f"Cannot serialize {type(value).__name__}: {exc}") from exc
