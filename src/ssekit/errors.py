"""Error hierarchy for the SSE engine."""

from __future__ import annotations


class SSEError(Exception):
    """Base class for all ssekit errors."""


class DecodeError(SSEError):
    """Raised when a chunk cannot be turned into protocol text."""


class InvalidEncodingError(DecodeError):
    """Raised when a chunk is not valid UTF-8.

    Only the offending chunk is lost; the decoder keeps its prior state.
    """

    def __init__(self, chunk_size: int, reason: str) -> None:
        self.chunk_size = chunk_size
        self.reason = reason
        super().__init__(f"Invalid UTF-8 in {chunk_size}-byte chunk: {reason}")


class TransportError(SSEError):
    """Raised when the byte source fails to open or breaks mid-read."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class StreamClosedError(SSEError):
    """Raised when sending on a writer that was already closed."""

    def __init__(self) -> None:
        super().__init__("Stream is closed")


class PayloadError(SSEError):
    """Raised when event data cannot be converted to or from a payload."""
