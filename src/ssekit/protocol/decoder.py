"""Incremental SSE line protocol decoder.

Turns raw byte chunks into event records. Chunks may split lines, fields or
multi-byte characters anywhere; state carries over between calls. Use one
decoder per connection attempt.
"""

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass, field

from ssekit.errors import InvalidEncodingError

from .event import EventRecord

_BOM = "\ufeff"
_LINE_END = re.compile(r"\r\n|\r|\n")


@dataclass
class _EventBuilder:
    """Fields of the event currently being assembled."""

    id: str | None = None
    event: str | None = None
    data_lines: list[str] = field(default_factory=list)
    retry: int | None = None

    def apply(self, name: str, value: str) -> None:
        if name == "id":
            if "\0" not in value:
                self.id = value
        elif name == "event":
            self.event = value
        elif name == "data":
            self.data_lines.append(value)
        elif name == "retry":
            if value.isascii() and value.isdigit():
                try:
                    self.retry = int(value)
                except ValueError:
                    # Past the interpreter's int conversion limit
                    pass

    def dispatch(self) -> EventRecord | None:
        """Build the pending record, if any, and reset. The id persists."""
        record = None
        if self.data_lines:
            record = EventRecord(
                data="\n".join(self.data_lines),
                id=self.id,
                event=self.event,
                retry=self.retry,
            )
        self.event = None
        self.data_lines = []
        self.retry = None
        return record


class EventDecoder:
    """Incremental SSE decoder that processes byte chunks into records."""

    def __init__(self) -> None:
        self._text_decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""
        self._bom_checked = False
        # Previous chunk ended on "\r"; a leading "\n" completes that CRLF.
        self._skip_lf = False
        self._builder = _EventBuilder()

    @property
    def last_event_id(self) -> str | None:
        return self._builder.id

    def decode(self, chunk: bytes) -> list[EventRecord]:
        """Feed a chunk of bytes, return any complete records.

        Raises InvalidEncodingError if the chunk is not valid UTF-8, in which
        case the decoder state is left as it was before the call. A partial
        character held over from the previous chunk is discarded when this
        chunk does not continue it but decodes cleanly on its own.
        """
        state = self._text_decoder.getstate()
        try:
            text = self._text_decoder.decode(chunk)
        except UnicodeDecodeError as exc:
            text = self._decode_without_pending(chunk, state, exc)

        if not text:
            return []

        if not self._bom_checked:
            self._bom_checked = True
            if text.startswith(_BOM):
                text = text[1:]

        if self._skip_lf:
            self._skip_lf = False
            if text.startswith("\n"):
                text = text[1:]

        # The buffered remainder never holds a terminator, so only scan new text.
        scan_from = len(self._buffer)
        buffer = self._buffer + text
        records: list[EventRecord] = []
        line_start = 0

        while True:
            match = _LINE_END.search(buffer, scan_from)
            if match is None:
                break
            line = buffer[line_start:match.start()]
            line_start = scan_from = match.end()
            if match.group() == "\r" and match.end() == len(buffer):
                self._skip_lf = True

            record = self._process_line(line)
            if record is not None:
                records.append(record)

        self._buffer = buffer[line_start:]
        return records

    def _decode_without_pending(
        self,
        chunk: bytes,
        state: tuple[bytes, int],
        exc: UnicodeDecodeError,
    ) -> str:
        pending = state[0]
        if pending:
            self._text_decoder.reset()
            try:
                return self._text_decoder.decode(chunk)
            except UnicodeDecodeError:
                pass
        self._text_decoder.setstate(state)
        raise InvalidEncodingError(len(chunk), exc.reason) from exc

    def _process_line(self, line: str) -> EventRecord | None:
        if not line:
            # Blank line = event dispatch
            return self._builder.dispatch()

        if line.startswith(":"):
            # Comment, ignore
            return None

        field_name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        self._builder.apply(field_name, value)
        return None
