"""Tests for event records and payload codecs."""

from dataclasses import FrozenInstanceError

import pytest
from pydantic import BaseModel

from ssekit.errors import PayloadError
from ssekit.payload import JsonPayloadCodec
from ssekit.protocol.event import EventRecord, TypedEvent


class Tick(BaseModel):
    seq: int
    label: str


class TestEventRecord:
    def test_defaults(self):
        record = EventRecord(data="x")
        assert record.id is None
        assert record.event is None
        assert record.retry is None

    def test_immutable(self):
        record = EventRecord(data="x")
        with pytest.raises(FrozenInstanceError):
            record.data = "y"  # type: ignore[misc]

    def test_negative_retry_rejected(self):
        with pytest.raises(ValueError):
            EventRecord(data="x", retry=-1)

    def test_null_byte_id_rejected(self):
        with pytest.raises(ValueError):
            EventRecord(data="x", id="a\0b")

    @pytest.mark.parametrize("value", ["a\nb", "a\rb"])
    def test_line_breaks_rejected(self, value):
        with pytest.raises(ValueError):
            EventRecord(data="x", id=value)
        with pytest.raises(ValueError):
            EventRecord(data="x", event=value)

    def test_to_bytes(self):
        assert EventRecord(data="hi", event="e").to_bytes() == b"event: e\ndata: hi\n\n"

    def test_decode_payload_json(self):
        record = EventRecord(data='{"seq": 1, "label": "one"}')
        assert record.decode_payload(Tick) == Tick(seq=1, label="one")

    def test_decode_payload_builtin_shape(self):
        assert EventRecord(data="[1, 2, 3]").decode_payload(list[int]) == [1, 2, 3]

    def test_decode_payload_invalid(self):
        with pytest.raises(PayloadError):
            EventRecord(data="not json").decode_payload(Tick)

    def test_typed_event(self):
        typed = TypedEvent(payload=Tick(seq=2, label="b"), id="2", event="tick")
        assert typed.payload.seq == 2
        assert typed.event == "tick"


class TestJsonPayloadCodec:
    def test_encode_model(self):
        codec = JsonPayloadCodec()
        assert codec.encode(Tick(seq=1, label="x")) == '{"seq":1,"label":"x"}'

    def test_encode_dict(self):
        assert JsonPayloadCodec().encode({"a": [1, None]}) == '{"a":[1,null]}'

    def test_round_trip(self):
        codec = JsonPayloadCodec()
        tick = Tick(seq=3, label="c")
        assert codec.decode(codec.encode(tick), Tick) == tick

    def test_shape_mismatch(self):
        with pytest.raises(PayloadError):
            JsonPayloadCodec().decode('{"seq": "nope"}', Tick)

    def test_unserializable(self):
        with pytest.raises(PayloadError):
            JsonPayloadCodec().encode(object())
