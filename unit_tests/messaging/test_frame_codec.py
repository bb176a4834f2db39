"""Unit tests for FrameCodec encoding and decoding."""

import json
import logging

import pytest

from marketstream.config.enumerations import FrameType
from marketstream.messaging.codec import FrameCodec
from marketstream.messaging.models.frames import EventFrame, HandshakeFrame, RawPayloadFrame


@pytest.fixture
def codec():
    return FrameCodec()


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def test_encode_event_without_payload(codec):
    assert codec.encode_event("tick") == '42["tick"]'


def test_encode_event_with_payload(codec):
    message = codec.encode_event("instruments/update", {"asset": "EURUSD", "period": 60})

    assert message.startswith("42")
    assert json.loads(message[2:]) == ["instruments/update", {"asset": "EURUSD", "period": 60}]


def test_encode_event_with_string_payload(codec):
    assert codec.encode_event("depth/follow", "EURUSD") == '42["depth/follow","EURUSD"]'


def test_encode_keepalive_frames(codec):
    assert codec.encode_ping() == "2"
    assert codec.encode_pong() == "3"


# ---------------------------------------------------------------------------
# Control frames
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0", FrameType.Handshake),
        ("2", FrameType.Ping),
        ("3", FrameType.Pong),
        ("40", FrameType.NamespaceConnect),
        ("41", FrameType.NamespaceDisconnect),
    ],
)
def test_decode_control_frames(codec, raw, expected):
    frame = codec.decode(raw)

    assert frame is not None
    assert frame.type == expected


def test_decode_handshake_with_open_packet(codec):
    frame = codec.decode('0{"sid":"abc","pingInterval":25000}')

    assert isinstance(frame, HandshakeFrame)
    assert frame.payload == {"sid": "abc", "pingInterval": 25000}


def test_decode_accepts_bytes(codec):
    frame = codec.decode(b"3")

    assert frame is not None
    assert frame.type == FrameType.Pong


# ---------------------------------------------------------------------------
# Payload frames
# ---------------------------------------------------------------------------


def test_decode_named_event(codec):
    frame = codec.decode('42["tick",["EURUSD",1700000000,1.1]]')

    assert isinstance(frame, EventFrame)
    assert frame.name == "tick"
    assert frame.payload == ["EURUSD", 1700000000, 1.1]


def test_decode_named_event_without_payload(codec):
    frame = codec.decode('42["s_authorization"]')

    assert isinstance(frame, EventFrame)
    assert frame.name == "s_authorization"
    assert frame.payload is None


def test_decode_anonymous_42_payload(codec):
    frame = codec.decode("42[[1, 2], [3, 4]]")

    assert isinstance(frame, RawPayloadFrame)
    assert frame.anonymous is True
    assert frame.payload == [[1, 2], [3, 4]]


def test_decode_control_byte_payload(codec):
    frame = codec.decode(chr(4) + '{"asset":"EURUSD","candles":[]}')

    assert isinstance(frame, RawPayloadFrame)
    assert frame.anonymous is False
    assert frame.payload == {"asset": "EURUSD", "candles": []}


def test_decode_bare_json(codec):
    frame = codec.decode("1.2345")

    assert isinstance(frame, RawPayloadFrame)
    assert frame.payload == 1.2345


@pytest.mark.parametrize("raw", ["1", "5", "6", b"6"])
def test_decode_drops_engine_io_packets(codec, raw):
    assert codec.decode(raw) is None
    assert codec.decode_errors == 0


def test_decode_bare_json_number_still_routes_after_noop(codec):
    assert codec.decode("6") is None

    frame = codec.decode("16")

    assert isinstance(frame, RawPayloadFrame)
    assert frame.payload == 16


# ---------------------------------------------------------------------------
# Malformed input
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("raw", ['42["tick",', chr(4) + "{not json", "hello", "42"])
def test_decode_malformed_returns_none(codec, raw):
    assert codec.decode(raw) is None


def test_decode_malformed_logs_warning_and_counts(codec, caplog):
    with caplog.at_level(logging.WARNING, logger="marketstream.messaging.codec"):
        assert codec.decode("42{broken") is None
        assert codec.decode("also broken") is None

    assert codec.decode_errors == 2
    assert "Failed to decode frame" in caplog.text


def test_decode_continues_after_malformed_frame(codec):
    assert codec.decode("{{") is None

    frame = codec.decode('42["candles",{"asset":"EURUSD"}]')

    assert isinstance(frame, EventFrame)
    assert frame.name == "candles"
