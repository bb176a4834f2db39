import json
import logging
from typing import Any, Optional, Union

from marketstream.common.exceptions import FrameDecodeError
from marketstream.messaging.models.frames import (
    EventFrame,
    Frame,
    HandshakeFrame,
    NamespaceConnectFrame,
    NamespaceDisconnectFrame,
    PingFrame,
    PongFrame,
    RawPayloadFrame,
)

logger = logging.getLogger(__name__)

EVENT_PREFIX = "42"
RAW_PAYLOAD_MARKER = chr(4)

CONTROL_FRAMES: dict[str, Frame] = {
    "0": HandshakeFrame(),
    "2": PingFrame(),
    "3": PongFrame(),
    "40": NamespaceConnectFrame(),
    "41": NamespaceDisconnectFrame(),
}

# Engine.IO close, upgrade and noop packets carry nothing for subscribers
IGNORED_PACKETS = frozenset({"1", "5", "6"})


class FrameCodec:
    """Translate between wire text and typed frames.

    Inbound precedence:

    ``0`` / ``2`` / ``3`` / ``40`` / ``41`` are exact control frames,
    a leading control byte (ordinal 4) carries a raw JSON payload,
    ``42`` carries a JSON array ``["name", payload?]`` and anything else is
    parsed as bare JSON. The Engine.IO packets ``1`` / ``5`` / ``6`` are
    dropped before that fallback would read them as numbers.

    ``decode`` never raises: malformed text is logged, counted and dropped.
    """

    def __init__(self) -> None:
        self.decode_errors = 0

    def encode_event(self, name: str, payload: Any = None) -> str:
        body = [name] if payload is None else [name, payload]
        return EVENT_PREFIX + json.dumps(body, separators=(",", ":"))

    def encode_ping(self) -> str:
        return "2"

    def encode_pong(self) -> str:
        return "3"

    def decode(self, raw: Union[str, bytes]) -> Optional[Frame]:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8", errors="replace")

        if raw in IGNORED_PACKETS:
            logger.debug("Ignoring transport packet %r", raw)
            return None

        try:
            return self.decode_strict(raw)
        except FrameDecodeError as e:
            self.decode_errors += 1
            logger.warning("%s", e)
            return None

    def decode_strict(self, raw: str) -> Frame:
        """Decode one frame, raising FrameDecodeError on malformed JSON."""
        if raw in CONTROL_FRAMES:
            return CONTROL_FRAMES[raw]

        if raw.startswith("0{"):
            payload = self._loads(raw, raw[1:])
            return HandshakeFrame(payload=payload if isinstance(payload, dict) else None)

        if raw.startswith(RAW_PAYLOAD_MARKER):
            return RawPayloadFrame(payload=self._loads(raw, raw[1:]))

        if raw.startswith(EVENT_PREFIX):
            data = self._loads(raw, raw[len(EVENT_PREFIX) :])
            if isinstance(data, list) and data and isinstance(data[0], str):
                return EventFrame(name=data[0], payload=data[1] if len(data) > 1 else None)
            return RawPayloadFrame(payload=data, anonymous=True)

        return RawPayloadFrame(payload=self._loads(raw, raw))

    @staticmethod
    def _loads(raw: str, body: str) -> Any:
        try:
            return json.loads(body)
        except (json.JSONDecodeError, ValueError) as e:
            raise FrameDecodeError(raw, e) from e
