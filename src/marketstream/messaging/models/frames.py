from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from marketstream.config.enumerations import FrameType


class BaseFrame(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    type: FrameType


class HandshakeFrame(BaseFrame):
    type: Literal[FrameType.Handshake] = FrameType.Handshake
    payload: Optional[dict[str, Any]] = Field(
        default=None, description="Open packet data (sid, pingInterval, ...) when present"
    )


class PingFrame(BaseFrame):
    type: Literal[FrameType.Ping] = FrameType.Ping


class PongFrame(BaseFrame):
    type: Literal[FrameType.Pong] = FrameType.Pong


class NamespaceConnectFrame(BaseFrame):
    type: Literal[FrameType.NamespaceConnect] = FrameType.NamespaceConnect


class NamespaceDisconnectFrame(BaseFrame):
    type: Literal[FrameType.NamespaceDisconnect] = FrameType.NamespaceDisconnect


class EventFrame(BaseFrame):
    type: Literal[FrameType.Event] = FrameType.Event
    name: str = Field(description="Event name, used verbatim as the channel key")
    payload: Any = None


class RawPayloadFrame(BaseFrame):
    type: Literal[FrameType.RawPayload] = FrameType.RawPayload
    payload: Any = None
    anonymous: bool = Field(
        default=False,
        description="True when the payload arrived with 42 framing but without an event name",
    )


Frame = Union[
    HandshakeFrame,
    PingFrame,
    PongFrame,
    NamespaceConnectFrame,
    NamespaceDisconnectFrame,
    EventFrame,
    RawPayloadFrame,
]
