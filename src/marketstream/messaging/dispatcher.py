import logging
import time
from dataclasses import dataclass
from numbers import Number
from typing import TYPE_CHECKING, Any, Optional

from marketstream.config.enumerations import Channels
from marketstream.connections.subscription import Callback, Cancel, SubscriptionRegistry
from marketstream.messaging.models.frames import EventFrame, Frame, RawPayloadFrame

if TYPE_CHECKING:
    from marketstream.connections.sockets import ConnectionSupervisor

logger = logging.getLogger(__name__)

INSTRUMENTS_MIN_LENGTH = 50


@dataclass
class DispatchMetrics:
    total_frames: int = 0
    deliveries: int = 0
    unrouted: int = 0
    last_frame_time: float = 0

    def update(self, deliveries: int) -> None:
        self.total_frames += 1
        self.deliveries += deliveries
        self.last_frame_time = time.time()
        if not deliveries:
            self.unrouted += 1


def is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def classify(frame: Frame) -> list[tuple[str, Any]]:
    """Map a frame to the channels that should receive its payload.

    Rules are checked in order and the first match wins:

    1. Named event: the event name, verbatim.
    2. Array longer than 50 whose head is an array, or any such array that
       arrived as an anonymous ``42`` payload: ``instruments``.
    3. One-element array wrapping ``[str, ...]``: ``tick`` with the inner array.
    4. Object with ``candles``/``history``, or with ``open``, ``close`` and
       ``asset``: ``candles``.
    5. Plain number: ``tick``.
    6. Anything else: ``message``.

    Every object payload also reaches ``message``, including the ones
    rule 4 routed to ``candles``.
    """
    if isinstance(frame, EventFrame):
        return [(frame.name, frame.payload)]

    if not isinstance(frame, RawPayloadFrame):
        return []

    payload = frame.payload
    anonymous = frame.anonymous

    if isinstance(payload, list):
        if len(payload) > INSTRUMENTS_MIN_LENGTH and (
            isinstance(payload[0], list) or anonymous
        ):
            return [(Channels.Instruments.value, payload)]

        if (
            len(payload) == 1
            and isinstance(payload[0], list)
            and len(payload[0]) >= 2
            and isinstance(payload[0][0], str)
        ):
            return [(Channels.Tick.value, payload[0])]

        return [(Channels.Message.value, payload)]

    if isinstance(payload, dict):
        if "candles" in payload or "history" in payload or {
            "open",
            "close",
            "asset",
        } <= payload.keys():
            return [(Channels.Candles.value, payload), (Channels.Message.value, payload)]
        return [(Channels.Message.value, payload)]

    if is_number(payload):
        return [(Channels.Tick.value, payload)]

    return [(Channels.Message.value, payload)]


class ChannelDispatcher:
    """Route decoded frames to channel subscribers.

    Dispatch runs synchronously inside the socket listener, in registration
    order, over a snapshot of each channel's subscribers.
    """

    def __init__(self, registry: Optional[SubscriptionRegistry] = None) -> None:
        self.registry = registry or SubscriptionRegistry(name="dispatcher")
        self.metrics = DispatchMetrics()
        self._detach: Optional[Cancel] = None

    def subscribe(self, channel: str, callback: Callback) -> Cancel:
        return self.registry.subscribe(str(channel), callback)

    def subscriber_count(self, channel: str) -> int:
        return self.registry.count(str(channel))

    def dispatch(self, frame: Frame) -> int:
        deliveries = 0
        for channel, payload in classify(frame):
            if channel == Channels.Authorization.value:
                logger.info("Authorization accepted")
            elif channel == Channels.AuthorizationReject.value:
                logger.warning("Authorization rejected: %s", payload)

            deliveries += self.registry.publish(channel, payload)

        self.metrics.update(deliveries)
        return deliveries

    def attach(self, supervisor: "ConnectionSupervisor") -> Cancel:
        """Receive every frame the supervisor decodes."""
        if self._detach is not None:
            self._detach()
        self._detach = supervisor.on_frame(self.dispatch)
        return self._detach
