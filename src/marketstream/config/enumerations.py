import logging
from enum import Enum

logger = logging.getLogger(__name__)


class FrameType(Enum):
    Handshake = "handshake"
    Ping = "ping"
    Pong = "pong"
    NamespaceConnect = "namespace_connect"
    NamespaceDisconnect = "namespace_disconnect"
    Event = "event"
    RawPayload = "raw_payload"


class ConnectionState(Enum):
    """Defines possible states for the streaming connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class Channels(str, Enum):
    """Well-known channel keys. Any explicit event name is also a valid channel."""

    Tick = "tick"
    Instruments = "instruments"
    Candles = "candles"
    Message = "message"
    Price = "price"
    Sentiment = "sentiment"
    Signals = "signals"
    InstrumentsUpdate = "instruments/update"
    Authorization = "s_authorization"
    AuthorizationReject = "authorization/reject"


class IndicatorType(str, Enum):
    RSI = "RSI"
    MACD = "MACD"
    BOLLINGER = "BOLLINGER"
    STOCHASTIC = "STOCHASTIC"
    ADX = "ADX"
    ATR = "ATR"
    SMA = "SMA"
    EMA = "EMA"
    ICHIMOKU = "ICHIMOKU"


class ReconnectReason(Enum):
    CONNECTION_DROPPED = "connection_dropped"
    TIMEOUT = "timeout"
    MANUAL_TRIGGER = "manual_trigger"
