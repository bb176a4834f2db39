from marketstream.config.configurations import (
    DEFAULT_INDICATOR_PARAMS,
    MAX_CANDLES,
    TIMEFRAMES,
    ConnectionConfig,
)
from marketstream.config.enumerations import (
    Channels,
    ConnectionState,
    FrameType,
    IndicatorType,
    ReconnectReason,
)

__all__ = [
    "DEFAULT_INDICATOR_PARAMS",
    "MAX_CANDLES",
    "TIMEFRAMES",
    "ConnectionConfig",
    "Channels",
    "ConnectionState",
    "FrameType",
    "IndicatorType",
    "ReconnectReason",
]
