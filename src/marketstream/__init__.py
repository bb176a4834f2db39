from marketstream.client import MarketStreamClient
from marketstream.config.configurations import ConnectionConfig
from marketstream.config.enumerations import ConnectionState, IndicatorType
from marketstream.messaging.models.events import Candle

__all__ = [
    "MarketStreamClient",
    "ConnectionConfig",
    "ConnectionState",
    "IndicatorType",
    "Candle",
]
