import logging
from typing import Optional

logger = logging.getLogger(__name__)


class MarketStreamError(Exception):
    """Base exception for the market stream client."""

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.original_exception = original_exception

    def __str__(self) -> str:
        base_message = super().__str__()
        if self.original_exception is not None:
            return f"{base_message} ({type(self.original_exception).__name__}: {self.original_exception})"
        return base_message


class FrameDecodeError(MarketStreamError):
    """Raised when an inbound frame cannot be decoded."""

    def __init__(self, raw: str, original_exception: Optional[Exception] = None):
        preview = raw if len(raw) <= 100 else f"{raw[:100]}... ({len(raw)} chars)"
        super().__init__(f"Failed to decode frame: {preview!r}", original_exception)
        self.raw = raw


class NoCandlesAvailableError(MarketStreamError):
    """Raised when a one-shot computation could not retrieve any candles."""

    def __init__(self, asset: str, timeframe: int):
        super().__init__(
            f"No candles available for indicator calculation ({asset}, {timeframe}s)"
        )
        self.asset = asset
        self.timeframe = timeframe


class UnsupportedIndicatorError(MarketStreamError):
    """Raised when an unknown indicator family is requested."""

    def __init__(self, indicator: str):
        super().__init__(f"Unsupported indicator: {indicator}")
        self.indicator = indicator


class MessageProcessingError(MarketStreamError):
    """Custom exception for errors during message processing."""


__all__ = [
    "MarketStreamError",
    "FrameDecodeError",
    "NoCandlesAvailableError",
    "UnsupportedIndicatorError",
    "MessageProcessingError",
]
