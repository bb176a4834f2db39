import logging
import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class BaseEvent(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        allow_inf_nan=False,
    )


class Candle(BaseEvent):
    time: int = Field(description="Bucket start, unix seconds")
    open: float = Field(description="First price in the bucket")
    high: float = Field(description="Highest price in the bucket")
    low: float = Field(description="Lowest price in the bucket")
    close: float = Field(description="Last price in the bucket")
    volume: Optional[int] = Field(default=None, description="Tick count or traded volume")

    @field_validator("time", mode="before")
    @classmethod
    def floor_time(cls, value: Any) -> Any:
        if isinstance(value, float) and math.isfinite(value):
            return math.floor(value)
        return value

    @field_validator("volume", mode="before")
    @classmethod
    def coerce_volume(cls, value: Any) -> Any:
        if isinstance(value, float):
            return int(value) if math.isfinite(value) else None
        return value

    @model_validator(mode="after")
    def check_ohlc(self) -> "Candle":
        if not (self.low <= min(self.open, self.close) <= max(self.open, self.close) <= self.high):
            raise ValueError(
                f"OHLC invariant violated: o={self.open} h={self.high} l={self.low} c={self.close}"
            )
        return self


class Tick(BaseEvent):
    asset: str
    time: float
    price: float


class RealtimePrice(BaseEvent):
    asset: str
    time: float
    price: float


class SentimentValues(BaseEvent):
    buy: float = 0
    sell: float = 0


class MarketSentiment(BaseEvent):
    asset: str
    sentiment: SentimentValues
    timestamp: int


class TradingSignal(BaseEvent):
    asset: str
    direction: Optional[str] = None
    strength: float = 0
    timestamp: int
    timeframe: int = 60


class CurrentCandle(BaseEvent):
    """Most recent candle of an asset with its bucket boundaries."""

    symbol: str
    open: float
    close: float
    high: float
    low: float
    timestamp: int
    opening: int = Field(description="Bucket start, unix seconds")
    closing: int = Field(description="Bucket end, unix seconds")
    remaining: int = Field(description="Seconds until closing; negative once the bucket elapsed")
