from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class IndicatorModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class IndicatorResultBase(IndicatorModel):
    timeframe: int = Field(description="Candle period in seconds")
    timestamps: list[int] = Field(description="Candle time of each series entry")
    history_size: int = Field(description="Number of entries in the primary series")


class RSIResult(IndicatorResultBase):
    indicator: Literal["RSI"] = "RSI"
    rsi: list[float]
    current: float = 50.0


class MACDValues(IndicatorModel):
    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


class MACDResult(IndicatorResultBase):
    indicator: Literal["MACD"] = "MACD"
    macd: list[float]
    signal: list[float]
    histogram: list[float]
    current: MACDValues = MACDValues()


class BollingerValues(IndicatorModel):
    upper: float = 0.0
    middle: float = 0.0
    lower: float = 0.0


class BollingerResult(IndicatorResultBase):
    indicator: Literal["BOLLINGER"] = "BOLLINGER"
    upper: list[float]
    middle: list[float]
    lower: list[float]
    current: BollingerValues = BollingerValues()


class StochasticValues(IndicatorModel):
    k: float = 50.0
    d: float = 50.0


class StochasticResult(IndicatorResultBase):
    indicator: Literal["STOCHASTIC"] = "STOCHASTIC"
    k: list[float]
    d: list[float]
    current: StochasticValues = StochasticValues()


class ADXValues(IndicatorModel):
    adx: float = 0.0
    plus_di: float = 0.0
    minus_di: float = 0.0


class ADXResult(IndicatorResultBase):
    indicator: Literal["ADX"] = "ADX"
    adx: list[float]
    plus_di: list[float]
    minus_di: list[float]
    current: ADXValues = ADXValues()


class ATRResult(IndicatorResultBase):
    indicator: Literal["ATR"] = "ATR"
    atr: list[float]
    current: float = 0.0


class SMAResult(IndicatorResultBase):
    indicator: Literal["SMA"] = "SMA"
    sma: list[float]
    current: float = 0.0


class EMAResult(IndicatorResultBase):
    indicator: Literal["EMA"] = "EMA"
    ema: list[float]
    current: float = 0.0


class IchimokuValues(IndicatorModel):
    tenkan: float = 0.0
    kijun: float = 0.0
    senkou_a: float = 0.0
    senkou_b: float = 0.0
    chikou: float = 0.0


class IchimokuResult(IndicatorResultBase):
    indicator: Literal["ICHIMOKU"] = "ICHIMOKU"
    tenkan: list[float]
    kijun: list[float]
    senkou_a: list[float]
    senkou_b: list[float]
    chikou: list[float]
    current: IchimokuValues = IchimokuValues()


IndicatorResult = Annotated[
    Union[
        RSIResult,
        MACDResult,
        BollingerResult,
        StochasticResult,
        ADXResult,
        ATRResult,
        SMAResult,
        EMAResult,
        IchimokuResult,
    ],
    Field(discriminator="indicator"),
]
