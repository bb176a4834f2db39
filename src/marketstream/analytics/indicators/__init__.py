from marketstream.analytics.indicators.averages import ema, sma
from marketstream.analytics.indicators.momentum import macd, rsi, stochastic
from marketstream.analytics.indicators.trend import adx, ichimoku
from marketstream.analytics.indicators.volatility import atr, bollinger_bands

__all__ = [
    "sma",
    "ema",
    "rsi",
    "macd",
    "stochastic",
    "bollinger_bands",
    "atr",
    "adx",
    "ichimoku",
]
