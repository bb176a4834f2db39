from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from marketstream.analytics.indicators.averages import as_array, sma


def bollinger_bands(
    closes: Sequence[float], period: int = 20, std: float = 2
) -> tuple[list[float], list[float], list[float]]:
    """Return ``(upper, middle, lower)`` using the population standard deviation."""
    data = as_array(closes)
    if period <= 0 or len(data) < period:
        return [], [], []

    windows = sliding_window_view(data, period)
    middle = windows.mean(axis=1)
    deviation = windows.std(axis=1)

    return (
        (middle + std * deviation).tolist(),
        middle.tolist(),
        (middle - std * deviation).tolist(),
    )


def true_range(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float]) -> np.ndarray:
    """Per-bar true range starting at the second bar."""
    high, low, close = as_array(highs), as_array(lows), as_array(closes)
    n = min(len(high), len(low), len(close))
    if n < 2:
        return np.empty(0, dtype=float)

    high, low, prev_close = high[1:n], low[1:n], close[: n - 1]
    return np.maximum.reduce(
        [high - low, np.abs(high - prev_close), np.abs(low - prev_close)]
    )


def atr(
    highs: Sequence[float], lows: Sequence[float], closes: Sequence[float], period: int = 14
) -> list[float]:
    return sma(true_range(highs, lows, closes), period)
