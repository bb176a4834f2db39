import logging
from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from marketstream.analytics.indicators.averages import as_array, ema, sma

logger = logging.getLogger(__name__)


def rsi(closes: Sequence[float], period: int = 14) -> list[float]:
    """Relative Strength Index over each window of ``period + 1`` closes.

    Gains and losses are summed per window and divided by ``period``. A
    window with no losses scores 100.
    """
    data = as_array(closes)
    if period <= 0 or len(data) < period + 1:
        return []

    deltas = np.diff(sliding_window_view(data, period + 1), axis=1)
    avg_gain = np.where(deltas > 0, deltas, 0.0).sum(axis=1) / period
    avg_loss = np.where(deltas < 0, -deltas, 0.0).sum(axis=1) / period

    with np.errstate(divide="ignore", invalid="ignore"):
        values = np.where(avg_loss == 0, 100.0, 100.0 - 100.0 / (1.0 + avg_gain / avg_loss))

    return values.tolist()


def macd(
    closes: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[list[float], list[float], list[float]]:
    """Return ``(macd_line, signal_line, histogram)``.

    The histogram pairs each signal value with the macd value at the same
    offset from the end of the series.
    """
    fast = ema(closes, fast_period)
    slow = ema(closes, slow_period)
    length = min(len(fast), len(slow))
    if length == 0:
        return [], [], []

    macd_line = np.asarray(fast[:length]) - np.asarray(slow[:length])
    signal_line = np.asarray(ema(macd_line, signal_period))
    histogram = macd_line[len(macd_line) - len(signal_line) :] - signal_line

    return macd_line.tolist(), signal_line.tolist(), histogram.tolist()


def stochastic(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    k_period: int = 14,
    d_period: int = 3,
) -> tuple[list[float], list[float]]:
    """Return ``(%K, %D)``; a window with zero range scores 50."""
    high, low, close = as_array(highs), as_array(lows), as_array(closes)
    n = min(len(high), len(low), len(close))
    if k_period <= 0 or n < k_period:
        return [], []

    highest = sliding_window_view(high[:n], k_period).max(axis=1)
    lowest = sliding_window_view(low[:n], k_period).min(axis=1)
    last = close[k_period - 1 : n]
    spread = highest - lowest

    with np.errstate(divide="ignore", invalid="ignore"):
        k = np.where(spread == 0, 50.0, (last - lowest) / spread * 100.0)

    k_values = k.tolist()
    return k_values, sma(k_values, d_period)
