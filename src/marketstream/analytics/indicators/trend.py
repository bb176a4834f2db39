import logging
from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from marketstream.analytics.indicators.averages import as_array
from marketstream.analytics.indicators.volatility import true_range

logger = logging.getLogger(__name__)

PRECISION = 2


def wilder_smooth(values: np.ndarray, period: int) -> np.ndarray:
    """Seed with the mean of the first ``period`` values, then ``(prev * (period - 1) + x) / period``."""
    if period <= 0 or len(values) < period:
        return np.empty(0, dtype=float)

    out = np.empty(len(values) - period + 1, dtype=float)
    out[0] = values[:period].mean()
    for i, value in enumerate(values[period:], start=1):
        out[i] = (out[i - 1] * (period - 1) + value) / period
    return out


def adx(
    highs: Sequence[float], lows: Sequence[float], closes: Sequence[float], period: int = 14
) -> tuple[list[float], list[float], list[float]]:
    """Return ``(adx, plus_di, minus_di)`` rounded to two decimals.

    A zero denominator yields 0. ``adx`` stays empty until there are
    ``period`` DX values to seed it.
    """
    high, low = as_array(highs), as_array(lows)
    n = min(len(high), len(low), len(closes))
    if period <= 0 or n < period + 1:
        return [], [], []

    tr = true_range(highs, lows, closes)
    up_move = high[1:n] - high[: n - 1]
    down_move = low[: n - 1] - low[1:n]
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)

    tr_avg = wilder_smooth(tr, period)
    plus_avg = wilder_smooth(plus_dm, period)
    minus_avg = wilder_smooth(minus_dm, period)

    with np.errstate(divide="ignore", invalid="ignore"):
        plus_di = np.where(tr_avg > 0, plus_avg * 100.0 / tr_avg, 0.0)
        minus_di = np.where(tr_avg > 0, minus_avg * 100.0 / tr_avg, 0.0)
        di_sum = plus_di + minus_di
        dx = np.where(di_sum > 0, np.abs(plus_di - minus_di) * 100.0 / di_sum, 0.0)

    adx_line = wilder_smooth(dx, period)

    return (
        np.round(adx_line, PRECISION).tolist(),
        np.round(plus_di, PRECISION).tolist(),
        np.round(minus_di, PRECISION).tolist(),
    )


def donchian(high: np.ndarray, low: np.ndarray, period: int) -> np.ndarray:
    """Midpoint of the highest high and lowest low over windows ``[i, i + period)``."""
    if period <= 0 or len(high) < period:
        return np.empty(0, dtype=float)

    highest = sliding_window_view(high, period).max(axis=1)
    lowest = sliding_window_view(low, period).min(axis=1)
    return (highest + lowest) / 2


def ichimoku(
    highs: Sequence[float],
    lows: Sequence[float],
    tenkan_period: int = 9,
    kijun_period: int = 26,
    senkou_b_period: int = 52,
) -> dict[str, list[float]]:
    """Tenkan, Kijun and Senkou B lines anchored at the oldest bar.

    Each line has ``len(highs) - period + 1`` values. Senkou A averages
    Tenkan and Kijun over their common prefix; Chikou is ``lows[kijun_period:]``.
    Every line is empty when the input is shorter than ``senkou_b_period``.
    """
    high, low = as_array(highs), as_array(lows)
    n = min(len(high), len(low))
    lines: dict[str, list[float]] = {
        "tenkan": [],
        "kijun": [],
        "senkou_a": [],
        "senkou_b": [],
        "chikou": [],
    }
    if n < senkou_b_period:
        return lines

    high, low = high[:n], low[:n]
    tenkan = donchian(high, low, tenkan_period)
    kijun = donchian(high, low, kijun_period)
    senkou_b = donchian(high, low, senkou_b_period)

    common = min(len(tenkan), len(kijun))
    senkou_a = (tenkan[:common] + kijun[:common]) / 2
    chikou = low[kijun_period:]

    for name, line in (
        ("tenkan", tenkan),
        ("kijun", kijun),
        ("senkou_a", senkou_a),
        ("senkou_b", senkou_b),
        ("chikou", chikou),
    ):
        lines[name] = np.round(line, PRECISION).tolist()
    return lines
