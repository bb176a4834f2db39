import logging
from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

logger = logging.getLogger(__name__)


def as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def sma(values: Sequence[float], period: int) -> list[float]:
    """Trailing simple moving average, one value per full window (``n - period + 1``)."""
    data = as_array(values)
    if period <= 0 or len(data) < period:
        return []

    return sliding_window_view(data, period).mean(axis=1).tolist()


def ema(values: Sequence[float], period: int) -> list[float]:
    """Exponential moving average with ``k = 2 / (period + 1)``, one value per input.

    Seeded with the first finite value. A non-finite input carries the
    previous average forward.
    """
    data = as_array(values)
    if period <= 0 or len(data) == 0:
        return []

    finite = np.isfinite(data)
    seed = float(data[finite][0]) if finite.any() else 0.0
    alpha = 2.0 / (period + 1.0)

    out = np.empty(len(data), dtype=float)
    out[0] = seed
    for i in range(1, len(data)):
        price = data[i]
        out[i] = alpha * price + (1 - alpha) * out[i - 1] if finite[i] else out[i - 1]

    return out.tolist()
