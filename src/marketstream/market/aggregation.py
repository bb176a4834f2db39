import logging
import math
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from marketstream.messaging.models.events import Candle
from marketstream.utils.helpers import floor_to_period

logger = logging.getLogger(__name__)


def is_finite_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def entry_time(entry: dict[str, Any]) -> Any:
    for field in ("time", "timestamp", "at"):
        if entry.get(field):
            return entry[field]
    return None


def parse_candle(entry: Any) -> Optional[Candle]:
    """Parse one history entry into a Candle.

    Accepts ``[time, open, close, high, low, volume?]`` tuples or objects with
    ``open``/``close`` and one of ``time``/``timestamp``/``at``. A missing
    high or low falls back to the body extreme. Returns None for entries with
    a non-finite time/open/close or an inconsistent OHLC range.
    """
    if isinstance(entry, (list, tuple)):
        if len(entry) < 5:
            return None
        time, open_, close, high, low = entry[:5]
        volume = entry[5] if len(entry) > 5 else None
    elif isinstance(entry, dict):
        if "open" not in entry or "close" not in entry:
            return None
        time = entry_time(entry)
        open_, close = entry["open"], entry["close"]
        high, low = entry.get("high"), entry.get("low")
        volume = entry.get("volume")
    else:
        return None

    if not (is_finite_number(time) and is_finite_number(open_) and is_finite_number(close)):
        return None

    if high is None:
        high = max(open_, close)
    if low is None:
        low = min(open_, close)
    if not is_finite_number(volume):
        volume = None

    try:
        return Candle(
            time=math.floor(time), open=open_, high=high, low=low, close=close, volume=volume
        )
    except ValidationError as e:
        logger.debug("Skipping candle entry %s: %s", entry, e.errors()[0]["msg"])
        return None


def parse_candles(entries: Iterable[Any]) -> list[Candle]:
    return [candle for candle in map(parse_candle, entries) if candle is not None]


def aggregate_ticks(ticks: Iterable[Any], period: int) -> list[Candle]:
    """Fold ``[timestamp, price]`` ticks into OHLC candles of width ``period``.

    Ticks are taken in time order: open is the first tick of a bucket, close
    the last, high/low the extremes and volume the tick count.
    """
    if period <= 0:
        return []

    valid = [
        (tick[0], tick[1])
        for tick in ticks
        if isinstance(tick, (list, tuple))
        and len(tick) >= 2
        and is_finite_number(tick[0])
        and is_finite_number(tick[1])
    ]
    valid.sort(key=lambda tick: tick[0])

    buckets: dict[int, dict[str, Any]] = {}
    for timestamp, price in valid:
        bucket_time = floor_to_period(timestamp, period)
        bucket = buckets.get(bucket_time)
        if bucket is None:
            buckets[bucket_time] = {
                "time": bucket_time,
                "open": price,
                "high": price,
                "low": price,
                "close": price,
                "volume": 1,
            }
        else:
            bucket["high"] = max(bucket["high"], price)
            bucket["low"] = min(bucket["low"], price)
            bucket["close"] = price
            bucket["volume"] += 1

    return [Candle(**buckets[key]) for key in sorted(buckets)]


def merge_candles(
    existing: Iterable[Candle], incoming: Iterable[Candle], limit: int
) -> list[Candle]:
    """Union by time (incoming wins), ascending, keeping the newest ``limit`` entries."""
    merged = {candle.time: candle for candle in existing}
    merged.update((candle.time, candle) for candle in incoming)
    ordered = [merged[key] for key in sorted(merged)]
    return ordered[-limit:] if limit > 0 else []
