"""Unit tests for one-shot and streaming indicator subscriptions."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from marketstream.analytics.subscriptions import SubscriptionManager
from marketstream.common.exceptions import NoCandlesAvailableError, UnsupportedIndicatorError
from marketstream.messaging.models.events import Candle

T0 = 1_699_999_980


def make_candles(closes, start=T0):
    return [
        Candle(time=start + 60 * i, open=close, high=close, low=close, close=close)
        for i, close in enumerate(closes)
    ]


@pytest.fixture
def candles():
    candles = MagicMock()
    candles.get_candles = AsyncMock(return_value=make_candles([1.0, 2.0, 3.0, 4.0, 5.0]))
    candles.subscribe_to_candle_stream.return_value = MagicMock()
    return candles


@pytest.fixture
def manager(candles):
    return SubscriptionManager(candles)


def stream_callback(candles):
    """The on_candle handler registered with the candle stream."""
    return candles.subscribe_to_candle_stream.call_args[0][2]


# ---------------------------------------------------------------------------
# calculate_once
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_calculate_once_requests_lookback(manager, candles):
    result = await manager.calculate_once("EURUSD", "SMA", {"period": 3}, timeframe=60)

    candles.get_candles.assert_awaited_once_with("EURUSD", 60, 6000)
    assert result.sma == [2.0, 3.0, 4.0]


@pytest.mark.asyncio
async def test_calculate_once_without_candles_raises(manager, candles):
    candles.get_candles.return_value = []

    with pytest.raises(NoCandlesAvailableError) as exc_info:
        await manager.calculate_once("EURUSD", "RSI", timeframe=300)

    assert exc_info.value.asset == "EURUSD"
    assert exc_info.value.timeframe == 300


@pytest.mark.asyncio
async def test_calculate_once_rejects_unknown_indicator_before_fetching(manager, candles):
    with pytest.raises(UnsupportedIndicatorError):
        await manager.calculate_once("EURUSD", "VWAP")

    candles.get_candles.assert_not_awaited()


# ---------------------------------------------------------------------------
# subscribe_indicator
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_subscribe_pushes_results_on_new_candles(manager, candles):
    results = []

    await manager.subscribe_indicator("EURUSD", "SMA", {"period": 3}, 60, results.append)
    on_candle = stream_callback(candles)
    on_candle(make_candles([6.0], start=T0 + 300)[0])

    candles.subscribe_to_candle_stream.assert_called_once()
    assert candles.subscribe_to_candle_stream.call_args[0][:2] == ("EURUSD", 60)
    assert len(results) == 1
    assert results[0].sma == [2.0, 3.0, 4.0, 5.0]


@pytest.mark.asyncio
async def test_cancel_stops_delivery_and_is_idempotent(manager, candles):
    callback = MagicMock()
    release = candles.subscribe_to_candle_stream.return_value

    cancel = await manager.subscribe_indicator("EURUSD", "SMA", {"period": 3}, 60, callback)
    on_candle = stream_callback(candles)

    cancel()
    cancel()
    on_candle(make_candles([6.0], start=T0 + 300)[0])

    callback.assert_not_called()
    release.assert_called_once()
    assert manager.active == {}


@pytest.mark.asyncio
async def test_failed_seed_still_subscribes(manager, candles, caplog):
    candles.get_candles.side_effect = RuntimeError("history unavailable")
    results = []

    with caplog.at_level(logging.WARNING):
        await manager.subscribe_indicator("EURUSD", "SMA", {"period": 1}, 60, results.append)

    assert "Could not seed SMA window for EURUSD" in caplog.text
    stream_callback(candles)(make_candles([7.0])[0])
    assert results[0].sma == [7.0]


@pytest.mark.asyncio
async def test_cancel_all_releases_every_subscription(manager, candles):
    first_release, second_release = MagicMock(), MagicMock()
    candles.subscribe_to_candle_stream.side_effect = [first_release, second_release]

    await manager.subscribe_indicator("EURUSD", "RSI", None, 60, MagicMock())
    await manager.subscribe_indicator("GBPUSD", "EMA", None, 300, MagicMock())
    manager.cancel_all()

    first_release.assert_called_once()
    second_release.assert_called_once()
    assert manager.active == {}


def test_lookback_covers_one_hundred_periods(manager):
    assert manager.lookback(60) == 6000
    assert manager.lookback(300) == 30000
