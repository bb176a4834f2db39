import asyncio
import logging
import math
from collections import deque
from typing import Any, Callable, Optional

import polars as pl

from marketstream.config.configurations import (
    CANDLE_POLL_INTERVAL,
    CANDLE_WAIT_TIMEOUT,
    HISTORY_REQUEST_DELAY,
    MAX_CANDLES,
    MAX_PRICES,
)
from marketstream.config.enumerations import Channels, ConnectionState
from marketstream.connections.sockets import ConnectionSupervisor
from marketstream.connections.subscription import Cancel, SubscriptionRegistry
from marketstream.market.aggregation import (
    aggregate_ticks,
    entry_time,
    is_finite_number,
    merge_candles,
    parse_candle,
    parse_candles,
)
from marketstream.messaging.dispatcher import ChannelDispatcher
from marketstream.messaging.models.events import (
    Candle,
    CurrentCandle,
    MarketSentiment,
    RealtimePrice,
    SentimentValues,
    Tick,
    TradingSignal,
)
from marketstream.messaging.models.messages import (
    ChartSettings,
    HistoryLineRequest,
    HistoryLoadRequest,
    InstrumentsUpdateRequest,
    SettingsStoreRequest,
)
from marketstream.utils.helpers import get_timestamp, wait_until

logger = logging.getLogger(__name__)

CandleCallback = Callable[[Candle], Any]
PriceCallback = Callable[[RealtimePrice], Any]
SentimentCallback = Callable[[MarketSentiment], Any]

MAX_SIGNALS = 10


def stream_key(asset: str, period: int) -> str:
    return f"candles:{asset}:{period}"


def price_key(asset: str) -> str:
    return f"prices:{asset}"


def sentiment_key(asset: str) -> str:
    return f"sentiment:{asset}"


class CandleAssembler:
    """Maintain one time-ordered candle buffer per asset.

    Buffers are fed by history responses (OHLC tuples/objects or raw ticks
    bucketed by period), single-candle updates and live ticks. Only this
    class mutates them; every reader gets a copy.
    """

    def __init__(
        self,
        connection: ConnectionSupervisor,
        dispatcher: ChannelDispatcher,
        max_candles: int = MAX_CANDLES,
        poll_interval: float = CANDLE_POLL_INTERVAL,
        timeout: float = CANDLE_WAIT_TIMEOUT,
        history_delay: float = HISTORY_REQUEST_DELAY,
    ) -> None:
        self.connection = connection
        self.dispatcher = dispatcher
        self.max_candles = max_candles
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.history_delay = history_delay

        self.candles: dict[str, list[Candle]] = {}
        self.prices: dict[str, deque[RealtimePrice]] = {}
        self.signals: dict[str, deque[TradingSignal]] = {}
        self.sentiment: dict[str, MarketSentiment] = {}
        self.requested_periods: dict[str, int] = {}

        self.subscriptions = SubscriptionRegistry(name="candles")
        self.streams: dict[str, tuple[str, int]] = {}

        self.handlers: dict[str, Callable[[Any], None]] = {
            Channels.Candles.value: self.handle_candle_update,
            Channels.InstrumentsUpdate.value: self.handle_candle_update,
            Channels.Tick.value: self.handle_tick,
            Channels.Price.value: self.handle_price,
            Channels.Sentiment.value: self.handle_sentiment,
            Channels.Signals.value: self.handle_signal,
        }
        self.cancels: list[Cancel] = [
            dispatcher.subscribe(channel, handler) for channel, handler in self.handlers.items()
        ]
        self.cancels.append(connection.on_state_change(self.handle_state_change))

    def close(self) -> None:
        for cancel in self.cancels:
            cancel()
        self.cancels.clear()

    # --- inbound -----------------------------------------------------------

    def handle_candle_update(self, data: Any) -> None:
        if not isinstance(data, dict):
            return

        if "candles" in data or "history" in data:
            self.handle_history(data)
            return

        asset = data.get("asset")
        if not isinstance(asset, str):
            return

        candle = parse_candle(data)
        if candle is None:
            logger.debug("Ignoring malformed candle update for %s: %s", asset, data)
            return

        self.store(asset, [candle])
        self.notify(asset, candle, period=data.get("period") or 0)

    def handle_history(self, data: dict[str, Any]) -> None:
        asset = data.get("asset")
        if not isinstance(asset, str):
            logger.debug("History response missing asset")
            return

        period = data.get("period") or self.requested_periods.get(asset, 0)
        candles_array = data.get("candles")
        history_array = data.get("history")

        if isinstance(candles_array, list) and candles_array:
            incoming = parse_candles(candles_array)
            logger.info(
                "Parsed %d/%d OHLC candles for %s (period: %s)",
                len(incoming),
                len(candles_array),
                asset,
                period,
            )
        elif isinstance(history_array, list) and history_array and period > 0:
            incoming = aggregate_ticks(history_array, period)
            logger.info(
                "Aggregated %d ticks into %d %ds candles for %s",
                len(history_array),
                len(incoming),
                period,
                asset,
            )
        else:
            logger.debug("No usable candle data in history response for %s", asset)
            return

        buffer = self.store(asset, incoming)
        logger.info("Candle stream for %s now has %d candles", asset, len(buffer))
        if buffer:
            self.notify(asset, buffer[-1], period=period)

    def handle_tick(self, data: Any) -> None:
        if not isinstance(data, list) or len(data) < 3 or not isinstance(data[0], str):
            return
        if not (is_finite_number(data[1]) and is_finite_number(data[2])):
            return

        tick = Tick(asset=data[0], time=data[1], price=data[2])
        candle = Candle(
            time=math.floor(tick.time),
            open=tick.price,
            high=tick.price,
            low=tick.price,
            close=tick.price,
            volume=1,
        )

        if self.has_stream(tick.asset):
            self.store(tick.asset, [candle])
        self.notify(tick.asset, candle)
        self.record_price(RealtimePrice(asset=tick.asset, time=tick.time, price=tick.price))

    def handle_price(self, data: Any) -> None:
        if not isinstance(data, dict) or not isinstance(data.get("asset"), str):
            return
        if not is_finite_number(data.get("price")):
            return

        price = RealtimePrice(
            asset=data["asset"], price=data["price"], time=entry_time(data) or get_timestamp()
        )
        self.record_price(price)
        self.subscriptions.publish(price_key(price.asset), price)

    def handle_sentiment(self, data: Any) -> None:
        if not isinstance(data, dict) or not isinstance(data.get("asset"), str):
            return

        nested = data.get("sentiment")
        if not isinstance(nested, dict):
            nested = {}

        def share(side: str) -> float:
            for value in (data.get(side), nested.get(side)):
                if is_finite_number(value) and value:
                    return value
            return 0

        sentiment = MarketSentiment(
            asset=data["asset"],
            sentiment=SentimentValues(buy=share("buy"), sell=share("sell")),
            timestamp=get_timestamp(),
        )
        self.sentiment[sentiment.asset] = sentiment
        self.subscriptions.publish(sentiment_key(sentiment.asset), sentiment)

    def handle_signal(self, data: Any) -> None:
        if not isinstance(data, dict) or not isinstance(data.get("asset"), str):
            return

        signal = TradingSignal(
            asset=data["asset"],
            direction=data.get("direction"),
            strength=data.get("strength") or 0,
            timestamp=get_timestamp(),
            timeframe=data.get("timeframe") or 60,
        )
        self.signals.setdefault(signal.asset, deque(maxlen=MAX_SIGNALS)).append(signal)

    def handle_state_change(self, change: tuple[ConnectionState, ConnectionState]) -> None:
        _, state = change
        if state != ConnectionState.OPEN or not self.streams:
            return

        logger.info("Re-following %d candle streams", len(self.streams))
        for asset, period in list(self.streams.values()):
            self.follow(asset, period)

    # --- buffers -----------------------------------------------------------

    def store(self, asset: str, incoming: list[Candle]) -> list[Candle]:
        buffer = merge_candles(self.candles.get(asset, []), incoming, self.max_candles)
        self.candles[asset] = buffer
        return buffer

    def record_price(self, price: RealtimePrice) -> None:
        self.prices.setdefault(price.asset, deque(maxlen=MAX_PRICES)).append(price)

    def has_stream(self, asset: str) -> bool:
        return any(stream_asset == asset for stream_asset, _ in self.streams.values())

    def notify(self, asset: str, candle: Candle, period: Optional[int] = None) -> int:
        """Push ``candle`` to every stream subscriber of ``asset``, each callback once.

        The exact asset+period key is served first when ``period`` is given.
        """
        prefix = f"candles:{asset}:"
        keys = [key for key in self.subscriptions.keys() if key.startswith(prefix)]
        if period is not None:
            exact = stream_key(asset, period)
            if exact in keys:
                keys.remove(exact)
                keys.insert(0, exact)

        notified: set[Any] = set()
        delivered = 0
        for key in keys:
            for subscription in self.subscriptions.get(key):
                if not subscription.active or subscription.callback in notified:
                    continue
                notified.add(subscription.callback)
                if self.subscriptions.invoke(subscription, candle):
                    delivered += 1
        return delivered

    # --- commands ----------------------------------------------------------

    def follow(self, asset: str, period: int) -> None:
        request = InstrumentsUpdateRequest(asset=asset, period=period)
        self.connection.emit(request.event, request.model_dump())
        self.connection.emit("depth/follow", asset)

    def unfollow(self, asset: str) -> None:
        self.connection.emit("depth/unfollow", asset)

    async def get_candles(
        self, asset: str, period: int, offset: int, end_time: Optional[int] = None
    ) -> list[Candle]:
        """Request history for ``asset`` and wait for the buffer to fill.

        Returns whatever arrived before the timeout, possibly nothing.
        """
        logger.debug("Fetching candles for %s, period: %s", asset, period)

        self.candles.pop(asset, None)
        self.requested_periods[asset] = period

        self.follow(asset, period)
        await asyncio.sleep(self.history_delay)

        request = HistoryLoadRequest(
            asset=asset,
            time=end_time if end_time is not None else get_timestamp(),
            offset=offset,
            period=period,
        )
        self.connection.emit(request.event, request.model_dump())

        await wait_until(
            lambda: bool(self.candles.get(asset)), self.timeout, self.poll_interval
        )
        return self.get_realtime_candles(asset)

    def subscribe_to_candle_stream(
        self, asset: str, period: int, callback: CandleCallback
    ) -> Cancel:
        key = stream_key(asset, period)
        logger.debug("Subscribing to candle stream: %s", key)

        if self.subscriptions.count(key) == 0:
            self.streams[key] = (asset, period)
            self.follow(asset, period)
        subscription = self.subscriptions.add(key, callback)

        def cancel() -> None:
            if not self.subscriptions.remove(subscription):
                return
            if self.subscriptions.count(key) == 0:
                logger.debug("Unsubscribing from candle stream: %s", key)
                self.streams.pop(key, None)
                self.unfollow(asset)

        return cancel

    def subscribe_to_price_stream(
        self, asset: str, period: int, callback: PriceCallback
    ) -> Cancel:
        """Receive the close of every streamed candle plus ``price`` channel updates."""

        def on_candle(candle: Candle) -> None:
            callback(RealtimePrice(asset=asset, price=candle.close, time=candle.time))

        cancel_stream = self.subscribe_to_candle_stream(asset, period, on_candle)
        cancel_prices = self.subscriptions.subscribe(price_key(asset), callback)

        def cancel() -> None:
            cancel_prices()
            cancel_stream()

        return cancel

    def subscribe_to_sentiment_stream(
        self, asset: str, callback: SentimentCallback
    ) -> Cancel:
        """Receive ``sentiment`` channel updates, replayed on every streamed candle."""

        def on_candle(candle: Candle) -> None:
            sentiment = self.sentiment.get(asset)
            if sentiment is not None:
                callback(sentiment)

        cancel_stream = self.subscribe_to_candle_stream(asset, 0, on_candle)
        cancel_sentiment = self.subscriptions.subscribe(sentiment_key(asset), callback)

        def cancel() -> None:
            cancel_sentiment()
            cancel_stream()

        return cancel

    def get_realtime_candles(self, asset: str) -> list[Candle]:
        return list(self.candles.get(asset, []))

    def get_realtime_prices(self, asset: str) -> list[RealtimePrice]:
        return list(self.prices.get(asset, []))

    def get_realtime_sentiment(self, asset: str) -> Optional[MarketSentiment]:
        return self.sentiment.get(asset)

    def get_signal_data(self) -> list[TradingSignal]:
        return [signal for signals in self.signals.values() for signal in signals]

    def opening_closing_current_candle(
        self, asset: str, period: int = 0
    ) -> Optional[CurrentCandle]:
        buffer = self.candles.get(asset)
        if not buffer:
            return None

        latest = buffer[-1]
        closing = latest.time + period
        return CurrentCandle(
            symbol=asset,
            open=latest.open,
            close=latest.close,
            high=latest.high,
            low=latest.low,
            timestamp=latest.time,
            opening=latest.time,
            closing=closing,
            remaining=closing - get_timestamp(),
        )

    def candles_frame(self, asset: str) -> pl.DataFrame:
        rows = [candle.model_dump() for candle in self.candles.get(asset, [])]
        if not rows:
            return pl.DataFrame(
                schema={
                    "time": pl.Int64,
                    "open": pl.Float64,
                    "high": pl.Float64,
                    "low": pl.Float64,
                    "close": pl.Float64,
                    "volume": pl.Int64,
                }
            )
        return pl.DataFrame(rows).unique(subset=["time"], keep="last").sort("time")

    async def get_history_line(
        self, asset_id: str, end_time: Optional[int] = None, offset: int = 3600
    ) -> bool:
        request = HistoryLineRequest(
            id=asset_id,
            time=end_time if end_time is not None else get_timestamp(),
            offset=offset,
        )
        logger.debug("Fetching history line for asset ID %s", asset_id)
        return self.connection.emit(request.event, request.model_dump())

    async def store_settings_apply(
        self,
        asset: str = "EURUSD",
        period: int = 0,
        time_mode: str = "TIMER",
        deal: float = 5,
        percent_mode: bool = False,
        percent_deal: float = 1,
    ) -> ChartSettings:
        settings = ChartSettings(
            currentAsset={"symbol": asset},
            isFastOption=time_mode.upper() != "TIMER",
            isFastAmountOption=percent_mode,
            dealValue=deal,
            dealPercentValue=percent_deal,
            timePeriod=period,
        )
        request = SettingsStoreRequest(settings=settings)
        self.connection.emit(request.event, request.model_dump())

        await asyncio.sleep(self.history_delay)
        return settings

    def start_signals_data(self) -> bool:
        return self.connection.emit("signal/subscribe")
