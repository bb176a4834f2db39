import logging
from typing import Any, Callable, Optional, Union

from marketstream.analytics.engine import (
    IndicatorEngine,
    IndicatorWindow,
    Params,
    resolve_indicator,
)
from marketstream.analytics.indicators.models import IndicatorResult
from marketstream.common.exceptions import NoCandlesAvailableError
from marketstream.config.configurations import HISTORY_LOOKBACK_PERIODS
from marketstream.config.enumerations import IndicatorType
from marketstream.connections.subscription import Cancel
from marketstream.market.candles import CandleAssembler
from marketstream.messaging.models.events import Candle

logger = logging.getLogger(__name__)

IndicatorCallback = Callable[[IndicatorResult], Any]


class SubscriptionManager:
    """One-shot and streaming indicator computation on top of the candle buffers."""

    def __init__(self, candles: CandleAssembler, engine: Optional[IndicatorEngine] = None) -> None:
        self.candles = candles
        self.engine = engine or IndicatorEngine()
        self.active: dict[int, Cancel] = {}
        self._next_id = 0

    def lookback(self, timeframe: int) -> int:
        return timeframe * HISTORY_LOOKBACK_PERIODS

    async def calculate_once(
        self,
        asset: str,
        indicator: Union[IndicatorType, str],
        params: Optional[Params] = None,
        timeframe: int = 60,
    ) -> IndicatorResult:
        kind = resolve_indicator(indicator)
        candles = await self.candles.get_candles(asset, timeframe, self.lookback(timeframe))
        if not candles:
            raise NoCandlesAvailableError(asset, timeframe)

        return self.engine.calculate(candles, kind, params, timeframe)

    async def subscribe_indicator(
        self,
        asset: str,
        indicator: Union[IndicatorType, str],
        params: Optional[Params],
        timeframe: int,
        callback: IndicatorCallback,
    ) -> Cancel:
        """Stream ``indicator`` for ``asset``: every new candle triggers a recompute.

        The window is seeded from history when available; a failed seed only
        means the first results are computed over fewer candles.
        """
        window = IndicatorWindow(self.engine, indicator, params, timeframe)

        try:
            seed = await self.candles.get_candles(asset, timeframe, self.lookback(timeframe))
            window.extend(seed)
            logger.info(
                "Seeded %s window for %s with %d candles", window.indicator.value, asset, len(window)
            )
        except Exception as e:
            logger.warning("Could not seed %s window for %s: %s", window.indicator.value, asset, e)

        subscription_id = self._next_id
        self._next_id += 1
        active = True

        def on_candle(candle: Candle) -> None:
            if active:
                callback(window.push(candle))

        release_stream = self.candles.subscribe_to_candle_stream(asset, timeframe, on_candle)

        def cancel() -> None:
            nonlocal active
            if not active:
                return
            active = False
            release_stream()
            self.active.pop(subscription_id, None)

        self.active[subscription_id] = cancel
        return cancel

    def cancel_all(self) -> None:
        for cancel in list(self.active.values()):
            cancel()
