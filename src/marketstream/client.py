import logging
from types import TracebackType
from typing import Any, Callable, Optional, Union

from injector import Injector, inject

from marketstream.analytics.engine import Params
from marketstream.analytics.indicators.models import IndicatorResult
from marketstream.analytics.subscriptions import IndicatorCallback, SubscriptionManager
from marketstream.config.configurations import ConnectionConfig
from marketstream.config.enumerations import IndicatorType
from marketstream.connections.sockets import ConnectionSupervisor
from marketstream.connections.subscription import Cancel
from marketstream.container import MarketStreamModule
from marketstream.market.candles import CandleAssembler, CandleCallback
from marketstream.messaging.dispatcher import ChannelDispatcher
from marketstream.messaging.models.events import Candle

logger = logging.getLogger(__name__)


class MarketStreamClient:
    """Facade over the connection, candle and indicator components.

    Build with ``MarketStreamClient.create()`` for a fresh, fully wired pipeline.
    """

    @inject
    def __init__(
        self,
        connection: ConnectionSupervisor,
        dispatcher: ChannelDispatcher,
        candles: CandleAssembler,
        indicators: SubscriptionManager,
    ) -> None:
        self.connection = connection
        self.dispatcher = dispatcher
        self.candles = candles
        self.indicators = indicators

    @classmethod
    def create(
        cls,
        config: Optional[ConnectionConfig] = None,
        connector: Optional[Callable[..., Any]] = None,
    ) -> "MarketStreamClient":
        return Injector([MarketStreamModule(config, connector)]).get(cls)

    async def __aenter__(self) -> "MarketStreamClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[BaseException],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.disconnect()

    async def connect(
        self,
        token: Optional[str] = None,
        cookies: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        connected = await self.connection.connect(token, cookies, user_agent)
        if not connected:
            logger.error("Could not connect to %s", self.connection.config.url)
        return connected

    async def disconnect(self) -> None:
        self.indicators.cancel_all()
        await self.connection.disconnect()

    def is_connected(self) -> bool:
        return self.connection.is_connected()

    def subscribe(self, channel: str, callback: Callable[[Any], Any]) -> Cancel:
        return self.dispatcher.subscribe(channel, callback)

    async def get_candles(
        self, asset: str, period: int, offset: int, end_time: Optional[int] = None
    ) -> list[Candle]:
        return await self.candles.get_candles(asset, period, offset, end_time)

    def subscribe_to_candle_stream(
        self, asset: str, period: int, callback: CandleCallback
    ) -> Cancel:
        return self.candles.subscribe_to_candle_stream(asset, period, callback)

    async def calculate_indicator(
        self,
        asset: str,
        indicator: Union[IndicatorType, str],
        params: Optional[Params] = None,
        timeframe: int = 60,
    ) -> IndicatorResult:
        return await self.indicators.calculate_once(asset, indicator, params, timeframe)

    async def subscribe_indicator(
        self,
        asset: str,
        indicator: Union[IndicatorType, str],
        callback: IndicatorCallback,
        params: Optional[Params] = None,
        timeframe: int = 60,
    ) -> Cancel:
        return await self.indicators.subscribe_indicator(
            asset, indicator, params, timeframe, callback
        )
