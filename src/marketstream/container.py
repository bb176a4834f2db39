from typing import Any, Callable, Optional

from injector import Module, provider, singleton

from marketstream.analytics.engine import IndicatorEngine
from marketstream.analytics.subscriptions import SubscriptionManager
from marketstream.config.configurations import ConnectionConfig
from marketstream.connections.sockets import ConnectionSupervisor
from marketstream.market.candles import CandleAssembler
from marketstream.messaging.codec import FrameCodec
from marketstream.messaging.dispatcher import ChannelDispatcher


class MarketStreamModule(Module):
    """Wire one supervisor -> dispatcher -> assembler -> indicator pipeline per Injector."""

    def __init__(
        self,
        config: Optional[ConnectionConfig] = None,
        connector: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.config = config
        self.connector = connector

    @singleton
    @provider
    def provide_config(self) -> ConnectionConfig:
        return self.config or ConnectionConfig()

    @singleton
    @provider
    def provide_codec(self) -> FrameCodec:
        return FrameCodec()

    @singleton
    @provider
    def provide_supervisor(
        self, config: ConnectionConfig, codec: FrameCodec
    ) -> ConnectionSupervisor:
        if self.connector is None:
            return ConnectionSupervisor(config, codec)
        return ConnectionSupervisor(config, codec, self.connector)

    @singleton
    @provider
    def provide_dispatcher(self, supervisor: ConnectionSupervisor) -> ChannelDispatcher:
        dispatcher = ChannelDispatcher()
        dispatcher.attach(supervisor)
        return dispatcher

    @singleton
    @provider
    def provide_candles(
        self, supervisor: ConnectionSupervisor, dispatcher: ChannelDispatcher
    ) -> CandleAssembler:
        return CandleAssembler(supervisor, dispatcher)

    @singleton
    @provider
    def provide_engine(self) -> IndicatorEngine:
        return IndicatorEngine()

    @singleton
    @provider
    def provide_subscriptions(
        self, candles: CandleAssembler, engine: IndicatorEngine
    ) -> SubscriptionManager:
        return SubscriptionManager(candles, engine)
