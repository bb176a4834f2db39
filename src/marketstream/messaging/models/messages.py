"""Outbound command payloads.

Each model is dumped with ``model_dump()`` and handed to
``FrameCodec.encode_event`` together with its event name, e.g.::

    42["history/load",{"asset":"EURUSD","index":1700000000,"time":1700000000,"offset":6000,"period":60}]
"""

import time
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field


def now_timestamp() -> int:
    return int(time.time())


class OutboundCommand(BaseModel):
    event: ClassVar[str]
    model_config = ConfigDict(frozen=True, extra="forbid")


class InstrumentsUpdateRequest(OutboundCommand):
    event: ClassVar[str] = "instruments/update"
    asset: str
    period: int


class HistoryLoadRequest(OutboundCommand):
    event: ClassVar[str] = "history/load"
    asset: str
    index: int = Field(default_factory=now_timestamp)
    time: int = Field(default_factory=now_timestamp, description="End of the requested range")
    offset: int = Field(description="Range length in seconds")
    period: int


class HistoryLineRequest(OutboundCommand):
    event: ClassVar[str] = "history/load/line"
    id: str
    index: int = Field(default_factory=now_timestamp)
    time: int = Field(default_factory=now_timestamp)
    offset: int = 3600


class AuthorizationRequest(OutboundCommand):
    event: ClassVar[str] = "authorization"
    session: str
    isDemo: Literal[0, 1] = 1
    tournamentId: int = 0


class ChartSettings(BaseModel):
    chartId: str = "graph"
    chartType: int = 2
    currentExpirationTime: int = Field(default_factory=now_timestamp)
    isFastOption: bool = False
    isFastAmountOption: bool = False
    isIndicatorsMinimized: bool = False
    isIndicatorsShowing: bool = True
    isShortBetElement: bool = False
    chartPeriod: int = 4
    currentAsset: dict[str, str]
    dealValue: float = 5
    dealPercentValue: float = 1
    isVisible: bool = True
    timePeriod: int = 0
    gridOpacity: int = 8
    isAutoScrolling: int = 1
    isOneClickTrade: bool = True
    upColor: str = "#0FAF59"
    downColor: str = "#FF6251"


class SettingsStoreRequest(OutboundCommand):
    event: ClassVar[str] = "settings/store"
    chartId: str = "graph"
    settings: ChartSettings
