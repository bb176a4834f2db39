import logging
import re
from collections import deque
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from marketstream.analytics.indicators import (
    adx,
    atr,
    bollinger_bands,
    ema,
    ichimoku,
    macd,
    rsi,
    sma,
    stochastic,
)
from marketstream.analytics.indicators.models import (
    ADXResult,
    ADXValues,
    ATRResult,
    BollingerResult,
    BollingerValues,
    EMAResult,
    IchimokuResult,
    IchimokuValues,
    IndicatorResult,
    MACDResult,
    MACDValues,
    RSIResult,
    SMAResult,
    StochasticResult,
    StochasticValues,
)
from marketstream.common.exceptions import UnsupportedIndicatorError
from marketstream.config.configurations import DEFAULT_INDICATOR_PARAMS, INDICATOR_WINDOW
from marketstream.config.enumerations import IndicatorType
from marketstream.messaging.models.events import Candle

logger = logging.getLogger(__name__)

Params = dict[str, Any]
Calculator = Callable[[Sequence[Candle], Params, int], IndicatorResult]


def resolve_indicator(indicator: Union[IndicatorType, str]) -> IndicatorType:
    name = indicator.value if isinstance(indicator, IndicatorType) else str(indicator).upper()
    try:
        return IndicatorType(name)
    except ValueError as e:
        raise UnsupportedIndicatorError(str(indicator)) from e


def snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def normalize_params(params: Optional[Params]) -> Params:
    """Accept both ``fast_period`` and ``fastPeriod`` style keys."""
    return {snake_case(key): value for key, value in (params or {}).items()}


def tail_aligned(timestamps: list[int], series: Sequence[Any]) -> list[int]:
    """Timestamps of the last ``len(series)`` candles."""
    if not series:
        return []
    return timestamps[len(timestamps) - len(series) :]


def last(series: Sequence[float], default: float = 0) -> float:
    return series[-1] if len(series) else default


class IndicatorEngine:
    """Compute indicator results from a candle list.

    Stateless: every call recomputes from scratch over the candles given.
    """

    def __init__(self, defaults: Optional[dict[str, Params]] = None) -> None:
        self.defaults = defaults or DEFAULT_INDICATOR_PARAMS
        self.calculators: dict[IndicatorType, Calculator] = {
            IndicatorType.RSI: self.calculate_rsi,
            IndicatorType.MACD: self.calculate_macd,
            IndicatorType.BOLLINGER: self.calculate_bollinger,
            IndicatorType.STOCHASTIC: self.calculate_stochastic,
            IndicatorType.ADX: self.calculate_adx,
            IndicatorType.ATR: self.calculate_atr,
            IndicatorType.SMA: self.calculate_sma,
            IndicatorType.EMA: self.calculate_ema,
            IndicatorType.ICHIMOKU: self.calculate_ichimoku,
        }

    def params_for(self, indicator: IndicatorType, params: Optional[Params] = None) -> Params:
        return {**self.defaults.get(indicator.value, {}), **normalize_params(params)}

    def calculate(
        self,
        candles: Sequence[Candle],
        indicator: Union[IndicatorType, str],
        params: Optional[Params] = None,
        timeframe: int = 60,
    ) -> IndicatorResult:
        kind = resolve_indicator(indicator)
        merged = self.params_for(kind, params)
        logger.debug(
            "Calculating %s for timeframe %s over %d candles", kind.value, timeframe, len(candles)
        )
        return self.calculators[kind](candles, merged, timeframe)

    def calculate_rsi(self, candles: Sequence[Candle], params: Params, timeframe: int) -> RSIResult:
        series = rsi([c.close for c in candles], int(params["period"]))
        return RSIResult(
            rsi=series,
            current=last(series, 50),
            timeframe=timeframe,
            timestamps=tail_aligned([c.time for c in candles], series),
            history_size=len(series),
        )

    def calculate_macd(self, candles: Sequence[Candle], params: Params, timeframe: int) -> MACDResult:
        macd_line, signal_line, histogram = macd(
            [c.close for c in candles],
            int(params["fast_period"]),
            int(params["slow_period"]),
            int(params["signal_period"]),
        )
        return MACDResult(
            macd=macd_line,
            signal=signal_line,
            histogram=histogram,
            current=MACDValues(
                macd=last(macd_line), signal=last(signal_line), histogram=last(histogram)
            ),
            timeframe=timeframe,
            timestamps=tail_aligned([c.time for c in candles], macd_line),
            history_size=len(macd_line),
        )

    def calculate_bollinger(
        self, candles: Sequence[Candle], params: Params, timeframe: int
    ) -> BollingerResult:
        upper, middle, lower = bollinger_bands(
            [c.close for c in candles], int(params["period"]), float(params["std"])
        )
        return BollingerResult(
            upper=upper,
            middle=middle,
            lower=lower,
            current=BollingerValues(upper=last(upper), middle=last(middle), lower=last(lower)),
            timeframe=timeframe,
            timestamps=tail_aligned([c.time for c in candles], middle),
            history_size=len(middle),
        )

    def calculate_stochastic(
        self, candles: Sequence[Candle], params: Params, timeframe: int
    ) -> StochasticResult:
        k, d = stochastic(
            [c.high for c in candles],
            [c.low for c in candles],
            [c.close for c in candles],
            int(params["k_period"]),
            int(params["d_period"]),
        )
        return StochasticResult(
            k=k,
            d=d,
            current=StochasticValues(k=last(k, 50), d=last(d, 50)),
            timeframe=timeframe,
            timestamps=tail_aligned([c.time for c in candles], k),
            history_size=len(k),
        )

    def calculate_adx(self, candles: Sequence[Candle], params: Params, timeframe: int) -> ADXResult:
        adx_line, plus_di, minus_di = adx(
            [c.high for c in candles],
            [c.low for c in candles],
            [c.close for c in candles],
            int(params["period"]),
        )
        return ADXResult(
            adx=adx_line,
            plus_di=plus_di,
            minus_di=minus_di,
            current=ADXValues(adx=last(adx_line), plus_di=last(plus_di), minus_di=last(minus_di)),
            timeframe=timeframe,
            timestamps=tail_aligned([c.time for c in candles], adx_line),
            history_size=len(adx_line),
        )

    def calculate_atr(self, candles: Sequence[Candle], params: Params, timeframe: int) -> ATRResult:
        series = atr(
            [c.high for c in candles],
            [c.low for c in candles],
            [c.close for c in candles],
            int(params["period"]),
        )
        return ATRResult(
            atr=series,
            current=last(series),
            timeframe=timeframe,
            timestamps=tail_aligned([c.time for c in candles], series),
            history_size=len(series),
        )

    def calculate_sma(self, candles: Sequence[Candle], params: Params, timeframe: int) -> SMAResult:
        series = sma([c.close for c in candles], int(params["period"]))
        return SMAResult(
            sma=series,
            current=last(series),
            timeframe=timeframe,
            timestamps=tail_aligned([c.time for c in candles], series),
            history_size=len(series),
        )

    def calculate_ema(self, candles: Sequence[Candle], params: Params, timeframe: int) -> EMAResult:
        series = ema([c.close for c in candles], int(params["period"]))
        return EMAResult(
            ema=series,
            current=last(series),
            timeframe=timeframe,
            timestamps=tail_aligned([c.time for c in candles], series),
            history_size=len(series),
        )

    def calculate_ichimoku(
        self, candles: Sequence[Candle], params: Params, timeframe: int
    ) -> IchimokuResult:
        lines = ichimoku(
            [c.high for c in candles],
            [c.low for c in candles],
            int(params["tenkan_period"]),
            int(params["kijun_period"]),
            int(params["senkou_b_period"]),
        )
        return IchimokuResult(
            **lines,
            current=IchimokuValues(**{name: last(line) for name, line in lines.items()}),
            timeframe=timeframe,
            timestamps=tail_aligned([c.time for c in candles], lines["kijun"]),
            history_size=len(lines["kijun"]),
        )


class IndicatorWindow:
    """Bounded candle window that recomputes one indicator on every push.

    A pushed candle with the same time as the newest one replaces it, so
    repeated ticks within a second do not crowd out history.
    """

    def __init__(
        self,
        engine: IndicatorEngine,
        indicator: Union[IndicatorType, str],
        params: Optional[Params] = None,
        timeframe: int = 60,
        size: int = INDICATOR_WINDOW,
    ) -> None:
        self.engine = engine
        self.indicator = resolve_indicator(indicator)
        self.params = params
        self.timeframe = timeframe
        self.candles: deque[Candle] = deque(maxlen=size)

    def __len__(self) -> int:
        return len(self.candles)

    def append(self, candle: Candle) -> None:
        if self.candles and self.candles[-1].time == candle.time:
            self.candles[-1] = candle
        else:
            self.candles.append(candle)

    def extend(self, candles: Iterable[Candle]) -> None:
        for candle in candles:
            self.append(candle)

    def compute(self) -> IndicatorResult:
        return self.engine.calculate(
            list(self.candles), self.indicator, self.params, self.timeframe
        )

    def push(self, candle: Candle) -> IndicatorResult:
        self.append(candle)
        return self.compute()
