"""Unit tests for IndicatorEngine result building and IndicatorWindow."""

import pytest
from pydantic import TypeAdapter

from marketstream.analytics.engine import (
    IndicatorEngine,
    IndicatorWindow,
    normalize_params,
    resolve_indicator,
    tail_aligned,
)
from marketstream.analytics.indicators.models import (
    IndicatorResult,
    RSIResult,
    SMAResult,
)
from marketstream.common.exceptions import UnsupportedIndicatorError
from marketstream.config.enumerations import IndicatorType
from marketstream.messaging.models.events import Candle

T0 = 1_699_999_980


def make_candles(closes, start=T0, step=60):
    return [
        Candle(time=start + step * i, open=close, high=close + 1, low=close - 1, close=close)
        for i, close in enumerate(closes)
    ]


@pytest.fixture
def engine():
    return IndicatorEngine()


@pytest.fixture
def candles():
    return make_candles([100.0 + (i % 7) - 0.3 * (i % 4) for i in range(80)])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def test_resolve_indicator_accepts_names_and_enums():
    assert resolve_indicator("rsi") is IndicatorType.RSI
    assert resolve_indicator(IndicatorType.MACD) is IndicatorType.MACD


def test_resolve_indicator_rejects_unknown():
    with pytest.raises(UnsupportedIndicatorError) as exc_info:
        resolve_indicator("VWAP")

    assert exc_info.value.indicator == "VWAP"


def test_normalize_params_accepts_camel_case():
    assert normalize_params({"fastPeriod": 5, "k_period": 3}) == {"fast_period": 5, "k_period": 3}
    assert normalize_params(None) == {}


def test_tail_aligned():
    assert tail_aligned([1, 2, 3, 4], [0.5, 0.6]) == [3, 4]
    assert tail_aligned([1, 2, 3], []) == []


# ---------------------------------------------------------------------------
# calculate
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("indicator", list(IndicatorType))
def test_every_family_produces_a_tagged_result(engine, candles, indicator):
    result = engine.calculate(candles, indicator)

    assert result.indicator == indicator.value
    assert result.timeframe == 60
    assert len(result.timestamps) == result.history_size
    if result.timestamps:
        assert result.timestamps[-1] == candles[-1].time


def test_sma_scenario(engine):
    result = engine.calculate(make_candles([1, 2, 3, 4, 5]), "SMA", {"period": 3})

    assert isinstance(result, SMAResult)
    assert result.sma == [2.0, 3.0, 4.0]
    assert result.current == 4.0
    assert result.timestamps == [T0 + 120, T0 + 180, T0 + 240]


def test_default_params_are_applied(engine, candles):
    result = engine.calculate(candles, IndicatorType.RSI)

    assert isinstance(result, RSIResult)
    assert len(result.rsi) == len(candles) - 14


def test_camel_case_params_override_defaults(engine, candles):
    result = engine.calculate(
        candles, "MACD", {"fastPeriod": 5, "slowPeriod": 10, "signalPeriod": 4}
    )
    default = engine.calculate(candles, "MACD")

    assert result.macd != default.macd


def test_empty_results_keep_defaults(engine):
    rsi = engine.calculate([], "RSI")
    stochastic = engine.calculate([], "STOCHASTIC")
    macd = engine.calculate([], "MACD")

    assert rsi.rsi == [] and rsi.current == 50.0
    assert stochastic.current.k == 50.0 and stochastic.current.d == 50.0
    assert macd.current.macd == 0.0
    assert macd.history_size == 0


def test_flat_rsi_reports_100(engine):
    result = engine.calculate(make_candles([1.0] * 20), "RSI", {"period": 14})

    assert result.rsi == [100.0] * 6
    assert result.current == 100.0


def test_ichimoku_timestamps_follow_kijun(engine, candles):
    result = engine.calculate(candles, "ICHIMOKU")

    assert result.history_size == len(result.kijun) == len(candles) - 26 + 1
    assert result.current.kijun == result.kijun[-1]


def test_adx_timestamps_follow_adx_line(engine, candles):
    result = engine.calculate(candles, "ADX")

    assert result.history_size == len(result.adx)
    assert len(result.plus_di) > len(result.adx)


def test_unsupported_family_raises(engine, candles):
    with pytest.raises(UnsupportedIndicatorError):
        engine.calculate(candles, "FIBONACCI")


def test_results_round_trip_through_discriminated_union(engine, candles):
    result = engine.calculate(candles, "BOLLINGER")

    parsed = TypeAdapter(IndicatorResult).validate_python(result.model_dump())

    assert parsed == result


# ---------------------------------------------------------------------------
# IndicatorWindow
# ---------------------------------------------------------------------------


def test_window_is_bounded(engine):
    window = IndicatorWindow(engine, "SMA", {"period": 3}, size=5)

    window.extend(make_candles(list(range(10))))

    assert len(window) == 5
    assert window.candles[0].time == T0 + 5 * 60


def test_window_replaces_candle_with_same_time(engine):
    window = IndicatorWindow(engine, "SMA", {"period": 2})
    window.extend(make_candles([1.0, 2.0]))

    result = window.push(Candle(time=T0 + 60, open=4.0, high=4.0, low=4.0, close=4.0))

    assert len(window) == 2
    assert result.sma == [2.5]


def test_window_push_recomputes(engine):
    window = IndicatorWindow(engine, IndicatorType.EMA, {"period": 3}, timeframe=300)
    window.extend(make_candles([10.0, 10.0]))

    result = window.push(make_candles([20.0], start=T0 + 120)[0])

    assert result.timeframe == 300
    assert result.ema == pytest.approx([10.0, 10.0, 15.0])


def test_window_rejects_unknown_indicator(engine):
    with pytest.raises(UnsupportedIndicatorError):
        IndicatorWindow(engine, "VWAP")
