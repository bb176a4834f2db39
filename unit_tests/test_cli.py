"""Tests for the marketstream CLI."""

from unittest.mock import AsyncMock, MagicMock

import click
import polars as pl
import pytest
from click.testing import CliRunner

from marketstream import cli as cli_module
from marketstream.analytics.indicators.models import MACDResult, SMAResult
from marketstream.cli import (
    cli,
    format_result,
    run_candles,
    validate_log_level,
    validate_timeframe,
)
from marketstream.messaging.models.events import Candle


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    setup = MagicMock()
    monkeypatch.setattr(cli_module, "setup_logging", setup)
    return setup


@pytest.fixture
def runner():
    return CliRunner()


@pytest.mark.parametrize("value, expected", [("M1", 60), ("m5", 300), ("H4", 14400), ("120", 120)])
def test_validate_timeframe(value, expected):
    assert validate_timeframe(None, None, value) == expected


@pytest.mark.parametrize("value", ["0", "90", "W1", "-60", ""])
def test_validate_timeframe_rejects(value):
    with pytest.raises(click.BadParameter):
        validate_timeframe(None, None, value)


def test_validate_log_level():
    assert validate_log_level(None, None, "debug") == "DEBUG"
    with pytest.raises(click.BadParameter):
        validate_log_level(None, None, "LOUD")


def test_format_result_scalar_and_composite():
    sma = SMAResult(sma=[1.0, 2.0], current=2.0, timeframe=60, timestamps=[1, 2], history_size=2)
    macd = MACDResult(
        macd=[0.5], signal=[0.25], histogram=[0.25], timeframe=300, timestamps=[1], history_size=1
    )

    assert format_result(sma) == "SMA [60s] 2.00000 (history=2)"
    assert format_result(macd).startswith("MACD [300s] macd=0.00000")


def test_group_configures_logging(runner, no_logging_setup):
    result = runner.invoke(cli, ["--log-level", "warning", "--json-logs", "stream", "--help"])

    assert result.exit_code == 0
    no_logging_setup.assert_called_once_with(level=30, file=False, json_format=True)


def test_stream_rejects_unknown_indicator(runner):
    result = runner.invoke(cli, ["stream", "--asset", "EURUSD", "--indicator", "VWAP"])

    assert result.exit_code == 2
    assert "VWAP" in result.output


def test_candles_rejects_bad_timeframe(runner):
    result = runner.invoke(cli, ["candles", "--asset", "EURUSD", "--timeframe", "X9"])

    assert result.exit_code == 2
    assert "Invalid timeframe" in result.output


def test_candles_runs_with_parsed_options(runner, monkeypatch):
    calls = []

    async def fake_run_candles(client, token, asset, timeframe, count):
        calls.append((token, asset, timeframe, count))
        return 0

    monkeypatch.setattr(cli_module, "run_candles", fake_run_candles)
    result = runner.invoke(
        cli,
        ["candles", "--asset", "EURUSD", "--timeframe", "M5", "--count", "10"],
        env={"MARKETSTREAM_TOKEN": "secret"},
    )

    assert result.exit_code == 0
    assert calls == [("secret", "EURUSD", 300, 10)]


def test_stream_exit_code_follows_runner(runner, monkeypatch):
    async def fake_run_stream(client, token, asset, indicator, timeframe, duration):
        return 1

    monkeypatch.setattr(cli_module, "run_stream", fake_run_stream)
    result = runner.invoke(cli, ["stream", "--asset", "EURUSD", "--duration", "1"])

    assert result.exit_code == 1


@pytest.mark.asyncio
async def test_run_candles_prints_assembled_frame(capsys):
    candle = Candle(time=1_700_000_040, open=1.1, high=1.2, low=1.0, close=1.15)
    client = MagicMock()
    client.connect = AsyncMock(return_value=True)
    client.get_candles = AsyncMock(return_value=[candle])
    client.candles.candles_frame.return_value = pl.DataFrame([candle.model_dump()])

    assert await run_candles(client, None, "EURUSD", 60, 5) == 0

    client.get_candles.assert_awaited_once_with("EURUSD", 60, 300)
    client.candles.candles_frame.assert_called_once_with("EURUSD")
    assert "1700000040" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_run_candles_without_candles_fails(capsys):
    client = MagicMock()
    client.connect = AsyncMock(return_value=True)
    client.get_candles = AsyncMock(return_value=[])

    assert await run_candles(client, None, "EURUSD", 60, 5) == 1

    client.candles.candles_frame.assert_not_called()
    assert "No candles received for EURUSD" in capsys.readouterr().err
