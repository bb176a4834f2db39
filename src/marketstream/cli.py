"""
Click CLI for streaming candles and indicators.

This module implements the `marketstream` CLI tool with `stream` and `candles`
subcommands. It is a thin layer over MarketStreamClient.
"""

import asyncio
import logging
import sys
from typing import Optional

import click

from marketstream.analytics.indicators.models import IndicatorResult
from marketstream.client import MarketStreamClient
from marketstream.common.logging import setup_logging
from marketstream.config.configurations import TIMEFRAMES, VALID_PERIODS, ConnectionConfig
from marketstream.config.enumerations import IndicatorType

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

logger = logging.getLogger(__name__)


def validate_timeframe(_ctx: click.Context, _param: click.Parameter, value: str) -> int:
    """Accept a timeframe label (M1, H1, ...) or a supported number of seconds."""
    label = value.strip().upper()
    if label in TIMEFRAMES:
        return TIMEFRAMES[label]
    if label.isdigit() and int(label) in VALID_PERIODS:
        return int(label)
    raise click.BadParameter(
        f"Invalid timeframe: '{value}'. Use one of {', '.join(TIMEFRAMES)} "
        f"or seconds in {', '.join(map(str, VALID_PERIODS))}"
    )


def validate_log_level(_ctx: click.Context, _param: click.Parameter, value: str) -> str:
    value_upper = value.upper()
    if value_upper not in VALID_LOG_LEVELS:
        raise click.BadParameter(
            f"Invalid log level: '{value}'. Valid levels: {', '.join(VALID_LOG_LEVELS)}"
        )
    return value_upper


def format_result(result: IndicatorResult) -> str:
    current = result.current
    if isinstance(current, (int, float)):
        values = f"{current:.5f}"
    else:
        values = " ".join(f"{name}={value:.5f}" for name, value in current.model_dump().items())
    return f"{result.indicator} [{result.timeframe}s] {values} (history={result.history_size})"


@click.group()
@click.version_option(version="0.1.0", prog_name="marketstream")
@click.option("--log-level", default="INFO", callback=validate_log_level, help="Logging level")
@click.option("--json-logs", is_flag=True, default=False, help="Emit JSON log records")
@click.option("--log-file/--no-log-file", default=False, help="Also write logs under ./logs")
def cli(log_level: str, json_logs: bool, log_file: bool) -> None:
    """Market data streaming client.

    \b
    Commands:
      stream   Stream an indicator for one asset
      candles  Print a one-shot candle fetch
    """
    setup_logging(level=getattr(logging, log_level), file=log_file, json_format=json_logs)


async def run_stream(
    client: MarketStreamClient,
    token: Optional[str],
    asset: str,
    indicator: str,
    timeframe: int,
    duration: float,
) -> int:
    async with client:
        if not await client.connect(token=token):
            return 1

        await client.subscribe_indicator(
            asset,
            indicator,
            lambda result: click.echo(format_result(result)),
            timeframe=timeframe,
        )
        if duration > 0:
            await asyncio.sleep(duration)
        else:
            await asyncio.Event().wait()
    return 0


async def run_candles(
    client: MarketStreamClient, token: Optional[str], asset: str, timeframe: int, count: int
) -> int:
    async with client:
        if not await client.connect(token=token):
            return 1

        candles = await client.get_candles(asset, timeframe, timeframe * count)
        if not candles:
            click.echo(f"No candles received for {asset}", err=True)
            return 1

        frame = client.candles.candles_frame(asset)
        click.echo(frame.tail(count))
    return 0


@cli.command()
@click.option("--asset", required=True, help="Asset symbol, e.g. EURUSD")
@click.option(
    "--indicator",
    default="RSI",
    type=click.Choice([i.value for i in IndicatorType], case_sensitive=False),
    help="Indicator to compute",
)
@click.option(
    "--timeframe", default="M1", callback=validate_timeframe, help="M1, M5, ... or seconds"
)
@click.option("--token", envvar="MARKETSTREAM_TOKEN", default=None, help="Session token")
@click.option(
    "--duration", default=0.0, type=float, help="Seconds to stream; 0 runs until interrupted"
)
def stream(
    asset: str, indicator: str, timeframe: int, token: Optional[str], duration: float
) -> None:
    """Stream INDICATOR values for ASSET as new candles arrive.

    \b
    Example:
      marketstream stream --asset EURUSD --indicator MACD --timeframe M5
    """
    client = MarketStreamClient.create(ConnectionConfig())
    try:
        code = asyncio.run(run_stream(client, token, asset, indicator, timeframe, duration))
    except KeyboardInterrupt:
        logger.info("Received interrupt signal - shutting down")
        code = 0
    sys.exit(code)


@cli.command()
@click.option("--asset", required=True, help="Asset symbol, e.g. EURUSD")
@click.option(
    "--timeframe", default="M1", callback=validate_timeframe, help="M1, M5, ... or seconds"
)
@click.option("--count", default=100, type=int, help="Number of candles to request")
@click.option("--token", envvar="MARKETSTREAM_TOKEN", default=None, help="Session token")
def candles(asset: str, timeframe: int, count: int, token: Optional[str]) -> None:
    """Fetch and print recent candles for ASSET."""
    client = MarketStreamClient.create(ConnectionConfig())
    sys.exit(asyncio.run(run_candles(client, token, asset, timeframe, count)))


def main() -> None:
    """Entry point for the marketstream CLI."""
    cli()


if __name__ == "__main__":
    main()
