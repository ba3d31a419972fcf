"""CLI interface for stockfetch"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence

import click
import httpx

from stockfetch.application.market_data_service import MarketDataService
from stockfetch.domain.errors import QuoteUnavailableError
from stockfetch.domain.models.quote import TIMEFRAMES, HistoricalData, StockPrice
from stockfetch.infrastructure.config.config_manager import ConfigManager, ConfigurationError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _load_config(ctx: click.Context) -> ConfigManager:
    config_manager = ConfigManager(config_path=ctx.obj.get("config_path"))
    config_manager.validate_environment()
    return config_manager


def format_price(price: StockPrice) -> str:
    sign = "+" if price.is_up else ""
    return (
        f"{price.symbol:<12} {price.price:>12.2f} "
        f"{sign}{price.change:.2f} ({sign}{price.change_percent:.2f}%) "
        f"vol {price.volume:,} [{price.source}]"
    )


def format_history(history: HistoricalData) -> List[str]:
    lines = [f"{history.symbol} {history.timeframe} ({len(history)} candles, {history.source})"]
    for candle in history.candles:
        lines.append(
            f"{candle.timestamp:<26} O {candle.open:>10.2f} H {candle.high:>10.2f} "
            f"L {candle.low:>10.2f} C {candle.close:>10.2f} V {candle.volume:,}"
        )
    return lines


async def _fetch_quotes(config_manager: ConfigManager, symbols: Sequence[str]) -> List[StockPrice]:
    async with httpx.AsyncClient() as client:
        service = MarketDataService.from_config(
            config_manager.config, config_manager.retry_options(), client
        )
        return await service.get_quotes(symbols)


async def _fetch_history(
    config_manager: ConfigManager, symbol: str, timeframe: str, size: int
) -> HistoricalData:
    async with httpx.AsyncClient() as client:
        service = MarketDataService.from_config(
            config_manager.config, config_manager.retry_options(), client
        )
        return await service.get_history(symbol, timeframe, size)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .stockfetch.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """stockfetch - resilient NSE/BSE market data"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("symbols", nargs=-1, required=True)
@click.pass_context
def quote(ctx, symbols: Sequence[str]):
    """Print the latest quote for each SYMBOL (e.g. RELIANCE TCS)."""
    verbose = ctx.obj.get("verbose", False)
    try:
        config_manager = _load_config(ctx)
        prices = asyncio.run(_fetch_quotes(config_manager, [s.upper() for s in symbols]))
    except (ConfigurationError, QuoteUnavailableError) as e:
        _die(str(e), verbose=verbose, exc=e)
    except Exception as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)

    for price in prices:
        click.echo(format_price(price))


@cli.command()
@click.argument("symbol")
@click.option(
    "--timeframe",
    type=click.Choice(TIMEFRAMES),
    default="1d",
    show_default=True,
    help="Candle size",
)
@click.option("--size", type=click.IntRange(1, 5000), default=30, show_default=True, help="Number of candles")
@click.pass_context
def history(ctx, symbol: str, timeframe: str, size: int):
    """Print candlestick history for SYMBOL."""
    verbose = ctx.obj.get("verbose", False)
    try:
        config_manager = _load_config(ctx)
        data = asyncio.run(_fetch_history(config_manager, symbol.upper(), timeframe, size))
    except (ConfigurationError, QuoteUnavailableError) as e:
        _die(str(e), verbose=verbose, exc=e)
    except Exception as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)

    for line in format_history(data):
        click.echo(line)


@cli.command()
@click.pass_context
def backoff(ctx):
    """Show the retry delay schedule produced by the current config."""
    verbose = ctx.obj.get("verbose", False)
    try:
        options = ConfigManager(config_path=ctx.obj.get("config_path")).retry_options()
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)

    codes = ", ".join(str(c) for c in sorted(options.retryable_status_codes))
    click.echo(f"Max attempts: {options.max_attempts}")
    click.echo(f"Retryable status codes: {codes}")
    total = 0.0
    for attempt in range(options.max_retries):
        delay = options.delay_ms(attempt)
        total += delay
        click.echo(f"Retry {attempt + 1}: wait {delay:.0f}ms")
    click.echo(f"Worst-case total wait: {total:.0f}ms")


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
