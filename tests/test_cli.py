"""Tests for CLI interface"""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, patch

import click
import pytest
import yaml
from click.testing import CliRunner

from stockfetch.cli import _die, cli, format_history, format_price, main, setup_logging
from stockfetch.domain.errors import QuoteUnavailableError
from stockfetch.domain.models.quote import Candle, HistoricalData, StockPrice
from stockfetch.infrastructure.config.config_manager import ConfigManager


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ConfigManager.ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestSetupLogging:
    """Tests for setup_logging function"""

    def test_setup_logging_info_level(self):
        """Test that logging is set to INFO level by default"""
        setup_logging(verbose=False)
        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_setup_logging_debug_level(self):
        """Test that logging is set to DEBUG level when verbose"""
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG


class TestDie:
    """Tests for _die function"""

    def test_die_without_exception(self):
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=False)

    def test_die_with_exception_verbose(self):
        exc = ValueError("Test exception")
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=True, exc=exc)


class TestFormatting:
    """Tests for output formatting"""

    def test_format_price_gain(self):
        price = StockPrice(symbol="TCS", price=3875.25, change=15.25, change_percent=0.4, volume=1500000, source="alpha_vantage")
        line = format_price(price)
        assert line.startswith("TCS")
        assert "3875.25" in line
        assert "+15.25 (+0.40%)" in line
        assert "1,500,000" in line
        assert "[alpha_vantage]" in line

    def test_format_price_loss(self):
        line = format_price(StockPrice(symbol="ITC", price=430.0, change=-2.5, change_percent=-0.58))
        assert "-2.50 (-0.58%)" in line

    def test_format_history(self):
        history = HistoricalData(
            symbol="INFY",
            timeframe="1d",
            candles=[Candle(timestamp="2024-05-10", open=1420, high=1430, low=1410, close=1425, volume=100)],
            source="twelve_data",
        )
        lines = format_history(history)
        assert lines[0] == "INFY 1d (1 candles, twelve_data)"
        assert "C    1425.00" in lines[1]


class TestQuoteCommand:
    """Tests for the quote command"""

    def test_quote_prints_each_symbol(self):
        prices = [StockPrice(symbol="TCS", price=100.0), StockPrice(symbol="INFY", price=200.0)]
        runner = CliRunner()
        with patch("stockfetch.cli._fetch_quotes", new=AsyncMock(return_value=prices)) as fetch:
            result = runner.invoke(cli, ["quote", "tcs", "infy"], obj={})

        assert result.exit_code == 0, result.output
        assert "TCS" in result.output
        assert "INFY" in result.output
        assert fetch.call_args.args[1] == ["TCS", "INFY"]

    def test_quote_unavailable_exits_with_error(self):
        runner = CliRunner()
        error = QuoteUnavailableError("TCS")
        with patch("stockfetch.cli._fetch_quotes", new=AsyncMock(side_effect=error)):
            result = runner.invoke(cli, ["quote", "TCS"], obj={})

        assert result.exit_code == 1
        assert "No market data available for TCS" in result.output

    def test_quote_with_mock_fallback_end_to_end(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["quote", "RELIANCE"], obj={})

        assert result.exit_code == 0, result.output
        assert "RELIANCE" in result.output
        assert "[mock]" in result.output

    def test_quote_requires_symbol(self):
        result = CliRunner().invoke(cli, ["quote"], obj={})
        assert result.exit_code == 2

    def test_invalid_config_reported(self, tmp_path):
        config = tmp_path / "bad.yml"
        config.write_text(yaml.safe_dump({"retry": {"backoff_multiplier": 0.5}}), encoding="utf-8")

        result = CliRunner().invoke(cli, ["--config", str(config), "quote", "TCS"], obj={})

        assert result.exit_code == 1
        assert "retry.backoff_multiplier" in result.output


class TestHistoryCommand:
    """Tests for the history command"""

    def test_history_prints_candles(self):
        history = HistoricalData(
            symbol="SBIN",
            timeframe="1w",
            candles=[Candle(timestamp="2024-05-10", open=800, high=820, low=790, close=815, volume=10)],
            source="twelve_data",
        )
        runner = CliRunner()
        with patch("stockfetch.cli._fetch_history", new=AsyncMock(return_value=history)) as fetch:
            result = runner.invoke(cli, ["history", "sbin", "--timeframe", "1w", "--size", "5"], obj={})

        assert result.exit_code == 0, result.output
        assert "SBIN 1w (1 candles, twelve_data)" in result.output
        assert fetch.call_args.args[1:] == ("SBIN", "1w", 5)

    def test_history_rejects_unknown_timeframe(self):
        result = CliRunner().invoke(cli, ["history", "SBIN", "--timeframe", "2d"], obj={})
        assert result.exit_code == 2


class TestBackoffCommand:
    """Tests for the backoff command"""

    def test_default_schedule(self):
        result = CliRunner().invoke(cli, ["backoff"], obj={})

        assert result.exit_code == 0, result.output
        assert "Max attempts: 4" in result.output
        assert "Retryable status codes: 408, 429, 500, 502, 503, 504" in result.output
        assert "Retry 1: wait 1000ms" in result.output
        assert "Retry 3: wait 4000ms" in result.output
        assert "Worst-case total wait: 7000ms" in result.output

    def test_schedule_is_capped(self, tmp_path):
        config = tmp_path / "retry.yml"
        config.write_text(
            yaml.safe_dump({"retry": {"max_retries": 5, "max_delay_ms": 5000}}), encoding="utf-8"
        )

        result = CliRunner().invoke(cli, ["--config", str(config), "backoff"], obj={})

        assert result.exit_code == 0, result.output
        assert "Retry 4: wait 5000ms" in result.output
        assert "Retry 5: wait 5000ms" in result.output


def test_main_shows_help(monkeypatch):
    monkeypatch.setattr("sys.argv", ["stockfetch", "--help"])
    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == 0
