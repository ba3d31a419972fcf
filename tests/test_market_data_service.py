"""Tests for MarketDataService"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from stockfetch.application.market_data_service import MarketDataService
from stockfetch.domain.config import AppConfig
from stockfetch.domain.config.providers import ProvidersConfig
from stockfetch.domain.errors import HttpStatusError, QuoteProviderError, QuoteUnavailableError
from stockfetch.domain.models.quote import Candle, HistoricalData, StockPrice
from stockfetch.infrastructure.providers import (
    AlphaVantageProvider,
    MockProvider,
    QuoteProvider,
    TwelveDataProvider,
)
from stockfetch.infrastructure.retry import RetryOptions


class FakeProvider(QuoteProvider):
    """Provider returning canned prices or raising a given error"""

    def __init__(self, name, price=None, error=None, available=True):
        super().__init__()
        self.name = name
        self._price = price
        self._error = error
        self._available = available
        self.calls = 0

    @property
    def available(self):
        return self._available

    async def get_quote(self, symbol):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return StockPrice(symbol=symbol, price=self._price, source=self.name)

    async def get_history(self, symbol, timeframe="1d", size=100):
        self.calls += 1
        if self._error is not None:
            raise self._error
        candles = [Candle(timestamp="2024-05-10", open=1, high=2, low=1, close=self._price)]
        return HistoricalData(symbol=symbol, timeframe=timeframe, candles=candles, source=self.name)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_first_provider_wins():
    first = FakeProvider("first", price=100.0)
    second = FakeProvider("second", price=200.0)
    service = MarketDataService([first, second])

    price = asyncio.run(service.get_quote("RELIANCE"))

    assert price.price == 100.0
    assert price.source == "first"
    assert second.calls == 0


def test_falls_through_failing_and_unavailable_providers():
    no_key = FakeProvider("no_key", price=1.0, available=False)
    rate_limited = FakeProvider("rate_limited", error=QuoteProviderError("rate_limited", "rate limit reached"))
    down = FakeProvider("down", error=HttpStatusError(503, "Service Unavailable"))
    working = FakeProvider("working", price=300.0)
    service = MarketDataService([no_key, rate_limited, down, working])

    price = asyncio.run(service.get_quote("TCS"))

    assert price.source == "working"
    assert no_key.calls == 0
    assert rate_limited.calls == 1
    assert down.calls == 1


def test_network_error_moves_to_next_provider():
    offline = FakeProvider("offline", error=httpx.ConnectError("connection refused"))
    backup = FakeProvider("backup", price=42.0)

    price = asyncio.run(MarketDataService([offline, backup]).get_quote("INFY"))

    assert price.source == "backup"


def test_fallback_used_when_all_fail():
    failing = FakeProvider("failing", error=QuoteProviderError("failing", "empty quote"))
    fallback = FakeProvider("mock", price=5.0)
    service = MarketDataService([failing], fallback=fallback)

    assert asyncio.run(service.get_quote("ITC")).source == "mock"


def test_unavailable_error_lists_provider_failures():
    error = HttpStatusError(500, "Internal Server Error")
    failing = FakeProvider("twelve_data", error=error)
    service = MarketDataService([failing])

    with pytest.raises(QuoteUnavailableError) as exc_info:
        asyncio.run(service.get_quote("SBIN"))

    assert exc_info.value.symbol == "SBIN"
    assert exc_info.value.errors == {"twelve_data": error}
    assert exc_info.value.__cause__ is error
    assert "HTTP 500" in str(exc_info.value)


def test_unexpected_errors_propagate():
    broken = FakeProvider("broken", error=RuntimeError("bug"))
    backup = FakeProvider("backup", price=1.0)

    with pytest.raises(RuntimeError):
        asyncio.run(MarketDataService([broken, backup]).get_quote("SBIN"))
    assert backup.calls == 0


def test_unparseable_response_falls_back_to_mock():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            config = ProvidersConfig(twelve_data_api_key="td-key", order=["twelve_data"])
            provider = TwelveDataProvider(config, RetryOptions(max_retries=0), client)
            service = MarketDataService([provider], fallback=MockProvider(seed=1))
            return await service.get_quote("RELIANCE")

    price = asyncio.run(scenario())

    assert price.symbol == "RELIANCE"
    assert price.source == "mock"



def test_quotes_are_cached_until_ttl_expires():
    clock = FakeClock()
    provider = FakeProvider("only", price=10.0)
    service = MarketDataService([provider], cache_ttl=60, clock=clock)

    asyncio.run(service.get_quote("WIPRO"))
    clock.now = 59.0
    asyncio.run(service.get_quote("WIPRO"))
    assert provider.calls == 1

    clock.now = 60.0
    asyncio.run(service.get_quote("WIPRO"))
    assert provider.calls == 2


def test_cache_disabled():
    provider = FakeProvider("only", price=10.0)
    service = MarketDataService([provider], cache_ttl=None)

    asyncio.run(service.get_quote("WIPRO"))
    asyncio.run(service.get_quote("WIPRO"))
    assert provider.calls == 2


def test_clear_cache():
    provider = FakeProvider("only", price=10.0)
    service = MarketDataService([provider])

    asyncio.run(service.get_quote("WIPRO"))
    service.clear_cache()
    asyncio.run(service.get_quote("WIPRO"))
    assert provider.calls == 2


def test_history_cached_per_timeframe():
    provider = FakeProvider("only", price=10.0)
    service = MarketDataService([provider])

    asyncio.run(service.get_history("WIPRO", "1d", 10))
    asyncio.run(service.get_history("WIPRO", "1d", 10))
    asyncio.run(service.get_history("WIPRO", "1w", 10))
    assert provider.calls == 2


def test_get_quotes_preserves_order():
    provider = FakeProvider("only", price=10.0)
    service = MarketDataService([provider])

    prices = asyncio.run(service.get_quotes(["TCS", "INFY", "ITC"]))

    assert [p.symbol for p in prices] == ["TCS", "INFY", "ITC"]


def test_from_config_builds_providers_in_order():
    config = AppConfig(
        providers={"order": ["alpha_vantage", "twelve_data"], "use_mock_fallback": True},
        cache={"enabled": False},
    )

    service = MarketDataService.from_config(config)

    assert [type(p) for p in service.providers] == [AlphaVantageProvider, TwelveDataProvider]
    assert isinstance(service.fallback, MockProvider)
    assert service.cache_ttl is None


def test_from_config_without_keys_uses_mock_only():
    service = MarketDataService.from_config(AppConfig())

    price = asyncio.run(service.get_quote("RELIANCE"))

    assert price.source == "mock"
    assert service.cache_ttl == 60


def test_expired_entries_pruned_on_store():
    clock = FakeClock()
    provider = FakeProvider("only", price=10.0)
    service = MarketDataService([provider], cache_ttl=60, clock=clock)

    asyncio.run(service.get_quote("TCS"))
    asyncio.run(service.get_quote("INFY"))
    clock.now = 61.0
    asyncio.run(service.get_quote("ITC"))

    assert set(service._cache) == {"price_ITC"}


class SlowProvider(FakeProvider):
    """Records how many quotes are in flight at once"""

    def __init__(self, name, price):
        super().__init__(name, price=price)
        self.in_flight = 0
        self.peak = 0

    async def get_quote(self, symbol):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1
        return await super().get_quote(symbol)


def test_get_quotes_fetches_in_batches():
    provider = SlowProvider("only", price=10.0)
    pauses = []

    async def sleep(seconds):
        pauses.append(seconds)

    service = MarketDataService([provider], cache_ttl=None, batch_size=5, batch_delay=1.0, sleep=sleep)
    symbols = [f"SYM{i}" for i in range(20)]

    prices = asyncio.run(service.get_quotes(symbols))

    assert [p.symbol for p in prices] == symbols
    assert provider.peak == 5
    assert provider.calls == 20
    assert pauses == [1.0, 1.0, 1.0]


def test_get_quotes_single_batch_does_not_pause():
    pauses = []

    async def sleep(seconds):
        pauses.append(seconds)

    service = MarketDataService([FakeProvider("only", price=10.0)], sleep=sleep)

    asyncio.run(service.get_quotes(["TCS", "INFY"]))

    assert pauses == []


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError, match="batch_size"):
        MarketDataService([], batch_size=0)


@pytest.mark.parametrize("size", [0, -1])
def test_history_rejects_non_positive_size(size):
    provider = FakeProvider("only", price=10.0)

    with pytest.raises(ValueError, match="size must be >= 1"):
        asyncio.run(MarketDataService([provider]).get_history("WIPRO", "1d", size))
    assert provider.calls == 0


def test_from_config_passes_batch_settings():
    config = AppConfig(providers={"batch_size": 3, "batch_delay": 0.5})

    service = MarketDataService.from_config(config)

    assert service.batch_size == 3
    assert service.batch_delay == 0.5
