"""Service for fetching quotes across providers with caching and fallback"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from stockfetch.domain.config import AppConfig
from stockfetch.domain.errors import HttpStatusError, QuoteProviderError, QuoteUnavailableError
from stockfetch.domain.models.quote import HistoricalData, StockPrice
from stockfetch.infrastructure.providers.base import QuoteProvider, check_size
from stockfetch.infrastructure.providers.factory import QuoteProviderFactory
from stockfetch.infrastructure.retry import RetryOptions

logger = logging.getLogger(__name__)

# Failures that make the service move on to the next provider
PROVIDER_FAILURES = (QuoteProviderError, HttpStatusError, httpx.HTTPError)


class MarketDataService:
    """Fetches market data from the first provider that answers"""

    def __init__(
        self,
        providers: Sequence[QuoteProvider],
        fallback: Optional[QuoteProvider] = None,
        cache_ttl: Optional[float] = 60.0,
        clock: Callable[[], float] = time.monotonic,
        batch_size: int = 5,
        batch_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize market data service

        Args:
            providers: Providers to try, in order
            fallback: Provider used when all others failed (e.g. MockProvider)
            cache_ttl: Seconds a result stays cached (None disables caching)
            clock: Monotonic time source
            batch_size: Symbols fetched concurrently by get_quotes
            batch_delay: Seconds to pause between get_quotes batches
            sleep: Async sleep taking seconds
        """
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.providers = list(providers)
        self.fallback = fallback
        self.cache_ttl = cache_ttl
        self._clock = clock
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._sleep = sleep
        self._cache: Dict[str, Tuple[float, Any]] = {}

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        retry_options: Optional[RetryOptions] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "MarketDataService":
        """Build the service and its providers from application config"""
        providers = [
            QuoteProviderFactory.create(name, config.providers, retry_options, client)
            for name in config.providers.order
        ]
        fallback = None
        if config.providers.use_mock_fallback:
            fallback = QuoteProviderFactory.create("mock", config.providers, retry_options, client)
        cache_ttl = config.cache.ttl_seconds if config.cache.enabled else None
        return cls(
            providers,
            fallback=fallback,
            cache_ttl=cache_ttl,
            batch_size=config.providers.batch_size,
            batch_delay=config.providers.batch_delay,
        )

    def _cache_get(self, key: str) -> Optional[Any]:
        if self.cache_ttl is None:
            return None
        entry = self._cache.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.cache_ttl:
            del self._cache[key]
            return None
        return value

    def _cache_put(self, key: str, value: Any) -> None:
        if self.cache_ttl is None:
            return
        now = self._clock()
        expired = [k for k, (stored_at, _) in self._cache.items() if now - stored_at >= self.cache_ttl]
        for k in expired:
            del self._cache[k]
        self._cache[key] = (now, value)

    def clear_cache(self) -> None:
        self._cache.clear()

    async def _first_available(
        self, symbol: str, fetch: Callable[[QuoteProvider], Awaitable[Any]]
    ) -> Any:
        errors: Dict[str, Exception] = {}
        last_error: Optional[Exception] = None

        for provider in self.providers:
            if not provider.available:
                logger.debug(f"Skipping {provider.name}: API key not configured")
                continue
            try:
                result = await fetch(provider)
            except PROVIDER_FAILURES as e:
                logger.warning(f"{provider.name} failed for {symbol}: {e}")
                errors[provider.name] = e
                last_error = e
                continue
            logger.info(f"Fetched {symbol} from {provider.name}")
            return result

        if self.fallback is not None:
            logger.warning(f"Using {self.fallback.name} data for {symbol}: no provider answered")
            return await fetch(self.fallback)

        raise QuoteUnavailableError(symbol, errors) from last_error

    async def get_quote(self, symbol: str) -> StockPrice:
        """Get the latest quote for a symbol

        Raises:
            QuoteUnavailableError: If every provider failed and no fallback is set
        """
        key = f"price_{symbol}"
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        price = await self._first_available(symbol, lambda p: p.get_quote(symbol))
        self._cache_put(key, price)
        return price

    async def get_quotes(self, symbols: Sequence[str]) -> List[StockPrice]:
        """Fetch several quotes, preserving input order

        Symbols go out in concurrent batches of ``batch_size`` with a
        ``batch_delay`` pause between batches.
        """
        symbols = list(symbols)
        prices: List[StockPrice] = []
        for start in range(0, len(symbols), self.batch_size):
            if start:
                await self._sleep(self.batch_delay)
            batch = symbols[start : start + self.batch_size]
            prices.extend(await asyncio.gather(*(self.get_quote(s) for s in batch)))
        return prices

    async def get_history(self, symbol: str, timeframe: str = "1d", size: int = 100) -> HistoricalData:
        """Get candlestick history for a symbol

        Raises:
            QuoteUnavailableError: If every provider failed and no fallback is set
            ValueError: If size is below 1
        """
        check_size(size)
        key = f"historical_{symbol}_{timeframe}_{size}"
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        history = await self._first_available(
            symbol, lambda p: p.get_history(symbol, timeframe, size)
        )
        self._cache_put(key, history)
        return history
