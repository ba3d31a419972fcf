"""Base quote provider interface"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from stockfetch.domain.config.providers import ProvidersConfig
from stockfetch.domain.errors import QuoteProviderError
from stockfetch.domain.models.quote import HistoricalData, StockPrice
from stockfetch.infrastructure.http_client import fetch_json_with_retry
from stockfetch.infrastructure.retry import RetryOptions


def to_float(value: Any, default: float = 0.0) -> float:
    """Parse a numeric field that providers send as a string (or omit)"""
    if value is None or value == "":
        return default
    try:
        return float(str(value).strip().rstrip("%"))
    except ValueError:
        return default


def to_int(value: Any, default: int = 0) -> int:
    return int(to_float(value, float(default)))


def check_size(size: int) -> None:
    """Reject history sizes that would not select any candles"""
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")


class QuoteProvider(ABC):
    """Abstract base class for quote providers"""

    name = "base"
    requires_api_key = True

    def __init__(
        self,
        config: Optional[ProvidersConfig] = None,
        retry_options: Optional[RetryOptions] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize provider

        Args:
            config: Provider configuration (defaults when None)
            retry_options: Retry settings for every HTTP call
            client: Shared AsyncClient; each call opens its own when None
        """
        self.config = config or ProvidersConfig()
        self.retry_options = retry_options or RetryOptions()
        self.client = client

    @property
    def api_key(self) -> Optional[str]:
        return None

    @property
    def available(self) -> bool:
        """False when the provider cannot be called (no API key)"""
        return bool(self.api_key) or not self.requires_api_key

    def format_symbol(self, symbol: str) -> str:
        """Append the exchange suffix to bare symbols (RELIANCE -> RELIANCE.NS)"""
        symbol = symbol.strip().upper()
        if "." in symbol or not self.config.exchange_suffix:
            return symbol
        return f"{symbol}{self.config.exchange_suffix}"

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        try:
            return await fetch_json_with_retry(
                url,
                client=self.client,
                options=self.retry_options,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.config.timeout,
            )
        except ValueError as e:
            raise QuoteProviderError(self.name, "invalid JSON response") from e

    @abstractmethod
    async def get_quote(self, symbol: str) -> StockPrice:
        """Fetch the latest quote

        Raises:
            QuoteProviderError: If the provider answered without usable data
            HttpStatusError: If the HTTP call failed after retries
        """

    @abstractmethod
    async def get_history(self, symbol: str, timeframe: str = "1d", size: int = 100) -> HistoricalData:
        """Fetch up to ``size`` candles, oldest first

        Raises:
            ValueError: If size is below 1
            QuoteProviderError: If the provider answered without usable data
        """
