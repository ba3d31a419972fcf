"""Quote providers"""

from stockfetch.infrastructure.providers.alpha_vantage import AlphaVantageProvider
from stockfetch.infrastructure.providers.base import QuoteProvider
from stockfetch.infrastructure.providers.factory import QuoteProviderFactory
from stockfetch.infrastructure.providers.mock import MockProvider
from stockfetch.infrastructure.providers.twelve_data import TwelveDataProvider

__all__ = [
    "QuoteProvider",
    "QuoteProviderFactory",
    "TwelveDataProvider",
    "AlphaVantageProvider",
    "MockProvider",
]
