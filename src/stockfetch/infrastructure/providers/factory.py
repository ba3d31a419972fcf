"""Factory for creating quote providers"""

import logging
from typing import Optional

import httpx

from stockfetch.domain.config.providers import ProvidersConfig
from stockfetch.infrastructure.providers.alpha_vantage import AlphaVantageProvider
from stockfetch.infrastructure.providers.base import QuoteProvider
from stockfetch.infrastructure.providers.mock import MockProvider
from stockfetch.infrastructure.providers.twelve_data import TwelveDataProvider
from stockfetch.infrastructure.retry import RetryOptions

logger = logging.getLogger(__name__)


class QuoteProviderFactory:
    """Factory for creating quote provider instances"""

    PROVIDERS = {
        "twelve_data": TwelveDataProvider,
        "alpha_vantage": AlphaVantageProvider,
        "mock": MockProvider,
    }

    @classmethod
    def create(
        cls,
        provider_type: str,
        config: Optional[ProvidersConfig] = None,
        retry_options: Optional[RetryOptions] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> QuoteProvider:
        """Create quote provider instance

        Args:
            provider_type: Type of provider (twelve_data, alpha_vantage, mock)
            config: Provider configuration
            retry_options: Retry settings for the provider's HTTP calls
            client: Shared AsyncClient

        Returns:
            QuoteProvider instance

        Raises:
            ValueError: If provider type is not supported
        """
        provider_type_lower = provider_type.lower()

        if provider_type_lower not in cls.PROVIDERS:
            available = ", ".join(cls.PROVIDERS.keys())
            raise ValueError(
                f"Unknown quote provider: {provider_type}. "
                f"Available providers: {available}"
            )

        provider_class = cls.PROVIDERS[provider_type_lower]
        logger.debug(f"Creating {provider_type_lower} provider")
        return provider_class(config, retry_options, client)
