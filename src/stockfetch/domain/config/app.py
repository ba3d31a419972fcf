"""Main application configuration model."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from stockfetch.domain.config.cache import CacheConfig
from stockfetch.domain.config.providers import ProvidersConfig
from stockfetch.domain.config.retry import RetryConfig


class AppConfig(BaseModel):
    """Main application configuration.

    This is the root configuration model that aggregates all configuration sections.
    Validation is performed at load time to fail fast on configuration errors.

    Attributes:
        environment: "development" or "production"
        retry: Retry logic configuration
        providers: Quote provider configuration
        cache: Quote cache configuration
    """

    environment: Literal["development", "production"] = "development"
    retry: RetryConfig = Field(default_factory=RetryConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    model_config = ConfigDict(
        validate_assignment=True,  # Validate on attribute assignment
        extra="forbid",  # Reject unknown fields
        json_schema_extra={
            "example": {
                "environment": "development",
                "retry": {
                    "max_retries": 3,
                    "initial_delay_ms": 1000,
                    "max_delay_ms": 10000,
                    "backoff_multiplier": 2.0,
                    "retryable_status_codes": [408, 429, 500, 502, 503, 504],
                },
                "providers": {
                    "order": ["twelve_data", "alpha_vantage"],
                    "exchange_suffix": ".NS",
                    "timeout": 10.0,
                    "use_mock_fallback": True,
                },
                "cache": {
                    "enabled": True,
                    "ttl_seconds": 60,
                },
            }
        },
    )
