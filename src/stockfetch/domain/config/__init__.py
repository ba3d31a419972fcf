"""Configuration models with Pydantic validation."""

from stockfetch.domain.config.app import AppConfig
from stockfetch.domain.config.cache import CacheConfig
from stockfetch.domain.config.providers import ProvidersConfig
from stockfetch.domain.config.retry import RetryConfig

__all__ = [
    "AppConfig",
    "CacheConfig",
    "ProvidersConfig",
    "RetryConfig",
]
