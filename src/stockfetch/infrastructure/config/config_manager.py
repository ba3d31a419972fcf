"""Configuration manager for loading and validating .stockfetch.yml"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from stockfetch.domain.config import AppConfig, ProvidersConfig, RetryConfig
from stockfetch.infrastructure.retry import OnRetry, RetryOptions

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".stockfetch.yml"


class ConfigurationError(Exception):
    """Configuration validation error."""

    pass


class ConfigManager:
    """Manages configuration from .stockfetch.yml and environment variables

    Loads configuration with validation using Pydantic models. Configuration priority:
    1. Default values (defined in Pydantic models)
    2. .stockfetch.yml file (searched from current directory)
    3. Environment variables (STOCKFETCH_*, provider API keys)
    4. CLI arguments (handled by CLI layer)

    Nothing is validated against the environment at import time; call
    validate_environment() once at startup.
    """

    # Environment variable -> (section, key)
    ENV_OVERRIDES = {
        "STOCKFETCH_ENV": (None, "environment"),
        "STOCKFETCH_MAX_RETRIES": ("retry", "max_retries"),
        "TWELVE_DATA_API_KEY": ("providers", "twelve_data_api_key"),
        "ALPHA_VANTAGE_API_KEY": ("providers", "alpha_vantage_api_key"),
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager

        Args:
            config_path: Path to .stockfetch.yml (searches from current dir if None)

        Raises:
            ConfigurationError: If configuration validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.config_path = config_path or self._find_config_file()
        try:
            self.config: AppConfig = self._load_config()
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                msg = error["msg"]
                errors.append(f"  - {field}: {msg}")
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(errors)
            ) from e

    def _find_config_file(self) -> Optional[Path]:
        """Find .stockfetch.yml starting from current directory

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILENAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILENAME} found, using defaults")
        return None

    def _load_config(self) -> AppConfig:
        """Load configuration from file and validate with Pydantic

        Returns:
            Validated AppConfig instance

        Raises:
            ValidationError: If configuration is invalid
        """
        config_dict: Dict[str, Any] = AppConfig().model_dump()

        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to read {self.config_path}: {e}") from e
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"{self.config_path} must contain a mapping at top level")
            config_dict = self._merge_config(config_dict, file_config)
            logger.info(f"Loaded configuration from {self.config_path}")

        config_dict = self._apply_env_overrides(config_dict)

        return AppConfig(**config_dict)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries

        Lists (e.g. retryable_status_codes) are replaced, not concatenated.
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides"""
        for env_name, (section, key) in self.ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if not value:
                continue
            target = config if section is None else config.setdefault(section, {})
            target[key] = value
        return config

    def validate_environment(self) -> None:
        """Check provider credentials once at startup

        Raises:
            ConfigurationError: In production, when no provider has a key and
                the mock fallback is disabled
        """
        providers = self.config.providers
        missing = [
            env_name
            for env_name, key in (
                ("TWELVE_DATA_API_KEY", providers.twelve_data_api_key),
                ("ALPHA_VANTAGE_API_KEY", providers.alpha_vantage_api_key),
            )
            if not key
        ]
        if not missing:
            return

        if (
            self.config.environment == "production"
            and len(missing) == 2
            and not providers.use_mock_fallback
        ):
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        logger.warning(f"Missing optional environment variables: {', '.join(missing)}")

    def get_retry_config(self) -> RetryConfig:
        return self.config.retry

    def get_providers_config(self) -> ProvidersConfig:
        return self.config.providers

    def retry_options(self, on_retry: Optional[OnRetry] = None) -> RetryOptions:
        """Build the invoker's RetryOptions from the retry section

        Args:
            on_retry: Optional observer called before each retry delay

        Returns:
            Immutable RetryOptions snapshot
        """
        retry = self.config.retry
        return RetryOptions(
            max_retries=retry.max_retries,
            initial_delay_ms=retry.initial_delay_ms,
            max_delay_ms=retry.max_delay_ms,
            backoff_multiplier=retry.backoff_multiplier,
            retryable_status_codes=frozenset(retry.retryable_status_codes),
            on_retry=on_retry,
        )
