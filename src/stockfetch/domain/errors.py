"""Domain exceptions shared by the HTTP layer, providers and the CLI."""

from typing import Any, Dict, Optional


class HttpStatusError(Exception):
    """Raised when an HTTP response is not successful.

    The response object is kept so callers can inspect headers or body
    after the retry layer gives up.
    """

    def __init__(self, status_code: int, reason: str = "", response: Any = None):
        self.status_code = status_code
        self.reason = reason
        self.response = response
        super().__init__(f"HTTP {status_code}: {reason}")


class QuoteProviderError(Exception):
    """A quote provider answered, but the payload is unusable (rate limit note, error status, empty data)."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class QuoteUnavailableError(Exception):
    """Every configured provider failed for a symbol and no fallback is enabled."""

    def __init__(self, symbol: str, errors: Optional[Dict[str, Exception]] = None):
        self.symbol = symbol
        self.errors = errors or {}
        details = "; ".join(f"{name}: {err}" for name, err in self.errors.items())
        message = f"No market data available for {symbol}"
        if details:
            message = f"{message} ({details})"
        super().__init__(message)
