"""Retry-with-backoff invoker built on tenacity.

Wraps an operation (a coroutine function or a plain callable) with bounded
exponential backoff. Each failure is classified once into a FailureKind;
only transient failures are retried, and whatever the operation raised last
reaches the caller unchanged.
"""

from __future__ import annotations

import asyncio
import errno
import functools
import inspect
import logging
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Awaitable, Callable, FrozenSet, Iterable, Optional, TypeVar

import httpx
import requests
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
)

from stockfetch.domain.config.retry import DEFAULT_RETRYABLE_STATUS_CODES
from stockfetch.domain.errors import HttpStatusError

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnRetry = Callable[[int, BaseException], None]

_TIMEOUT_ERRNOS = frozenset({errno.ETIMEDOUT, errno.ECONNABORTED})


class FailureKind(str, Enum):
    """What went wrong in a single attempt"""

    NETWORK_FAILURE = "network_failure"
    HTTP_STATUS = "http_status"
    TIMEOUT = "timeout"
    OTHER = "other"


@dataclass(frozen=True)
class ClassifiedError:
    """A failed attempt's exception tagged with its FailureKind"""

    kind: FailureKind
    error: BaseException
    status_code: Optional[int] = None


@dataclass(frozen=True)
class RetryOptions:
    """Per-invocation retry settings.

    Delays are in milliseconds. ``retryable_status_codes`` given by the caller
    replaces the default set, it is never merged with it.
    """

    max_retries: int = 3
    initial_delay_ms: float = 1000.0
    max_delay_ms: float = 10000.0
    backoff_multiplier: float = 2.0
    retryable_status_codes: FrozenSet[int] = DEFAULT_RETRYABLE_STATUS_CODES
    on_retry: Optional[OnRetry] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self, "retryable_status_codes", frozenset(int(c) for c in self.retryable_status_codes)
        )
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay_ms <= 0:
            raise ValueError("initial_delay_ms must be positive")
        if self.max_delay_ms <= 0:
            raise ValueError("max_delay_ms must be positive")
        if self.backoff_multiplier <= 1:
            raise ValueError("backoff_multiplier must be greater than 1")
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError("max_delay_ms must be >= initial_delay_ms")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def merge(self, **overrides: Any) -> RetryOptions:
        """Return a copy with the non-None overrides applied"""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown retry option(s): {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    def delay_ms(self, attempt: int) -> float:
        return calculate_delay(
            attempt, self.initial_delay_ms, self.max_delay_ms, self.backoff_multiplier
        )


def classify_error(error: BaseException) -> ClassifiedError:
    """Tag an exception raised by one attempt.

    Args:
        error: Exception raised by the wrapped operation

    Returns:
        ClassifiedError with the kind and, for HTTP failures, the status code
    """
    if isinstance(error, HttpStatusError):
        return ClassifiedError(FailureKind.HTTP_STATUS, error, error.status_code)
    if isinstance(error, httpx.HTTPStatusError):
        return ClassifiedError(FailureKind.HTTP_STATUS, error, error.response.status_code)
    if isinstance(error, requests.HTTPError) and error.response is not None:
        return ClassifiedError(FailureKind.HTTP_STATUS, error, error.response.status_code)

    # requests.ConnectTimeout is also a ConnectionError, so timeouts go first
    if isinstance(error, (httpx.TimeoutException, requests.Timeout, TimeoutError, asyncio.TimeoutError)):
        return ClassifiedError(FailureKind.TIMEOUT, error)
    if isinstance(error, (httpx.TransportError, requests.ConnectionError)):
        return ClassifiedError(FailureKind.NETWORK_FAILURE, error)
    # Remaining requests errors (InvalidURL, MissingSchema...) subclass OSError
    if isinstance(error, requests.RequestException):
        return ClassifiedError(FailureKind.OTHER, error)
    if isinstance(error, OSError):
        if error.errno in _TIMEOUT_ERRNOS:
            return ClassifiedError(FailureKind.TIMEOUT, error)
        return ClassifiedError(FailureKind.NETWORK_FAILURE, error)
    return ClassifiedError(FailureKind.OTHER, error)


def is_retryable(classified: ClassifiedError, retryable_status_codes: Iterable[int]) -> bool:
    """Decide whether a classified failure is worth another attempt"""
    codes = frozenset(retryable_status_codes)
    status = classified.status_code

    if classified.kind is FailureKind.HTTP_STATUS and status is not None:
        # Client errors are final unless explicitly listed
        if 400 <= status < 500 and status not in codes:
            return False
        return status in codes

    return classified.kind in (FailureKind.NETWORK_FAILURE, FailureKind.TIMEOUT)


def calculate_delay(
    attempt: int,
    initial_delay_ms: float,
    max_delay_ms: float,
    backoff_multiplier: float,
) -> float:
    """Backoff delay in milliseconds before retrying after zero-indexed ``attempt``"""
    delay = initial_delay_ms * (backoff_multiplier ** attempt)
    return min(delay, max_delay_ms)


def _resolve_options(options: Optional[RetryOptions], overrides: dict) -> RetryOptions:
    base = options if options is not None else RetryOptions()
    return base.merge(**overrides) if overrides else base


def _build_retrying_kwargs(options: RetryOptions) -> dict:
    """tenacity arguments shared by the sync and async invokers"""

    def _should_retry(exception: BaseException) -> bool:
        return is_retryable(classify_error(exception), options.retryable_status_codes)

    def _wait(retry_state: RetryCallState) -> float:
        # tenacity counts attempts from 1, the backoff formula from 0
        return options.delay_ms(retry_state.attempt_number - 1) / 1000.0

    def _before_sleep(retry_state: RetryCallState) -> None:
        if retry_state.outcome is None:
            return
        exception = retry_state.outcome.exception()
        attempt = retry_state.attempt_number
        delay_ms = options.delay_ms(attempt - 1)
        logger.warning(
            f"Request failed (attempt {attempt}/{options.max_attempts}). "
            f"Retrying in {delay_ms:.0f}ms: {exception}"
        )
        if options.on_retry is not None:
            options.on_retry(attempt, exception)

    return {
        "stop": stop_after_attempt(options.max_attempts),
        "wait": _wait,
        "retry": retry_if_exception(_should_retry),
        "reraise": True,
        "before_sleep": _before_sleep,
    }


async def retry_call_async(
    fn: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
    *,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    **overrides: Any,
) -> T:
    """Await ``fn()`` until it succeeds, fails permanently or runs out of retries.

    Args:
        fn: Zero-argument coroutine function (or callable returning an awaitable)
        options: Retry settings (defaults when None)
        sleep: Async sleep taking seconds (asyncio.sleep by default)
        **overrides: Individual RetryOptions fields applied over ``options``

    Returns:
        Whatever ``fn`` returned on the first successful attempt

    Raises:
        The exception raised by the last attempt, unchanged
    """
    resolved = _resolve_options(options, overrides)
    kwargs = _build_retrying_kwargs(resolved)
    kwargs["sleep"] = sleep or asyncio.sleep

    # AsyncRetrying only awaits coroutine functions, not lambdas returning awaitables
    async def _attempt() -> T:
        return await fn()

    return await AsyncRetrying(**kwargs)(_attempt)


def retry_call(
    fn: Callable[[], T],
    options: Optional[RetryOptions] = None,
    *,
    sleep: Optional[Callable[[float], None]] = None,
    **overrides: Any,
) -> T:
    """Blocking twin of :func:`retry_call_async` for synchronous callables"""
    resolved = _resolve_options(options, overrides)
    kwargs = _build_retrying_kwargs(resolved)
    if sleep is not None:
        kwargs["sleep"] = sleep
    return Retrying(**kwargs)(fn)


def with_retry(options: Optional[RetryOptions] = None, **overrides: Any) -> Callable[[Callable], Callable]:
    """Decorator applying retry_call / retry_call_async to every call of a function.

    Example:
        @with_retry(max_retries=2)
        async def get_quote(symbol): ...
    """
    resolved = _resolve_options(options, overrides)

    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapped(*args: Any, **kwargs: Any) -> Any:
                return await retry_call_async(lambda: func(*args, **kwargs), resolved)

            return async_wrapped

        @functools.wraps(func)
        def wrapped(*args: Any, **kwargs: Any) -> Any:
            return retry_call(lambda: func(*args, **kwargs), resolved)

        return wrapped

    return decorator
