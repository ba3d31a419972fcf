"""Shared HTTP client utilities (httpx / requests + retry/backoff).

We keep HTTP logic centralized to avoid divergence across providers.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import requests

from stockfetch.domain.errors import HttpStatusError
from stockfetch.infrastructure.retry import (
    DEFAULT_RETRYABLE_STATUS_CODES,
    RetryOptions,
    retry_call,
    retry_call_async,
)

logger = logging.getLogger(__name__)


def retry_options_from_dict(config: Dict[str, Any]) -> RetryOptions:
    """Parse retry options from dict, supporting camelCase aliases."""
    max_retries = config.get("max_retries")
    initial_delay = config.get("initial_delay_ms")
    max_delay = config.get("max_delay_ms")
    backoff_multiplier = config.get("backoff_multiplier")
    status_codes = config.get("retryable_status_codes")

    # camelCase aliases
    if max_retries is None:
        max_retries = config.get("maxRetries", 3)
    if initial_delay is None:
        initial_delay = config.get("initialDelay", 1000.0)
    if max_delay is None:
        max_delay = config.get("maxDelay", 10000.0)
    if backoff_multiplier is None:
        backoff_multiplier = config.get("backoffMultiplier", 2.0)
    if status_codes is None:
        status_codes = config.get("retryableStatusCodes", DEFAULT_RETRYABLE_STATUS_CODES)

    try:
        max_retries_i = int(max_retries)
    except (TypeError, ValueError):
        max_retries_i = 3

    try:
        initial_delay_f = float(initial_delay)
    except (TypeError, ValueError):
        initial_delay_f = 1000.0

    try:
        max_delay_f = float(max_delay)
    except (TypeError, ValueError):
        max_delay_f = 10000.0

    try:
        backoff_multiplier_f = float(backoff_multiplier)
    except (TypeError, ValueError):
        backoff_multiplier_f = 2.0

    try:
        codes = frozenset(int(c) for c in status_codes)
    except (TypeError, ValueError):
        codes = DEFAULT_RETRYABLE_STATUS_CODES

    if max_retries_i < 0:
        max_retries_i = 0
    if initial_delay_f <= 0:
        initial_delay_f = 1000.0
    if max_delay_f < initial_delay_f:
        max_delay_f = initial_delay_f
    if backoff_multiplier_f <= 1:
        backoff_multiplier_f = 2.0

    return RetryOptions(
        max_retries=max_retries_i,
        initial_delay_ms=initial_delay_f,
        max_delay_ms=max_delay_f,
        backoff_multiplier=backoff_multiplier_f,
        retryable_status_codes=codes,
        on_retry=config.get("on_retry"),
    )


async def fetch_with_retry(
    url: str,
    *,
    method: str = "GET",
    client: Optional[httpx.AsyncClient] = None,
    options: Optional[RetryOptions] = None,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    **request_kwargs: Any,
) -> httpx.Response:
    """Send an HTTP request, retrying network errors and retryable statuses.

    Non-2xx responses are turned into HttpStatusError before the retry
    decision, so the final error still carries the response.

    Args:
        url: Request URL
        method: HTTP method
        client: Shared AsyncClient (a short-lived one is opened when None)
        options: Retry settings
        sleep: Async sleep override, mostly for tests
        **request_kwargs: Passed to ``AsyncClient.request`` (params, headers, json, timeout...)

    Returns:
        The successful response
    """

    async def _make_request(http: httpx.AsyncClient) -> httpx.Response:
        logger.debug(f"HTTP {method} {url}")
        response = await http.request(method, url, **request_kwargs)
        if not response.is_success:
            raise HttpStatusError(response.status_code, response.reason_phrase, response=response)
        return response

    if client is not None:
        return await retry_call_async(lambda: _make_request(client), options, sleep=sleep)

    async with httpx.AsyncClient() as owned_client:
        return await retry_call_async(lambda: _make_request(owned_client), options, sleep=sleep)


async def fetch_json_with_retry(
    url: str,
    *,
    method: str = "GET",
    client: Optional[httpx.AsyncClient] = None,
    options: Optional[RetryOptions] = None,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    **request_kwargs: Any,
) -> Any:
    """fetch_with_retry, then decode the successful body as JSON."""
    response = await fetch_with_retry(
        url, method=method, client=client, options=options, sleep=sleep, **request_kwargs
    )
    return response.json()


def request_with_retries(
    url: str,
    *,
    method: str = "GET",
    session: Optional[requests.Session] = None,
    options: Optional[RetryOptions] = None,
    sleep: Optional[Callable[[float], None]] = None,
    **request_kwargs: Any,
) -> requests.Response:
    """Blocking variant of fetch_with_retry on top of requests."""

    def _make_request() -> requests.Response:
        logger.debug(f"HTTP {method} {url}")
        sender = session if session is not None else requests
        resp = sender.request(method, url, **request_kwargs)
        if not resp.ok:
            raise HttpStatusError(resp.status_code, resp.reason or "", response=resp)
        return resp

    return retry_call(_make_request, options, sleep=sleep)
