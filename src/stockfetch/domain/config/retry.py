"""Retry configuration model."""

from typing import FrozenSet, List

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({408, 429, 500, 502, 503, 504})


class RetryConfig(BaseModel):
    """Configuration for retry logic.

    Attributes:
        max_retries: Retries after the first attempt (0 disables retrying)
        initial_delay_ms: Delay before the first retry, in milliseconds
        max_delay_ms: Upper bound for any single delay, in milliseconds
        backoff_multiplier: Exponential backoff multiplier
        retryable_status_codes: HTTP statuses worth retrying. Replaces the
            defaults entirely when set.
    """

    max_retries: int = Field(3, ge=0, le=10)
    initial_delay_ms: float = Field(1000.0, gt=0.0)
    max_delay_ms: float = Field(10000.0, gt=0.0)
    backoff_multiplier: float = Field(2.0, gt=1.0, le=10.0)
    retryable_status_codes: List[int] = Field(
        default_factory=lambda: sorted(DEFAULT_RETRYABLE_STATUS_CODES)
    )

    @field_validator("retryable_status_codes")
    @classmethod
    def _check_status_codes(cls, codes: List[int]) -> List[int]:
        for code in codes:
            if not 100 <= code <= 999:
                raise ValueError(f"invalid HTTP status code: {code}")
        return sorted(set(codes))

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "RetryConfig":
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError("max_delay_ms must be >= initial_delay_ms")
        return self
