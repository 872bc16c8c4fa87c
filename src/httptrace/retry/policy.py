"""Retry policy configuration.

Decides whether a failed attempt is retried and how long to wait. Decisions
are made on error codes: TransportError carries one, other exceptions are
classified by name and message.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer, field_validator

from httptrace.foundation.errors import RETRYABLE_CODES, ErrorCode, classify_exception

from .backoff import Backoff, ExponentialBackoff


class RetryPolicy(BaseModel):
    """Configurable retry policy for client calls.

    Attributes:
        max_attempts: Total attempts including the first (1 = no retries)
        backoff: Backoff strategy for delay calculation
        retryable_codes: Error codes that trigger another attempt

    Example:
        >>> policy = RetryPolicy(max_attempts=2, backoff=ExponentialBackoff(base=0.1, max_delay=1.0))
        >>> policy.should_retry(TransportError("refused", ErrorCode.CONNECTION_ERROR), attempt=0)
        True
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,  # For Backoff protocol
        validate_default=True,
        extra="forbid",
        json_schema_extra={
            "title": "Retry Policy",
            "examples": [{"max_attempts": 5, "retryable_codes": ["CONNECTION_ERROR", "NETWORK_ERROR", "TIMEOUT"]}],
        },
    )

    max_attempts: Annotated[int, Field(ge=1, le=10)] = 5
    backoff: Backoff = Field(default_factory=ExponentialBackoff, repr=False)
    retryable_codes: frozenset[ErrorCode] = RETRYABLE_CODES

    @field_validator("retryable_codes", mode="before")
    @classmethod
    def _normalize_codes(cls, v: frozenset[ErrorCode] | set[str] | list[str] | tuple[str, ...]) -> frozenset[ErrorCode]:
        """Accept strings and convert to ErrorCode enum."""
        return frozenset(ErrorCode(c) if isinstance(c, str) else c for c in v)

    @field_serializer("retryable_codes")
    def _serialize_codes(self, v: frozenset[ErrorCode]) -> list[str]:
        return sorted(c.value for c in v)

    @computed_field
    @property
    def is_disabled(self) -> bool:
        """Whether retries are effectively disabled."""
        return self.max_attempts == 1 or not self.retryable_codes

    def should_retry(self, exc: BaseException, attempt: int) -> bool:
        """Whether to make another attempt after ``exc``.

        Args:
            exc: Failure of the attempt that just ended
            attempt: 0-indexed number of that attempt
        """
        if attempt + 1 >= self.max_attempts or not isinstance(exc, Exception):
            return False
        return classify_exception(exc) in self.retryable_codes

    def delay(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt``."""
        return self.backoff.delay(attempt)

    @classmethod
    def from_settings(cls, max_attempts: int, period: float, max_period: float,
                      multiplier: float = 1.5, jitter: bool = False) -> RetryPolicy:
        return cls(max_attempts=max_attempts,
                   backoff=ExponentialBackoff(base=period, max_delay=max_period, multiplier=multiplier, jitter=jitter))


NO_RETRY = RetryPolicy(max_attempts=1)
