"""Retry driver for HTTP clients.

Example:
    >>> from httptrace.retry import RetryingClient, RetryPolicy, ExponentialBackoff
    >>> client = RetryingClient(
    ...     TracingClient(HttpxClient()),
    ...     RetryPolicy(max_attempts=2, backoff=ExponentialBackoff(base=0.1, max_delay=1.0)),
    ... )
"""

from .backoff import Backoff, ConstantBackoff, ExponentialBackoff, LinearBackoff
from .client import AsyncRetryingClient, RetryingClient
from .policy import NO_RETRY, RetryPolicy

__all__ = [
    # Backoff strategies
    "Backoff",
    "ExponentialBackoff",
    "LinearBackoff",
    "ConstantBackoff",
    # Policy
    "RetryPolicy",
    "NO_RETRY",
    # Drivers
    "RetryingClient",
    "AsyncRetryingClient",
]
