"""Retrying clients.

Re-invoke the wrapped client once per attempt. Layered over a TracingClient
this produces one span per attempt, each a sibling under whatever span the
caller has active. The retrying layer knows nothing about tracing.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import TYPE_CHECKING

from httptrace.foundation.errors import classify_exception
from httptrace.observability.logging import get_logger, log_context

from .policy import RetryPolicy

if TYPE_CHECKING:
    from httptrace.http.client import AsyncClient, Client
    from httptrace.http.models import Request, Response

log = get_logger("httptrace.retry")


def _attempt_request(request: Request) -> Request:
    """Copy of request with its own Headers; every attempt starts from the caller's headers."""
    return replace(request, headers=request.headers.copy())


def _log_retry(request: Request, attempt: int, policy: RetryPolicy, exc: Exception, delay: float) -> None:
    log.warning("attempt failed, retrying", method=request.method, url=request.url,
                attempt=attempt + 1, max_attempts=policy.max_attempts,
                code=classify_exception(exc).value, error=str(exc), delay_s=round(delay, 3))


class RetryingClient:
    """Blocking retry driver.

    Args:
        delegate: Client invoked once per attempt
        policy: Attempts, backoff and retryable codes
        sleep: Sleep function (injectable for tests)
    """

    __slots__ = ("delegate", "policy", "_sleep")

    def __init__(self, delegate: Client, policy: RetryPolicy | None = None, *,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self.delegate, self.policy, self._sleep = delegate, policy or RetryPolicy(), sleep

    def execute(self, request: Request) -> Response:
        attempt = 0
        while True:
            try:
                with log_context(attempt=attempt + 1):
                    return self.delegate.execute(_attempt_request(request))
            except Exception as e:
                if not self.policy.should_retry(e, attempt):
                    raise
                delay = self.policy.delay(attempt)
                _log_retry(request, attempt, self.policy, e, delay)
                self._sleep(delay)
                attempt += 1


class AsyncRetryingClient:
    """Async retry driver. Same arguments as RetryingClient with an async ``sleep``."""

    __slots__ = ("delegate", "policy", "_sleep")

    def __init__(self, delegate: AsyncClient, policy: RetryPolicy | None = None, *,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        self.delegate, self.policy, self._sleep = delegate, policy or RetryPolicy(), sleep

    async def execute(self, request: Request) -> Response:
        attempt = 0
        while True:
            try:
                with log_context(attempt=attempt + 1):
                    return await self.delegate.execute(_attempt_request(request))
            except Exception as e:
                if not self.policy.should_retry(e, attempt):
                    raise
                delay = self.policy.delay(attempt)
                _log_retry(request, attempt, self.policy, e, delay)
                await self._sleep(delay)
                attempt += 1
