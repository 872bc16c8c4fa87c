"""Backoff strategies for retry policies.

Provides pluggable delay calculation between attempts:
- ExponentialBackoff: Exponential growth with optional jitter
- LinearBackoff: Linear growth with cap
- ConstantBackoff: Fixed delay
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@runtime_checkable
class Backoff(Protocol):
    """Protocol for backoff delay calculation.

    Attempt numbers are 0-indexed (delay before the first retry = attempt 0).
    """

    def delay(self, attempt: int) -> float:
        """Delay in seconds before the next attempt."""
        ...


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Exponential backoff with optional jitter.

    Delay = min(base * (multiplier ^ attempt), max_delay) * jitter

    Attributes:
        base: Initial delay in seconds (default: 0.1)
        max_delay: Maximum delay cap in seconds (default: 1.0)
        multiplier: Exponential growth factor (default: 1.5)
        jitter: Randomize 0.5-1.5x (default: False)
    """

    base: float = 0.1
    max_delay: float = 1.0
    multiplier: float = 1.5
    jitter: bool = False

    def delay(self, attempt: int) -> float:
        d = min(self.base * (self.multiplier ** attempt), self.max_delay)
        return d * (0.5 + random.random()) if self.jitter else d


@dataclass(frozen=True, slots=True)
class LinearBackoff:
    """Linear backoff with cap. Delay = min(base + increment * attempt, max_delay)"""

    base: float = 0.1
    increment: float = 0.1
    max_delay: float = 1.0

    def delay(self, attempt: int) -> float:
        return min(self.base + (self.increment * attempt), self.max_delay)


@dataclass(frozen=True, slots=True)
class ConstantBackoff:
    """Fixed delay between attempts."""

    delay_seconds: float = 0.1

    def delay(self, attempt: int) -> float:
        return self.delay_seconds
