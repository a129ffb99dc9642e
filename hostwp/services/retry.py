"""Bounded retry with pluggable backoff, independent of the HTTP transport."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0  # seconds


def linear_backoff(base_delay: float, attempt: int) -> float:
    """Delay after the given (1-based) failed attempt: ``base * attempt``, no jitter."""
    return base_delay * attempt


@dataclass
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    backoff: Callable[[float, int], float] = linear_backoff
    sleep: Callable[[float], Awaitable[None]] | None = None

    def delay_for(self, attempt: int) -> float:
        return self.backoff(self.base_delay, attempt)

    def should_retry(self, retryable: bool, attempt: int) -> bool:
        return retryable and attempt < self.max_attempts

    async def execute(
        self,
        operation: Callable[[int], Awaitable[T]],
        is_retryable: Callable[[T], bool],
    ) -> T:
        """Run ``operation(attempt)`` until it yields a non-retryable outcome
        or ``max_attempts`` is reached. The last outcome is returned as-is.
        """
        attempt = 1
        while True:
            outcome = await operation(attempt)
            if not self.should_retry(is_retryable(outcome), attempt):
                return outcome
            delay = self.delay_for(attempt)
            logger.warning(
                "Attempt %d/%d failed, retrying in %.2fs", attempt, self.max_attempts, delay
            )
            await (self.sleep or asyncio.sleep)(delay)
            attempt += 1
