# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Exponential-backoff retry for async operations.

The policy is a plain value; the sleep function is injectable so tests can
observe the delay schedule without waiting it out::

    policy = RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0)
    browser = await retry_async(dial, policy)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry schedule: delay before attempt k+1 is ``min(base * factor**(k-1), max)``."""

    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 10.0  # seconds
    backoff_factor: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")
        if self.max_delay < self.base_delay:
            raise ValueError(f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})")
        if self.backoff_factor < 1:
            raise ValueError(f"backoff_factor must be >= 1, got {self.backoff_factor}")

    def delay_for_attempt(self, attempt: int) -> float:
        """Seconds to wait after failed *attempt* (1-based)."""
        return min(self.base_delay * self.backoff_factor ** (attempt - 1), self.max_delay)

    def delays(self) -> list[float]:
        """Full delay schedule between attempts (length ``max_attempts - 1``)."""
        return [self.delay_for_attempt(k) for k in range(1, self.max_attempts)]


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    on_retry: Callable[[int, Exception, float], None] | None = None,
    retry_on: tuple[type[Exception], ...] = (Exception,),
) -> T:
    """Call *fn* until it succeeds or the policy is exhausted.

    The error from the final attempt is re-raised unchanged.  Exceptions not
    listed in *retry_on* propagate immediately.  ``asyncio.CancelledError`` is
    never retried.

    *on_retry* is called as ``on_retry(attempt, exc, delay)`` before each sleep.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except retry_on as exc:
            if attempt >= policy.max_attempts:
                raise
            delay = policy.delay_for_attempt(attempt)
            logger.info(
                "Attempt %d/%d failed (%s), retrying in %.2fs",
                attempt,
                policy.max_attempts,
                exc,
                delay,
            )
            if on_retry is not None:
                on_retry(attempt, exc, delay)
            await sleep(delay)
