# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for a11yfix.retry: backoff schedule and retry_async."""

from __future__ import annotations

import pytest

from a11yfix.retry import RetryPolicy, retry_async


class _Sleeps:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.base_delay == 1.0
        assert policy.max_delay == 10.0
        assert policy.backoff_factor == 2.0

    def test_delay_schedule(self):
        policy = RetryPolicy(max_attempts=6, base_delay=1.0, max_delay=10.0, backoff_factor=2.0)
        assert policy.delays() == [1.0, 2.0, 4.0, 8.0, 10.0]

    def test_single_attempt_has_no_delays(self):
        assert RetryPolicy(max_attempts=1).delays() == []

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError, match="max_attempts"):
            RetryPolicy(max_attempts=0)

    def test_invalid_base_delay(self):
        with pytest.raises(ValueError, match="base_delay"):
            RetryPolicy(base_delay=-1)

    def test_invalid_max_delay(self):
        with pytest.raises(ValueError, match="max_delay"):
            RetryPolicy(base_delay=5.0, max_delay=1.0)

    def test_invalid_backoff_factor(self):
        with pytest.raises(ValueError, match="backoff_factor"):
            RetryPolicy(backoff_factor=0.5)


class TestRetryAsync:
    async def test_first_success_does_not_sleep(self):
        sleeps = _Sleeps()

        async def ok():
            return "done"

        assert await retry_async(ok, RetryPolicy(), sleep=sleeps) == "done"
        assert sleeps.delays == []

    async def test_succeeds_after_failures(self):
        sleeps = _Sleeps()
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("refused")
            return "up"

        assert await retry_async(flaky, RetryPolicy(), sleep=sleeps) == "up"
        assert len(calls) == 3
        assert sleeps.delays == [1.0, 2.0]

    async def test_exhaustion_raises_last_error(self):
        sleeps = _Sleeps()
        calls = []

        async def always_fails():
            calls.append(1)
            raise ConnectionError(f"attempt {len(calls)}")

        with pytest.raises(ConnectionError, match="attempt 3"):
            await retry_async(always_fails, RetryPolicy(max_attempts=3), sleep=sleeps)
        assert len(calls) == 3
        assert sleeps.delays == [1.0, 2.0]

    async def test_on_retry_called_before_each_sleep(self):
        seen = []

        async def fails():
            raise TimeoutError("slow")

        with pytest.raises(TimeoutError):
            await retry_async(
                fails,
                RetryPolicy(max_attempts=3),
                sleep=_Sleeps(),
                on_retry=lambda attempt, exc, delay: seen.append((attempt, str(exc), delay)),
            )
        assert seen == [(1, "slow", 1.0), (2, "slow", 2.0)]

    async def test_non_retryable_error_propagates_immediately(self):
        sleeps = _Sleeps()
        calls = []

        async def bad():
            calls.append(1)
            raise KeyError("nope")

        with pytest.raises(KeyError):
            await retry_async(bad, RetryPolicy(), sleep=sleeps, retry_on=(ConnectionError,))
        assert len(calls) == 1
        assert sleeps.delays == []
