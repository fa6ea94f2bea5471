"""Retry policy: backoff schedule, exhaustion and permanent errors."""

from __future__ import annotations

import pytest

from ton_watcher.errors import ChainQueryError, ExhaustedRetries
from ton_watcher.models.config import BackoffStrategy, RetryConfig
from ton_watcher.subscription.retry import RetryPolicy


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class Flaky:
    """Fails ``failures`` times, then returns ``result``."""

    def __init__(self, failures: int, result="ok", error: Exception | None = None) -> None:
        self.failures = failures
        self.result = result
        self.error = error or ChainQueryError("boom")
        self.calls = 0

    async def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.result


def test_linear_delays():
    policy = RetryPolicy(max_attempts=10, base_delay=1.0, strategy=BackoffStrategy.LINEAR)
    assert [policy.delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]


def test_exponential_delays_are_capped():
    policy = RetryPolicy(max_attempts=10, base_delay=1.0, max_delay=10.0)
    assert [policy.delay(n) for n in (1, 2, 3, 4, 5, 6)] == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]


def test_from_config():
    cfg = RetryConfig(max_attempts=5, base_delay=0.5, max_delay=3.0,
                      strategy=BackoffStrategy.LINEAR)
    policy = RetryPolicy.from_config(cfg)
    assert policy.max_attempts == 5
    assert policy.strategy == BackoffStrategy.LINEAR
    assert policy.delay(2) == 1.0


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


async def test_success_after_transient_failures():
    sleep = SleepRecorder()
    policy = RetryPolicy(max_attempts=3, base_delay=1.0, sleep=sleep)
    op = Flaky(failures=2, result=42)

    assert await policy.call(op) == 42
    assert op.calls == 3
    assert sleep.delays == [1.0, 2.0]


async def test_exhaustion_raises_with_last_error():
    sleep = SleepRecorder()
    policy = RetryPolicy(max_attempts=3, base_delay=1.0, sleep=sleep)
    op = Flaky(failures=5)

    with pytest.raises(ExhaustedRetries) as info:
        await policy.call(op)

    assert op.calls == 3
    assert info.value.attempts == 3
    assert isinstance(info.value.last_error, ChainQueryError)
    # no sleep after the final attempt
    assert sleep.delays == [1.0, 2.0]


async def test_permanent_error_raised_immediately():
    sleep = SleepRecorder()
    policy = RetryPolicy(max_attempts=5, sleep=sleep)
    op = Flaky(failures=5, error=ChainQueryError("bad request", transient=False, status=400))

    with pytest.raises(ChainQueryError):
        await policy.call(op)

    assert op.calls == 1
    assert sleep.delays == []


async def test_arguments_are_forwarded():
    seen = []

    async def op(a, b=None):
        seen.append((a, b))
        return a

    policy = RetryPolicy()
    assert await policy.call(op, 1, b=2) == 1
    assert seen == [(1, 2)]


async def test_unexpected_errors_are_not_retried():
    sleep = SleepRecorder()
    policy = RetryPolicy(max_attempts=5, sleep=sleep)
    op = Flaky(failures=5, error=KeyError("transaction_id"))

    with pytest.raises(KeyError):
        await policy.call(op)

    assert op.calls == 1
    assert sleep.delays == []
