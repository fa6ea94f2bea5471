"""Bounded retry with linear or capped exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from ton_watcher.errors import ChainQueryError, ExhaustedRetries
from ton_watcher.models.config import BackoffStrategy, RetryConfig

log = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Retries chain queries; keeps no state between calls.

    Only transient ChainQueryErrors are retried. Errors flagged
    non-transient, and any other exception, are raised straight away.
    After ``max_attempts`` consecutive failures the call raises
    ExhaustedRetries.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.strategy = BackoffStrategy(strategy)
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        cfg: RetryConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> RetryPolicy:
        return cls(
            max_attempts=cfg.max_attempts,
            base_delay=cfg.base_delay,
            max_delay=cfg.max_delay,
            strategy=cfg.strategy,
            sleep=sleep,
        )

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        if self.strategy == BackoffStrategy.LINEAR:
            return attempt * self.base_delay
        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)

    async def call(self, operation: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        name = getattr(operation, "__name__", repr(operation))
        last_error: ChainQueryError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation(*args, **kwargs)
            except ChainQueryError as exc:
                if not exc.transient:
                    log.error("%s failed permanently: %s", name, exc)
                    raise
                last_error = exc

            log.warning(
                "%s failed (attempt %d/%d): %s", name, attempt, self.max_attempts, last_error,
            )
            if attempt < self.max_attempts:
                delay = self.delay(attempt)
                log.debug("Retrying %s in %.1fs", name, delay)
                await self._sleep(delay)

        log.error("%s failed after %d attempts, giving up until the next tick",
                  name, self.max_attempts)
        raise ExhaustedRetries(name, self.max_attempts, last_error)
