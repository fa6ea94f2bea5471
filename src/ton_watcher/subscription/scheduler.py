"""Tick scheduler - periodic, non-overlapping execution of a poll step."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from ton_watcher.interfaces.subscriber import StopFn

log = logging.getLogger(__name__)


class TickScheduler:
    """Fires ``tick_fn`` now and then every ``interval`` seconds.

    A firing that arrives while the previous tick is still running is
    dropped, never queued. Exceptions from a tick are logged and absorbed;
    the next firing simply tries again. ``stop()`` only cancels the timer:
    an in-flight tick runs to completion (await ``wait_idle()`` for it),
    including the first one if ``start()`` is still waiting on it.
    """

    def __init__(self, tick_fn: Callable[[], Awaitable[Any]], name: str = "subscription") -> None:
        self._tick_fn = tick_fn
        self._name = name
        self._polling = False
        self._active = False
        self._timer: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None
        self.ticks_run = 0
        self.ticks_dropped = 0

    @property
    def is_polling(self) -> bool:
        return self._polling

    @property
    def running(self) -> bool:
        return self._active

    async def tick(self) -> None:
        """One guarded execution of the tick function."""
        if self._polling:
            self.ticks_dropped += 1
            log.debug("%s: previous tick still running, skipping", self._name)
            return

        self._polling = True
        try:
            await self._tick_fn()
        except Exception as exc:
            log.error("%s: tick failed: %s", self._name, exc, exc_info=True)
        finally:
            self.ticks_run += 1
            self._polling = False

    async def start(self, interval: float) -> StopFn:
        """Run one tick immediately, then schedule the rest. Returns ``stop``."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        if self.running:
            log.warning("%s: already started", self._name)
            return self.stop

        self._active = True
        first = asyncio.create_task(self.tick())
        self._inflight = first
        await asyncio.shield(first)

        if not self._active:
            log.info("%s: stopped during the first tick, timer not started", self._name)
            return self.stop
        if self._timer is None:
            self._timer = asyncio.create_task(self._timer_loop(interval))
            log.info("%s: polling every %.1fs", self._name, interval)
        return self.stop

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        log.info("%s: stopped", self._name)

    async def wait_idle(self) -> None:
        """Wait for the in-flight tick, if any, to finish."""
        task = self._inflight
        if task is not None and not task.done():
            await asyncio.shield(task)

    async def _timer_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if self._polling:
                self.ticks_dropped += 1
                log.debug("%s: previous tick still running, skipping", self._name)
                continue
            # own task: cancelling the timer must not cancel a running tick
            self._inflight = asyncio.create_task(self.tick())
