"""Subscriber protocol and callback types."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, Protocol, TypeVar

from ton_watcher.models.chain import ShardDescriptor, Transaction

CursorT = TypeVar("CursorT")

# Called once per delivered transaction. Block subscriptions pass the shard
# the transaction came from; account subscriptions pass None.
TransactionHandler = Callable[[Transaction, Optional[ShardDescriptor]], Awaitable[None]]

# Called after every cursor advance so the caller can persist it.
CursorHook = Callable[[CursorT], Awaitable[None]]

StopFn = Callable[[], None]


class Subscriber(Protocol[CursorT]):
    """Delivers new transactions in order and tracks a resumable cursor."""

    async def poll(self) -> list[Transaction]:
        """Run one tick: fetch, order, deliver. Returns what was delivered."""
        ...

    async def start(self, interval: float) -> StopFn:
        """Tick now, then every ``interval`` seconds."""
        ...

    def stop(self) -> None:
        ...

    def current_cursor(self) -> CursorT | None:
        ...
