"""Account subscription - delivers one account's new transactions in order."""

from __future__ import annotations

import logging

from pytoniq_core import Address

from ton_watcher.errors import ExhaustedRetries
from ton_watcher.interfaces.query import ChainQueryPort
from ton_watcher.interfaces.subscriber import CursorHook, StopFn, TransactionHandler
from ton_watcher.models.chain import AccountCursor, Transaction
from ton_watcher.models.config import BackoffStrategy
from ton_watcher.subscription.retry import RetryPolicy
from ton_watcher.subscription.scheduler import TickScheduler
from ton_watcher.ton.codec import parse_address

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class AccountSubscription:
    """Polls an account's history and hands each new transaction to a callback.

    A TON transaction is identified by account + lt + hash; within one
    account the (lt, hash) pair is the cursor. Pages come newest first, so a
    tick walks backward until it meets the cursor, then delivers what it
    collected oldest first, moving the cursor after every delivery.

    With no cursor the first tick walks the account's entire history. Seed a
    cursor to bound the catch-up.
    """

    def __init__(
        self,
        client: ChainQueryPort,
        account_address: str,
        on_transaction: TransactionHandler,
        page_size: int = DEFAULT_PAGE_SIZE,
        cursor: AccountCursor | None = None,
        archival: bool = True,
        retry: RetryPolicy | None = None,
        on_cursor: CursorHook[AccountCursor] | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        # fails fast (InvalidAddressError) on a bad address
        self._address = parse_address(account_address)
        self._account = account_address
        self._client = client
        self._on_transaction = on_transaction
        self._on_cursor = on_cursor
        self._page_size = page_size
        self._archival = archival
        self._cursor = cursor
        self._retry = retry or RetryPolicy(
            max_attempts=10, base_delay=1.0, strategy=BackoffStrategy.LINEAR,
        )
        self._scheduler = TickScheduler(self.poll, name=f"account {account_address[:12]}")

    @property
    def address(self) -> Address:
        return self._address

    @property
    def cursor(self) -> AccountCursor | None:
        return self._cursor

    def current_cursor(self) -> AccountCursor | None:
        return self._cursor

    def set_cursor(self, cursor: AccountCursor | None) -> None:
        """Restore the cursor from persisted state (before start)."""
        self._cursor = cursor

    @property
    def scheduler(self) -> TickScheduler:
        return self._scheduler

    # ── Lifecycle ─────────────────────────────────────────

    async def start(self, interval: float = 10.0) -> StopFn:
        return await self._scheduler.start(interval)

    def stop(self) -> None:
        self._scheduler.stop()

    async def wait_idle(self) -> None:
        await self._scheduler.wait_idle()

    # ── Polling ───────────────────────────────────────────

    async def poll(self) -> list[Transaction]:
        """One tick. Callback errors propagate; query failures end the tick empty."""
        try:
            pending = await self._fetch_new_transactions()
        except ExhaustedRetries as exc:
            log.error("Giving up on this tick, cursor stays at %s: %s", self._cursor, exc)
            return []

        if not pending:
            return []

        pending.reverse()
        delivered: list[Transaction] = []
        for tx in pending:
            await self._on_transaction(tx, None)
            self._cursor = tx.cursor
            delivered.append(tx)
            log.debug("Updated cursor to lt:%d hash:%s", tx.lt, tx.hash)
            if self._on_cursor is not None:
                await self._on_cursor(self._cursor)

        log.info("Delivered %d transactions (cursor: %s)", len(delivered), self._cursor)
        return delivered

    async def _fetch_new_transactions(self) -> list[Transaction]:
        """Unseen transactions, newest first.

        Any page failure discards the whole accumulation: delivering the
        newer pages alone would move the cursor past the unfetched gap.
        """
        collected: list[Transaction] = []
        offset: AccountCursor | None = None

        while True:
            if offset is None:
                log.debug("Fetching last %d transactions", self._page_size)
            else:
                log.debug("Fetching %d transactions before %s", self._page_size, offset)

            page = await self._retry.call(
                self._client.get_account_transactions,
                self._account,
                limit=self._page_size,
                before=offset,
                archival=self._archival,
            )
            log.debug("Received %d transactions", len(page))
            if not page:
                return collected

            for tx in page:
                if self._is_delivered(tx):
                    return collected
                collected.append(tx)

            if len(page) < self._page_size:
                return collected
            offset = page[-1].cursor

    def _is_delivered(self, tx: Transaction) -> bool:
        if self._cursor is None:
            return False
        # lt orders an account's history; a cursor pruned from a non-archival
        # node is still a valid boundary
        return tx.cursor == self._cursor or tx.lt < self._cursor.lt
