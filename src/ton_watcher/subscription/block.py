"""Block subscription - walks masterchain blocks and every shard under them."""

from __future__ import annotations

import logging

from ton_watcher.errors import ExhaustedRetries
from ton_watcher.interfaces.query import ChainQueryPort
from ton_watcher.interfaces.subscriber import CursorHook, StopFn, TransactionHandler
from ton_watcher.models.chain import ShardDescriptor, Transaction
from ton_watcher.subscription.retry import RetryPolicy
from ton_watcher.subscription.scheduler import TickScheduler

log = logging.getLogger(__name__)


class BlockSubscription:
    """Delivers every transaction of every block, one masterchain seqno at a time.

    For each seqno the masterchain block itself (the root shard) is read
    first, then each workchain shard block it references. The cursor
    (last processed seqno) moves only once all of them are drained, so a
    failure mid-block makes the next tick redo that whole seqno; consumers
    that need exactly-once effects must be idempotent per transaction.

    ``start_seqno=None`` starts at the latest block on the first tick.
    """

    def __init__(
        self,
        client: ChainQueryPort,
        on_transaction: TransactionHandler,
        start_seqno: int | None = None,
        retry: RetryPolicy | None = None,
        on_cursor: CursorHook[int] | None = None,
    ) -> None:
        self._client = client
        self._on_transaction = on_transaction
        self._on_cursor = on_cursor
        self._last_processed = start_seqno
        self._retry = retry or RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0)
        self._scheduler = TickScheduler(self.poll, name="blocks")

    @property
    def last_processed(self) -> int | None:
        return self._last_processed

    def current_cursor(self) -> int | None:
        return self._last_processed

    def set_cursor(self, seqno: int | None) -> None:
        """Restore the last processed seqno from persisted state (before start)."""
        self._last_processed = seqno

    @property
    def scheduler(self) -> TickScheduler:
        return self._scheduler

    # ── Lifecycle ─────────────────────────────────────────

    async def start(self, interval: float = 1.0) -> StopFn:
        return await self._scheduler.start(interval)

    def stop(self) -> None:
        self._scheduler.stop()

    async def wait_idle(self) -> None:
        await self._scheduler.wait_idle()

    # ── Polling ───────────────────────────────────────────

    async def poll(self) -> list[Transaction]:
        """One tick: catch up to the latest seqno, block by block.

        Query failures that outlast the retry policy end the tick with the
        cursor at the last fully processed seqno. Callback errors propagate.
        """
        delivered: list[Transaction] = []
        try:
            target = await self._retry.call(self._client.get_latest_sequence_number)
            if self._last_processed is None:
                self._last_processed = target - 1
                log.info("No cursor, starting from latest block %d", target)

            if target <= self._last_processed:
                return delivered

            for seqno in range(self._last_processed + 1, target + 1):
                delivered.extend(await self._process_block(seqno))
                self._last_processed = seqno
                if self._on_cursor is not None:
                    await self._on_cursor(seqno)
        except ExhaustedRetries as exc:
            log.error(
                "Giving up on this tick, cursor stays at %s: %s", self._last_processed, exc,
            )
        return delivered

    async def _process_block(self, seqno: int) -> list[Transaction]:
        shards = [ShardDescriptor.root(seqno)]
        shards.extend(await self._retry.call(self._client.get_shards_at, seqno))

        delivered: list[Transaction] = []
        for shard in shards:
            delivered.extend(await self._process_shard(shard))

        log.info("Processed masterchain block %d (%d shards, %d transactions)",
                 seqno, len(shards), len(delivered))
        return delivered

    async def _process_shard(self, shard: ShardDescriptor) -> list[Transaction]:
        log.debug("  Processing block %s", shard)
        refs = await self._retry.call(
            self._client.get_transactions_in_shard, shard.workchain, shard.seqno, shard.shard,
        )

        delivered: list[Transaction] = []
        for ref in refs:
            tx = await self._retry.call(
                self._client.get_full_transaction, ref.account, ref.lt, ref.hash,
            )
            if tx is None:
                log.warning("Transaction %s:%d not found in block %s, skipping",
                            ref.account, ref.lt, shard)
                continue
            await self._on_transaction(tx, shard)
            delivered.append(tx)
        return delivered
