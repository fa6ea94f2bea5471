"""Watcher daemon - wires the subscription engine to deposit bookkeeping."""

from __future__ import annotations

import asyncio
import logging
import signal

from ton_watcher.deposits.classifier import (
    CompositeClassifier,
    JettonDepositClassifier,
    TonDepositClassifier,
)
from ton_watcher.deposits.ledger import InvoiceLedger
from ton_watcher.interfaces.classifier import DepositClassifier
from ton_watcher.interfaces.store import StateStore
from ton_watcher.models.chain import AccountCursor, ShardDescriptor, Transaction
from ton_watcher.models.config import SubscriptionMode, WatcherConfig
from ton_watcher.models.records import DepositOutcome
from ton_watcher.storage.sqlite import SQLiteStateStore
from ton_watcher.subscription.account import AccountSubscription
from ton_watcher.subscription.block import BlockSubscription
from ton_watcher.subscription.retry import RetryPolicy
from ton_watcher.ton.codec import normalize
from ton_watcher.ton.client import ToncenterClient

log = logging.getLogger(__name__)


class WatcherDaemon:
    """Runs one subscription and turns the transactions it delivers into
    ledger entries.

    Every cursor advance is written to the state store, so a restart resumes
    right after the last delivered transaction (account mode) or the last
    fully processed masterchain block (block mode).
    """

    def __init__(
        self,
        cfg: WatcherConfig,
        client: ToncenterClient | None = None,
        store: StateStore | None = None,
    ) -> None:
        self._cfg = cfg
        self._stop_event = asyncio.Event()

        # Core components
        self.client = client or ToncenterClient(
            cfg.resolved_api_url(), cfg.api_key, timeout=cfg.request_timeout,
        )
        self.store: StateStore = store or SQLiteStateStore(cfg.db_path)
        self.classifier = self._build_classifier(cfg)
        self.ledger = InvoiceLedger(
            self.store, credit_uncommented=cfg.mode == SubscriptionMode.BLOCK,
        )

        self.subscription: AccountSubscription | BlockSubscription
        if cfg.mode == SubscriptionMode.ACCOUNT:
            self._account_key = normalize(cfg.wallet_address)
            self.subscription = AccountSubscription(
                self.client,
                cfg.wallet_address,
                self._on_transaction,
                page_size=cfg.page_size,
                archival=cfg.archival,
                retry=RetryPolicy.from_config(cfg.account_retry),
                on_cursor=self._on_account_cursor,
            )
        else:
            self.subscription = BlockSubscription(
                self.client,
                self._on_transaction,
                retry=RetryPolicy.from_config(cfg.block_retry),
                on_cursor=self._on_block_cursor,
            )

    @staticmethod
    def _build_classifier(cfg: WatcherConfig) -> DepositClassifier:
        # jettons still waiting for wallet resolution are left out until start()
        jettons = [j for j in cfg.jettons if j.wallet_address]
        jetton_wallets = [j.wallet_address for j in jettons]
        watched: list[str] | None = None
        if cfg.mode == SubscriptionMode.BLOCK:
            watched = list(cfg.deposit_addresses)
            if cfg.wallet_address:
                watched.append(cfg.wallet_address)

        classifiers: list[DepositClassifier] = []
        if jettons:
            classifiers.append(JettonDepositClassifier(jettons))
        classifiers.append(TonDepositClassifier(watched=watched, ignore_sources=jetton_wallets))
        return CompositeClassifier(classifiers)

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self) -> None:
        """Initialize components and run until stop() is called."""
        log.info("Starting ton_watcher daemon")
        log.info("  Mode:    %s", self._cfg.mode.value)
        log.info("  Network: %s", self._cfg.network)
        log.info("  API:     %s", self._cfg.resolved_api_url())
        if self._cfg.mode == SubscriptionMode.ACCOUNT:
            log.info("  Wallet:  %s", self._cfg.wallet_address)
        else:
            log.info("  Watching %d deposit addresses", len(self._cfg.deposit_addresses))

        await self.store.initialize()
        await self._restore_cursor()
        await self.store.log_activity("daemon_started", "Daemon started")

        try:
            await self._resolve_jetton_wallets()
            await self.subscription.start(self._cfg.poll_interval)
            await self._stop_event.wait()
        finally:
            await self._shutdown()

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self._stop_event.set()

    async def _shutdown(self) -> None:
        self.subscription.stop()
        await self.subscription.wait_idle()
        await self._persist_cursor()
        await self.store.log_activity("daemon_stopped", "Daemon stopped")
        await self.store.close()
        await self.client.close()
        log.info("Daemon shut down cleanly")

    async def _resolve_jetton_wallets(self) -> None:
        """Ask each jetton minter for our wallet where none is configured."""
        pending = [j for j in self._cfg.jettons if not j.wallet_address]
        if not pending:
            return

        retry = RetryPolicy.from_config(
            self._cfg.account_retry
            if self._cfg.mode == SubscriptionMode.ACCOUNT
            else self._cfg.block_retry
        )
        for jetton in pending:
            jetton.wallet_address = await retry.call(
                self.client.get_jetton_wallet_address,
                jetton.master_address,
                self._cfg.wallet_address,
            )
            log.info("Resolved %s jetton wallet: %s", jetton.symbol, jetton.wallet_address)
        self.classifier = self._build_classifier(self._cfg)

    async def _restore_cursor(self) -> None:
        if isinstance(self.subscription, AccountSubscription):
            cursor = await self.store.get_account_cursor(self._account_key)
            if cursor is not None:
                self.subscription.set_cursor(cursor)
                log.info("Restored cursor: %s", cursor)
            return

        seqno = await self.store.get_block_cursor()
        if seqno is not None:
            self.subscription.set_cursor(seqno)
            log.info("Restored cursor: masterchain block %d", seqno)
        elif self._cfg.start_block is not None:
            # start_block is the first block to process
            self.subscription.set_cursor(self._cfg.start_block - 1)
            log.info("Starting from configured block %d", self._cfg.start_block)

    async def _persist_cursor(self) -> None:
        cursor = self.subscription.current_cursor()
        if cursor is None:
            return
        if isinstance(cursor, AccountCursor):
            await self.store.set_account_cursor(self._account_key, cursor)
        else:
            await self.store.set_block_cursor(cursor)

    # ── Subscription callbacks ─────────────────────────────

    async def _on_transaction(self, tx: Transaction, shard: ShardDescriptor | None) -> None:
        deposit = self.classifier.classify(tx, shard)
        if deposit is None:
            log.debug("Transaction %s is not a deposit", tx.hash)
            return
        outcome = await self.ledger.process(deposit)
        if outcome != DepositOutcome.DUPLICATE:
            log.info("Deposit %s (%s): %s", deposit.tx_hash, deposit.asset, outcome.value)

    async def _on_account_cursor(self, cursor: AccountCursor) -> None:
        await self.store.set_account_cursor(self._account_key, cursor)

    async def _on_block_cursor(self, seqno: int) -> None:
        await self.store.set_block_cursor(seqno)


async def run_daemon(cfg: WatcherConfig) -> None:
    """Entry point for running the daemon."""
    daemon = WatcherDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
