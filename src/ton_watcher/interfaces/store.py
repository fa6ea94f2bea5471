"""StateStore protocol - persists cursors and bookkeeping across restarts."""

from __future__ import annotations

from typing import Protocol

from ton_watcher.models.chain import AccountCursor
from ton_watcher.models.records import (
    ActivityRecord,
    Deposit,
    DepositRecord,
    InvoiceRecord,
)


class StateStore(Protocol):
    """Persists watcher state for crash recovery and the CLI."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        ...

    # ── Cursors ────────────────────────────────────────────

    async def get_account_cursor(self, address: str) -> AccountCursor | None:
        ...

    async def set_account_cursor(self, address: str, cursor: AccountCursor) -> None:
        ...

    async def get_block_cursor(self) -> int | None:
        ...

    async def set_block_cursor(self, seqno: int) -> None:
        ...

    # ── Invoices ───────────────────────────────────────────

    async def save_invoice(self, invoice: InvoiceRecord) -> None:
        ...

    async def get_invoice(self, invoice_id: str) -> InvoiceRecord | None:
        ...

    async def mark_invoice_paid(self, invoice_id: str, tx_hash: str) -> None:
        ...

    async def get_invoices(self, status: str | None = None) -> list[InvoiceRecord]:
        ...

    # ── Deposits ───────────────────────────────────────────

    async def is_deposit_processed(self, tx_hash: str) -> bool:
        ...

    async def save_deposit(
        self, deposit: Deposit, outcome: str, invoice_id: str | None = None,
    ) -> None:
        ...

    async def get_deposits(self, limit: int = 50) -> list[DepositRecord]:
        ...

    # ── Activity log ───────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        tx_hash: str | None = None,
        amount: int | None = None,
    ) -> None:
        ...

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        ...
