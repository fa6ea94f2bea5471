"""SQLite implementation of the StateStore protocol."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from ton_watcher.models.chain import AccountCursor
from ton_watcher.models.records import (
    ActivityRecord,
    Deposit,
    DepositRecord,
    InvoiceRecord,
)

# Amounts are TEXT: jetton amounts (VarUInteger 16) overflow SQLite's INTEGER.
SCHEMA = """
-- Account subscription cursors, one per watched address
CREATE TABLE IF NOT EXISTS account_cursor (
    address TEXT PRIMARY KEY,
    lt TEXT NOT NULL,
    hash TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Block subscription cursor (last fully processed masterchain seqno)
CREATE TABLE IF NOT EXISTS block_cursor (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    seqno INTEGER NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Payment requests, keyed by the comment the payer must attach
CREATE TABLE IF NOT EXISTS invoices (
    invoice_id TEXT PRIMARY KEY,
    user_id INTEGER NOT NULL,
    asset TEXT NOT NULL,
    expected_amount TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    tx_hash TEXT,
    paid_at TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_invoices_status ON invoices(status);

-- Every deposit the ledger has seen, whatever the outcome
CREATE TABLE IF NOT EXISTS deposits (
    tx_hash TEXT PRIMARY KEY,
    tx_lt TEXT NOT NULL,
    asset TEXT NOT NULL,
    amount TEXT NOT NULL,
    sender TEXT NOT NULL,
    destination TEXT NOT NULL,
    comment TEXT,
    outcome TEXT NOT NULL,
    invoice_id TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Activity log
CREATE TABLE IF NOT EXISTS activity_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    tx_hash TEXT,
    amount TEXT,
    message TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_activity_created ON activity_log(created_at);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteStateStore:
    """SQLite-backed implementation of the StateStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Cursors ────────────────────────────────────────────

    async def get_account_cursor(self, address: str) -> AccountCursor | None:
        async with self.db.execute(
            "SELECT lt, hash FROM account_cursor WHERE address=?", (address,)
        ) as cur:
            row = await cur.fetchone()
            return AccountCursor(lt=int(row["lt"]), hash=row["hash"]) if row else None

    async def set_account_cursor(self, address: str, cursor: AccountCursor) -> None:
        await self.db.execute(
            "INSERT INTO account_cursor (address, lt, hash, updated_at) VALUES (?, ?, ?, ?)"
            " ON CONFLICT(address) DO UPDATE SET lt=excluded.lt, hash=excluded.hash,"
            " updated_at=excluded.updated_at",
            (address, str(cursor.lt), cursor.hash, _now()),
        )
        await self.db.commit()

    async def get_block_cursor(self) -> int | None:
        async with self.db.execute("SELECT seqno FROM block_cursor WHERE id=1") as cur:
            row = await cur.fetchone()
            return row["seqno"] if row else None

    async def set_block_cursor(self, seqno: int) -> None:
        await self.db.execute(
            "INSERT INTO block_cursor (id, seqno, updated_at) VALUES (1, ?, ?)"
            " ON CONFLICT(id) DO UPDATE SET seqno=excluded.seqno,"
            " updated_at=excluded.updated_at",
            (seqno, _now()),
        )
        await self.db.commit()

    # ── Invoices ───────────────────────────────────────────

    async def save_invoice(self, invoice: InvoiceRecord) -> None:
        await self.db.execute(
            "INSERT OR REPLACE INTO invoices"
            " (invoice_id, user_id, asset, expected_amount, status, tx_hash, paid_at, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                invoice.invoice_id, invoice.user_id, invoice.asset,
                str(invoice.expected_amount), invoice.status, invoice.tx_hash,
                invoice.paid_at, invoice.created_at or _now(),
            ),
        )
        await self.db.commit()

    async def get_invoice(self, invoice_id: str) -> InvoiceRecord | None:
        async with self.db.execute(
            "SELECT * FROM invoices WHERE invoice_id=?", (invoice_id,)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_invoice(row) if row else None

    async def mark_invoice_paid(self, invoice_id: str, tx_hash: str) -> None:
        await self.db.execute(
            "UPDATE invoices SET status='paid', tx_hash=?, paid_at=? WHERE invoice_id=?",
            (tx_hash, _now(), invoice_id),
        )
        await self.db.commit()

    async def get_invoices(self, status: str | None = None) -> list[InvoiceRecord]:
        if status:
            query, params = (
                "SELECT * FROM invoices WHERE status=? ORDER BY created_at", (status,)
            )
        else:
            query, params = "SELECT * FROM invoices ORDER BY created_at", ()
        async with self.db.execute(query, params) as cur:
            return [_row_to_invoice(row) async for row in cur]

    # ── Deposits ───────────────────────────────────────────

    async def is_deposit_processed(self, tx_hash: str) -> bool:
        async with self.db.execute(
            "SELECT 1 FROM deposits WHERE tx_hash=?", (tx_hash,)
        ) as cur:
            return await cur.fetchone() is not None

    async def save_deposit(
        self, deposit: Deposit, outcome: str, invoice_id: str | None = None,
    ) -> None:
        await self.db.execute(
            "INSERT OR IGNORE INTO deposits"
            " (tx_hash, tx_lt, asset, amount, sender, destination, comment,"
            "  outcome, invoice_id, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                deposit.tx_hash, str(deposit.tx_lt), deposit.asset, str(deposit.amount),
                deposit.sender, deposit.destination, deposit.comment,
                outcome, invoice_id, _now(),
            ),
        )
        await self.db.commit()

    async def get_deposits(self, limit: int = 50) -> list[DepositRecord]:
        async with self.db.execute(
            "SELECT * FROM deposits ORDER BY created_at DESC, rowid DESC LIMIT ?", (limit,)
        ) as cur:
            return [_row_to_deposit(row) async for row in cur]

    # ── Activity log ───────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        tx_hash: str | None = None,
        amount: int | None = None,
    ) -> None:
        await self.db.execute(
            "INSERT INTO activity_log (event_type, tx_hash, amount, message, created_at)"
            " VALUES (?, ?, ?, ?, ?)",
            (event_type, tx_hash, str(amount) if amount is not None else None, message, _now()),
        )
        await self.db.commit()

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        async with self.db.execute(
            "SELECT * FROM activity_log ORDER BY created_at DESC, id DESC LIMIT ?", (limit,)
        ) as cur:
            return [
                ActivityRecord(
                    id=row["id"],
                    event_type=row["event_type"],
                    message=row["message"],
                    tx_hash=row["tx_hash"],
                    amount=int(row["amount"]) if row["amount"] is not None else None,
                    created_at=row["created_at"],
                )
                async for row in cur
            ]


# ── Row converters ─────────────────────────────────────────


def _row_to_invoice(row: aiosqlite.Row) -> InvoiceRecord:
    return InvoiceRecord(
        invoice_id=row["invoice_id"],
        user_id=row["user_id"],
        asset=row["asset"],
        expected_amount=int(row["expected_amount"]),
        status=row["status"],
        tx_hash=row["tx_hash"],
        paid_at=row["paid_at"],
        created_at=row["created_at"],
    )


def _row_to_deposit(row: aiosqlite.Row) -> DepositRecord:
    return DepositRecord(
        tx_hash=row["tx_hash"],
        tx_lt=int(row["tx_lt"]),
        asset=row["asset"],
        amount=int(row["amount"]),
        sender=row["sender"],
        destination=row["destination"],
        comment=row["comment"],
        outcome=row["outcome"],
        invoice_id=row["invoice_id"],
        created_at=row["created_at"],
    )
