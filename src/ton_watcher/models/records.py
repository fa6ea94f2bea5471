"""Deposit and bookkeeping records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ton_watcher.models.chain import ShardDescriptor

TON = "TON"


@dataclass(frozen=True)
class Deposit:
    """A transaction the classifier accepted as an incoming payment."""

    asset: str  # "TON" or a jetton symbol
    amount: int  # nanotons or jetton base units
    sender: str
    destination: str  # the account that received it
    comment: str | None
    tx_hash: str
    tx_lt: int
    timestamp: int  # chain time
    shard: ShardDescriptor | None = None


class DepositOutcome(str, Enum):
    """What the ledger did with a deposit."""

    CREDITED = "credited"
    DUPLICATE = "duplicate"
    UNKNOWN_INVOICE = "unknown_invoice"
    ALREADY_PAID = "already_paid"
    AMOUNT_MISMATCH = "amount_mismatch"


@dataclass
class InvoiceRecord:
    """A payment request identified by its comment (UUID)."""

    invoice_id: str
    user_id: int
    asset: str
    expected_amount: int
    status: str = "pending"
    tx_hash: str | None = None
    paid_at: str | None = None
    created_at: str = ""


@dataclass
class DepositRecord:
    """A processed deposit as persisted in the state store."""

    tx_hash: str
    tx_lt: int
    asset: str
    amount: int
    sender: str
    destination: str
    comment: str | None
    outcome: str
    invoice_id: str | None = None
    created_at: str = ""


@dataclass
class ActivityRecord:
    """A single activity log entry."""

    id: int
    event_type: str
    message: str
    tx_hash: str | None = None
    amount: int | None = None
    created_at: str = ""
