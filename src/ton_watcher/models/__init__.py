"""Data models for the ton_watcher daemon."""

from ton_watcher.models.chain import (
    AccountCursor,
    Message,
    ShardDescriptor,
    Transaction,
    TransactionRef,
)
from ton_watcher.models.config import (
    BackoffStrategy,
    JettonConfig,
    RetryConfig,
    SubscriptionMode,
    WatcherConfig,
)
from ton_watcher.models.records import (
    ActivityRecord,
    Deposit,
    DepositOutcome,
    DepositRecord,
    InvoiceRecord,
)

__all__ = [
    "AccountCursor", "Message", "ShardDescriptor", "Transaction", "TransactionRef",
    "BackoffStrategy", "JettonConfig", "RetryConfig", "SubscriptionMode", "WatcherConfig",
    "ActivityRecord", "Deposit", "DepositOutcome", "DepositRecord", "InvoiceRecord",
]
