"""Deposit classification and bookkeeping built on the subscription engine."""

from ton_watcher.deposits.classifier import (
    CompositeClassifier,
    JettonDepositClassifier,
    TonDepositClassifier,
    is_bounced,
)
from ton_watcher.deposits.ledger import InvoiceLedger

__all__ = [
    "CompositeClassifier", "JettonDepositClassifier", "TonDepositClassifier", "is_bounced",
    "InvoiceLedger",
]
