"""DepositClassifier protocol - decides whether a transaction is a payment."""

from __future__ import annotations

from typing import Protocol

from ton_watcher.models.chain import ShardDescriptor, Transaction
from ton_watcher.models.records import Deposit


class DepositClassifier(Protocol):
    """Turns delivered transactions into deposits.

    Malformed payloads are not errors here: they classify as None.
    """

    def classify(
        self, tx: Transaction, shard: ShardDescriptor | None = None,
    ) -> Deposit | None:
        ...
