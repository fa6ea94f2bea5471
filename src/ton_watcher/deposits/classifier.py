"""Deposit classifiers - decide which delivered transactions are payments."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from ton_watcher.errors import InvalidAddressError
from ton_watcher.interfaces.classifier import DepositClassifier
from ton_watcher.models.chain import ShardDescriptor, Transaction
from ton_watcher.models.config import JettonConfig
from ton_watcher.models.records import TON, Deposit
from ton_watcher.ton.codec import normalize
from ton_watcher.ton.codec import parse_comment, parse_transfer_notification, to_raw

log = logging.getLogger(__name__)


def _safe_normalize(address: str | None) -> str | None:
    if not address:
        return None
    try:
        return normalize(address)
    except InvalidAddressError:
        return None


def is_bounced(tx: Transaction) -> bool:
    """An inbound transfer that produced outgoing messages was not accepted."""
    return tx.out_msg_count > 0


class TonDepositClassifier:
    """Accepts incoming Toncoin transfers.

    Rules:
    1. The inbound message is internal (has a source)
    2. No outgoing messages (otherwise the value bounced back)
    3. Positive value
    4. If ``watched`` is given, the receiving account must be one of them
       (block mode, one deposit address per user)
    5. Senders in ``ignore_sources`` are skipped (our jetton wallets: their
       notifications carry TON too but are not Toncoin deposits)
    """

    def __init__(
        self,
        watched: Iterable[str] | None = None,
        ignore_sources: Iterable[str] = (),
    ) -> None:
        self._watched: set[str] | None = None
        if watched is not None:
            self._watched = {normalize(a) for a in watched}
        self._ignored = {normalize(a) for a in ignore_sources}

    @property
    def watched(self) -> set[str] | None:
        return self._watched

    def classify(
        self, tx: Transaction, shard: ShardDescriptor | None = None,
    ) -> Deposit | None:
        msg = tx.in_msg
        if msg is None or not msg.is_internal:
            return None
        if is_bounced(tx):
            log.debug("Skipping bounced transaction %s", tx.hash)
            return None
        if msg.value <= 0:
            return None
        if self._ignored and _safe_normalize(msg.source) in self._ignored:
            return None

        destination = msg.destination or tx.account
        if self._watched is not None:
            if _safe_normalize(tx.account) not in self._watched:
                return None

        comment = msg.text if msg.text is not None else parse_comment(msg.body)
        return Deposit(
            asset=TON,
            amount=msg.value,
            sender=msg.source or "",
            destination=destination,
            comment=comment,
            tx_hash=tx.hash,
            tx_lt=tx.lt,
            timestamp=tx.now,
            shard=shard,
        )


class JettonDepositClassifier:
    """Accepts jetton transfer notifications sent by our jetton wallets."""

    def __init__(self, jettons: Sequence[JettonConfig]) -> None:
        self._by_wallet = {normalize(j.wallet_address): j for j in jettons}

    def classify(
        self, tx: Transaction, shard: ShardDescriptor | None = None,
    ) -> Deposit | None:
        msg = tx.in_msg
        if msg is None or not msg.is_internal:
            return None

        jetton = self._by_wallet.get(_safe_normalize(msg.source) or "")
        if jetton is None:
            return None
        if is_bounced(tx):
            log.debug("Skipping bounced jetton notification %s", tx.hash)
            return None

        notification = parse_transfer_notification(msg.body)
        if notification is None:
            return None

        if notification.amount < jetton.min_deposit:
            log.info("Deposit below minimum threshold for %s, ignoring", jetton.symbol)
            return None

        return Deposit(
            asset=jetton.symbol,
            amount=notification.amount,
            sender=to_raw(notification.sender) if notification.sender else "unknown",
            destination=msg.destination or tx.account,
            comment=notification.comment,
            tx_hash=tx.hash,
            tx_lt=tx.lt,
            timestamp=tx.now,
            shard=shard,
        )


class CompositeClassifier:
    """Tries each classifier in order; the first match wins."""

    def __init__(self, classifiers: Sequence[DepositClassifier]) -> None:
        self._classifiers = list(classifiers)

    def classify(
        self, tx: Transaction, shard: ShardDescriptor | None = None,
    ) -> Deposit | None:
        for classifier in self._classifiers:
            deposit = classifier.classify(tx, shard)
            if deposit is not None:
                return deposit
        return None
