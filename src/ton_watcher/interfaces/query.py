"""ChainQueryPort protocol - read access to the chain for subscribers."""

from __future__ import annotations

from typing import Protocol

from ton_watcher.models.chain import AccountCursor, ShardDescriptor, Transaction, TransactionRef


class ChainQueryPort(Protocol):
    """Queries the subscription engine needs from a chain API."""

    async def get_latest_sequence_number(self) -> int:
        """Latest published masterchain seqno."""
        ...

    async def get_shards_at(self, seqno: int) -> list[ShardDescriptor]:
        """Workchain shard blocks referenced by masterchain block ``seqno``.

        Does not include the masterchain root shard.
        """
        ...

    async def get_transactions_in_shard(
        self, workchain: int, seqno: int, shard: int,
    ) -> list[TransactionRef]:
        ...

    async def get_full_transaction(
        self, account: str, lt: int, tx_hash: str,
    ) -> Transaction | None:
        ...

    async def get_account_transactions(
        self,
        account: str,
        limit: int,
        before: AccountCursor | None = None,
        archival: bool = True,
    ) -> list[Transaction]:
        """Newest-first page of transactions strictly older than ``before``."""
        ...
