"""Chain-level models: cursors, shards, transactions."""

from __future__ import annotations

from dataclasses import dataclass

from ton_watcher.errors import WatcherError

MASTERCHAIN = -1
BASECHAIN = 0

# 0x8000000000000000 as a signed 64-bit shard id: the whole-workchain shard
ROOT_SHARD = -0x8000000000000000


@dataclass(frozen=True, order=True)
class AccountCursor:
    """Position of a transaction in one account's history.

    Ordered by logical time; the hash only matters for equality since one
    account never has two transactions with the same lt.
    """

    lt: int
    hash: str  # base64

    def __str__(self) -> str:
        return f"{self.lt}:{self.hash}"

    @classmethod
    def parse(cls, value: str) -> AccountCursor:
        """Inverse of ``str(cursor)``."""
        lt, sep, tx_hash = value.partition(":")
        if not sep or not tx_hash:
            raise WatcherError(f"malformed account cursor: {value!r}")
        try:
            return cls(lt=int(lt), hash=tx_hash)
        except ValueError as exc:
            raise WatcherError(f"malformed account cursor: {value!r}") from exc


@dataclass(frozen=True)
class ShardDescriptor:
    """One shard block: (workchain, shard id, shard seqno)."""

    workchain: int
    shard: int  # signed 64-bit
    seqno: int

    @classmethod
    def root(cls, seqno: int) -> ShardDescriptor:
        """The masterchain block itself, never listed among the shards."""
        return cls(workchain=MASTERCHAIN, shard=ROOT_SHARD, seqno=seqno)

    @property
    def shard_hex(self) -> str:
        return f"{self.shard & 0xFFFFFFFFFFFFFFFF:016x}"

    def __str__(self) -> str:
        return f"{self.workchain}:{self.shard_hex}:{self.seqno}"


@dataclass(frozen=True)
class Message:
    """Inbound message of a transaction.

    ``source`` is None for external messages. ``body`` holds the raw BOC
    bytes when the API returned them; ``text`` holds the decoded comment
    when the API returned a text payload.
    """

    source: str | None
    destination: str | None
    value: int  # nanotons
    body: bytes | None = None
    text: str | None = None

    @property
    def is_internal(self) -> bool:
        return self.source is not None


@dataclass(frozen=True)
class Transaction:
    account: str
    lt: int
    hash: str  # base64
    now: int  # chain time, unix seconds
    in_msg: Message | None = None
    out_msg_count: int = 0
    fee: int = 0

    @property
    def cursor(self) -> AccountCursor:
        return AccountCursor(lt=self.lt, hash=self.hash)


@dataclass(frozen=True)
class TransactionRef:
    """Short transaction id as listed in a block."""

    account: str
    lt: int
    hash: str
