"""Protocol interfaces for all ton_watcher components."""

from ton_watcher.interfaces.query import ChainQueryPort
from ton_watcher.interfaces.subscriber import (
    CursorHook,
    StopFn,
    Subscriber,
    TransactionHandler,
)
from ton_watcher.interfaces.classifier import DepositClassifier
from ton_watcher.interfaces.store import StateStore

__all__ = [
    "ChainQueryPort",
    "CursorHook", "StopFn", "Subscriber", "TransactionHandler",
    "DepositClassifier",
    "StateStore",
]
