"""Chain event subscription engine: account and block modes."""

from ton_watcher.subscription.account import AccountSubscription
from ton_watcher.subscription.block import BlockSubscription
from ton_watcher.subscription.retry import RetryPolicy
from ton_watcher.subscription.scheduler import TickScheduler

__all__ = ["AccountSubscription", "BlockSubscription", "RetryPolicy", "TickScheduler"]
