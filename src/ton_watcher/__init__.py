"""ton_watcher - polling subscriptions to the TON blockchain and a deposit watcher built on them."""

__version__ = "0.1.0"
