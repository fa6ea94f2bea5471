"""Configuration models for the watcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SubscriptionMode(str, Enum):
    """Which subscription engine the daemon runs."""

    ACCOUNT = "account"  # poll one wallet's history
    BLOCK = "block"  # walk every masterchain block and its shards


class BackoffStrategy(str, Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


NETWORK_API_URLS = {
    "testnet": "https://testnet.toncenter.com/api/v2",
    "mainnet": "https://toncenter.com/api/v2",
}


@dataclass
class RetryConfig:
    """Backoff settings for chain queries."""

    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 10.0  # seconds, exponential cap
    strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL


def account_retry_defaults() -> RetryConfig:
    return RetryConfig(max_attempts=10, base_delay=1.0, max_delay=10.0,
                       strategy=BackoffStrategy.LINEAR)


def block_retry_defaults() -> RetryConfig:
    return RetryConfig(max_attempts=3, base_delay=1.0, max_delay=10.0,
                       strategy=BackoffStrategy.EXPONENTIAL)


@dataclass
class JettonConfig:
    """A supported jetton and our wallet for it."""

    symbol: str
    wallet_address: str = ""  # our jetton wallet (receives transfer notifications)
    decimals: int = 9
    min_deposit: int = 1  # in jetton base units
    master_address: str = ""  # minter; resolves wallet_address at startup when that is empty


@dataclass
class WatcherConfig:
    """Complete watcher configuration."""

    # Watcher
    mode: SubscriptionMode = SubscriptionMode.ACCOUNT
    poll_interval: float = 10.0  # seconds
    log_level: str = "info"

    # TON
    network: str = "testnet"
    api_url: str = ""  # defaults to the toncenter URL for the network
    api_key: str = ""  # loaded from env var TON_WATCHER_API_KEY
    wallet_address: str = ""  # account mode: the wallet we watch
    archival: bool = True
    page_size: int = 10
    request_timeout: float = 30.0  # seconds
    start_block: int | None = None  # block mode: resume point when no cursor is stored
    deposit_addresses: list[str] = field(default_factory=list)  # block mode

    # Retry
    account_retry: RetryConfig = field(default_factory=account_retry_defaults)
    block_retry: RetryConfig = field(default_factory=block_retry_defaults)

    # Storage
    db_path: str = "~/.ton_watcher/state.db"

    # Jettons
    jettons: list[JettonConfig] = field(default_factory=list)

    @property
    def is_testnet(self) -> bool:
        return self.network != "mainnet"

    def resolved_api_url(self) -> str:
        return self.api_url or NETWORK_API_URLS.get(self.network, "")
