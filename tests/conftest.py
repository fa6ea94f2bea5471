"""Shared fixtures for ton_watcher tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from ton_watcher.models.config import (
    BackoffStrategy,
    RetryConfig,
    SubscriptionMode,
    WatcherConfig,
)
from ton_watcher.storage.sqlite import SQLiteStateStore
from ton_watcher.subscription.retry import RetryPolicy

from tests.factories import WALLET
from tests.mocks import MockChain, RecordingHandler, no_sleep

TESTNET_API = "https://testnet.toncenter.com/api/v2"


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add network info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "TON Testnet (mocked)"
    meta["API"] = TESTNET_API
    meta["Wallet"] = WALLET


def make_test_config(**overrides) -> WatcherConfig:
    """Build a WatcherConfig suitable for testing."""
    defaults = dict(
        mode=SubscriptionMode.ACCOUNT,
        poll_interval=0.05,
        network="testnet",
        api_url=TESTNET_API,
        wallet_address=WALLET,
        page_size=2,
        account_retry=RetryConfig(max_attempts=3, base_delay=0.0,
                                  strategy=BackoffStrategy.LINEAR),
        block_retry=RetryConfig(max_attempts=3, base_delay=0.0, max_delay=0.0),
        db_path=":memory:",
    )
    defaults.update(overrides)
    return WatcherConfig(**defaults)


def fast_retry(max_attempts: int = 3) -> RetryPolicy:
    """Retry policy that never actually sleeps."""
    return RetryPolicy(max_attempts=max_attempts, base_delay=1.0, sleep=no_sleep)


@pytest.fixture
def test_config():
    """Default WatcherConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteStateStore."""
    s = SQLiteStateStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def chain():
    return MockChain()


@pytest.fixture
def handler():
    return RecordingHandler()
