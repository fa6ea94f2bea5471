"""Config loading from TOML and environment, and validation."""

from __future__ import annotations

import pytest

from ton_watcher.config import load_config, validate_config
from ton_watcher.errors import ConfigError
from ton_watcher.models.config import BackoffStrategy, JettonConfig, SubscriptionMode

from tests.conftest import make_test_config
from tests.factories import JETTON_WALLET, WALLET, make_address

CONFIG_TOML = f"""
[watcher]
mode = "block"
poll_interval = 2.5
log_level = "debug"

[ton]
network = "mainnet"
api_key = "from-file"
wallet_address = "{WALLET}"
archival = false
page_size = 25
start_block = 0
deposit_addresses = ["{make_address(1)}", "{make_address(2)}"]

[retry.account]
max_attempts = 4
strategy = "exponential"

[retry.block]
max_attempts = 6
base_delay = 0.5

[storage]
db_path = "~/watcher/state.db"

[[jettons]]
symbol = "USDT"
wallet_address = "{JETTON_WALLET}"
decimals = 6
min_deposit = 1000
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("API_KEY", "WALLET_ADDRESS", "NETWORK", "API_URL", "MODE", "DB_PATH"):
        monkeypatch.delenv(f"TON_WATCHER_{name}", raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "watcher.toml"
    path.write_text(CONFIG_TOML)
    return path


def test_defaults_without_file():
    cfg = load_config(None)
    assert cfg.mode == SubscriptionMode.ACCOUNT
    assert cfg.network == "testnet"
    assert cfg.resolved_api_url() == "https://testnet.toncenter.com/api/v2"
    assert cfg.account_retry.max_attempts == 10
    assert cfg.account_retry.strategy == BackoffStrategy.LINEAR
    assert cfg.block_retry.max_attempts == 3


def test_missing_file_falls_back_to_defaults(tmp_path):
    cfg = load_config(tmp_path / "absent.toml")
    assert cfg.mode == SubscriptionMode.ACCOUNT


def test_toml_sections(config_file):
    cfg = load_config(config_file)

    assert cfg.mode == SubscriptionMode.BLOCK
    assert cfg.poll_interval == 2.5
    assert cfg.network == "mainnet"
    assert cfg.resolved_api_url() == "https://toncenter.com/api/v2"
    assert cfg.api_key == "from-file"
    assert cfg.archival is False
    assert cfg.page_size == 25
    assert cfg.start_block == 0
    assert cfg.deposit_addresses == [make_address(1), make_address(2)]
    assert cfg.account_retry.max_attempts == 4
    assert cfg.account_retry.strategy == BackoffStrategy.EXPONENTIAL
    assert cfg.block_retry.max_attempts == 6
    assert cfg.block_retry.base_delay == 0.5
    assert not cfg.db_path.startswith("~")
    assert cfg.jettons[0].symbol == "USDT"
    assert cfg.jettons[0].decimals == 6
    assert cfg.jettons[0].min_deposit == 1000


def test_env_overrides_file(config_file, monkeypatch):
    monkeypatch.setenv("TON_WATCHER_API_KEY", "from-env")
    monkeypatch.setenv("TON_WATCHER_MODE", "account")
    monkeypatch.setenv("TON_WATCHER_NETWORK", "testnet")
    monkeypatch.setenv("TON_WATCHER_DB_PATH", ":memory:")

    cfg = load_config(config_file)

    assert cfg.api_key == "from-env"
    assert cfg.mode == SubscriptionMode.ACCOUNT
    assert cfg.network == "testnet"
    assert cfg.db_path == ":memory:"


def test_bad_mode_is_config_error(monkeypatch):
    monkeypatch.setenv("TON_WATCHER_MODE", "sideways")
    with pytest.raises(ConfigError):
        load_config(None)


def test_valid_config_passes():
    validate_config(make_test_config())


def test_account_mode_needs_wallet():
    with pytest.raises(ConfigError, match="wallet"):
        validate_config(make_test_config(wallet_address=""))


def test_block_mode_without_wallet_is_fine():
    validate_config(make_test_config(mode=SubscriptionMode.BLOCK, wallet_address=""))


def test_unknown_network_without_url():
    with pytest.raises(ConfigError):
        validate_config(make_test_config(network="devnet", api_url=""))


def test_invalid_deposit_address():
    with pytest.raises(ConfigError, match="deposit_addresses"):
        validate_config(make_test_config(deposit_addresses=["nope"]))


def test_non_positive_interval():
    with pytest.raises(ConfigError):
        validate_config(make_test_config(poll_interval=0))


def test_jetton_from_master_address(tmp_path):
    path = tmp_path / "watcher.toml"
    path.write_text(f"""
[ton]
wallet_address = "{WALLET}"

[[jettons]]
symbol = "USDT"
master_address = "{make_address(9)}"
""")
    cfg = load_config(path)

    assert cfg.jettons[0].wallet_address == ""
    assert cfg.jettons[0].master_address == make_address(9)
    validate_config(cfg)


def test_jetton_needs_wallet_or_master():
    jetton = JettonConfig(symbol="USDT")
    with pytest.raises(ConfigError, match="master_address"):
        validate_config(make_test_config(jettons=[jetton]))


def test_jetton_resolution_needs_owner_wallet():
    jetton = JettonConfig(symbol="USDT", master_address=make_address(9))
    cfg = make_test_config(mode=SubscriptionMode.BLOCK, wallet_address="", jettons=[jetton])
    with pytest.raises(ConfigError, match="wallet_address"):
        validate_config(cfg)


def test_invalid_master_address():
    jetton = JettonConfig(symbol="USDT", master_address="nope")
    with pytest.raises(ConfigError, match="master_address"):
        validate_config(make_test_config(jettons=[jetton]))
