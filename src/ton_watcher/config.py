"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from ton_watcher.errors import ConfigError, InvalidAddressError
from ton_watcher.models.config import (
    BackoffStrategy,
    JettonConfig,
    RetryConfig,
    SubscriptionMode,
    WatcherConfig,
)
from ton_watcher.ton.codec import parse_address


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "TON_WATCHER_",
) -> WatcherConfig:
    """Load watcher configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (TON_WATCHER_API_KEY, etc.)
        2. TOML config file
        3. Defaults from WatcherConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = WatcherConfig()

    try:
        # ── Watcher section ────────────────────────────────────
        watcher = raw.get("watcher", {})
        if mode_str := watcher.get("mode"):
            cfg.mode = SubscriptionMode(mode_str)
        if v := watcher.get("poll_interval"):
            cfg.poll_interval = float(v)
        if v := watcher.get("log_level"):
            cfg.log_level = str(v)

        # ── TON section ────────────────────────────────────────
        ton = raw.get("ton", {})
        if v := ton.get("network"):
            cfg.network = str(v)
        if v := ton.get("api_url"):
            cfg.api_url = str(v)
        if v := ton.get("api_key"):
            cfg.api_key = str(v)
        if v := ton.get("wallet_address"):
            cfg.wallet_address = str(v)
        if "archival" in ton:
            cfg.archival = bool(ton["archival"])
        if v := ton.get("page_size"):
            cfg.page_size = int(v)
        if v := ton.get("request_timeout"):
            cfg.request_timeout = float(v)
        if (v := ton.get("start_block")) is not None:
            cfg.start_block = int(v)
        if v := ton.get("deposit_addresses"):
            cfg.deposit_addresses = [str(a) for a in v]

        # ── Retry section ──────────────────────────────────────
        retry = raw.get("retry", {})
        if "account" in retry:
            cfg.account_retry = _retry_config(retry["account"], cfg.account_retry)
        if "block" in retry:
            cfg.block_retry = _retry_config(retry["block"], cfg.block_retry)

        # ── Storage section ────────────────────────────────────
        storage = raw.get("storage", {})
        if v := storage.get("db_path"):
            cfg.db_path = str(v)

        # ── Jettons ────────────────────────────────────────────
        cfg.jettons = [
            JettonConfig(
                symbol=str(j["symbol"]),
                wallet_address=str(j.get("wallet_address", "")),
                decimals=int(j.get("decimals", 9)),
                min_deposit=int(j.get("min_deposit", 1)),
                master_address=str(j.get("master_address", "")),
            )
            for j in raw.get("jettons", [])
        ]

        # ── Environment variable overrides (highest priority) ──
        if key := os.environ.get(f"{env_prefix}API_KEY"):
            cfg.api_key = key
        if wallet := os.environ.get(f"{env_prefix}WALLET_ADDRESS"):
            cfg.wallet_address = wallet
        if net := os.environ.get(f"{env_prefix}NETWORK"):
            cfg.network = net
        if url := os.environ.get(f"{env_prefix}API_URL"):
            cfg.api_url = url
        if mode_env := os.environ.get(f"{env_prefix}MODE"):
            cfg.mode = SubscriptionMode(mode_env)
        if db := os.environ.get(f"{env_prefix}DB_PATH"):
            cfg.db_path = db
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _retry_config(section: dict, default: RetryConfig) -> RetryConfig:
    return RetryConfig(
        max_attempts=int(section.get("max_attempts", default.max_attempts)),
        base_delay=float(section.get("base_delay", default.base_delay)),
        max_delay=float(section.get("max_delay", default.max_delay)),
        strategy=BackoffStrategy(section.get("strategy", default.strategy)),
    )


def validate_config(cfg: WatcherConfig) -> None:
    """Reject configurations the daemon cannot run with."""
    if not cfg.resolved_api_url():
        raise ConfigError(f"No API URL configured for network {cfg.network!r}")
    if cfg.poll_interval <= 0:
        raise ConfigError("poll_interval must be positive")
    if cfg.page_size < 1:
        raise ConfigError("page_size must be at least 1")
    for name, retry in (("account", cfg.account_retry), ("block", cfg.block_retry)):
        if retry.max_attempts < 1:
            raise ConfigError(f"retry.{name}.max_attempts must be at least 1")

    if cfg.mode == SubscriptionMode.ACCOUNT and not cfg.wallet_address:
        raise ConfigError(
            "Account mode needs a wallet address (set [ton] wallet_address "
            "or TON_WATCHER_WALLET_ADDRESS)"
        )

    for jetton in cfg.jettons:
        if not jetton.wallet_address and not jetton.master_address:
            raise ConfigError(
                f"jettons.{jetton.symbol}: set wallet_address or master_address"
            )
        if not jetton.wallet_address and not cfg.wallet_address:
            raise ConfigError(
                f"jettons.{jetton.symbol}: resolving the jetton wallet from "
                "master_address needs [ton] wallet_address"
            )

    addresses = [("wallet_address", cfg.wallet_address)]
    addresses += [("deposit_addresses", a) for a in cfg.deposit_addresses]
    addresses += [(f"jettons.{j.symbol}", j.wallet_address) for j in cfg.jettons]
    addresses += [(f"jettons.{j.symbol}.master_address", j.master_address) for j in cfg.jettons]
    for field_name, value in addresses:
        if not value:
            continue
        try:
            parse_address(value)
        except InvalidAddressError as exc:
            raise ConfigError(f"{field_name}: {exc}") from exc
