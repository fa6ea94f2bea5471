"""CLI entry point for the ton_watcher daemon."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from ton_watcher.config import load_config, validate_config
from ton_watcher.daemon import run_daemon
from ton_watcher.deposits.ledger import InvoiceLedger
from ton_watcher.errors import ConfigError
from ton_watcher.models.config import SubscriptionMode, WatcherConfig
from ton_watcher.models.records import TON
from ton_watcher.storage.sqlite import SQLiteStateStore
from ton_watcher.ton.codec import normalize
from ton_watcher.ton.links import from_nano, payment_link, to_nano


def _load(ctx: click.Context) -> WatcherConfig:
    """Load config or exit with the reason."""
    try:
        return load_config(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _decimals(cfg: WatcherConfig, asset: str) -> int:
    if asset == TON:
        return 9
    for jetton in cfg.jettons:
        if jetton.symbol == asset:
            return jetton.decimals
    click.echo(f"Error: unknown asset {asset!r}.", err=True)
    click.echo("Configure it under [[jettons]] in the config file.", err=True)
    sys.exit(1)


def _amount(cfg: WatcherConfig, asset: str, units: int) -> str:
    if asset == TON:
        return f"{from_nano(units)} {asset}"
    for jetton in cfg.jettons:
        if jetton.symbol == asset:
            return f"{from_nano(units, jetton.decimals)} {asset}"
    return f"{units} {asset} (base units)"


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """ton_watcher - TON deposit watcher."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the watcher daemon."""
    cfg = _load(ctx)
    try:
        validate_config(cfg)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Starting ton_watcher daemon (mode: {cfg.mode.value})")
    asyncio.run(run_daemon(cfg))


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show watcher configuration."""
    cfg = _load(ctx)
    click.echo(f"Mode:          {cfg.mode.value}")
    click.echo(f"Network:       {cfg.network}")
    click.echo(f"API URL:       {cfg.resolved_api_url() or '(not set)'}")
    click.echo(f"API key:       {'***configured***' if cfg.api_key else '(not set)'}")
    click.echo(f"Wallet:        {cfg.wallet_address or '(not set)'}")
    click.echo(f"Poll interval: {cfg.poll_interval:g}s")
    if cfg.mode == SubscriptionMode.BLOCK:
        click.echo(f"Deposit addrs: {len(cfg.deposit_addresses)}")
    click.echo(f"Jettons:       {', '.join(j.symbol for j in cfg.jettons) or '(none)'}")
    click.echo(f"DB path:       {cfg.db_path}")


@cli.command()
@click.pass_context
def cursor(ctx: click.Context) -> None:
    """Show the persisted subscription cursor."""
    cfg = _load(ctx)

    async def _cursor():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            if cfg.mode == SubscriptionMode.ACCOUNT:
                if not cfg.wallet_address:
                    click.echo("No wallet address configured.")
                    return
                saved = await store.get_account_cursor(normalize(cfg.wallet_address))
                click.echo(f"Account cursor: {saved or '(none)'}")
            else:
                seqno = await store.get_block_cursor()
                click.echo(f"Last processed block: {seqno if seqno is not None else '(none)'}")
        finally:
            await store.close()

    asyncio.run(_cursor())


# ── Invoices ───────────────────────────────────────────


@cli.group()
def invoice():
    """Create and list payment invoices."""
    pass


@invoice.command("create")
@click.option("--user", "user_id", type=int, required=True, help="User the payment is credited to")
@click.option("--amount", required=True, help="Amount in whole units (e.g. 1.5)")
@click.option("--asset", default=TON, show_default=True, help="TON or a configured jetton symbol")
@click.pass_context
def invoice_create(ctx: click.Context, user_id: int, amount: str, asset: str) -> None:
    """Create an invoice and print the payment instructions."""
    cfg = _load(ctx)
    if not cfg.wallet_address:
        click.echo("Error: No wallet address configured.", err=True)
        sys.exit(1)
    try:
        units = to_nano(amount, _decimals(cfg, asset))
    except (ArithmeticError, ValueError) as exc:
        click.echo(f"Error: invalid amount {amount!r}: {exc}", err=True)
        sys.exit(1)

    async def _create():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            return await InvoiceLedger(store).create_invoice(user_id, units, asset)
        finally:
            await store.close()

    record = asyncio.run(_create())
    click.echo(f"Invoice:  {record.invoice_id}")
    click.echo(f"Amount:   {_amount(cfg, asset, units)}")
    click.echo(f"Send to:  {cfg.wallet_address}")
    click.echo(f"Comment:  {record.invoice_id}")
    if asset == TON:
        click.echo(f"Link:     {payment_link(cfg.wallet_address, units, record.invoice_id)}")


@invoice.command("list")
@click.option("--status", "filter_status", default=None, help="Filter by status (pending, paid)")
@click.pass_context
def invoice_list(ctx: click.Context, filter_status: str | None) -> None:
    """List invoices."""
    cfg = _load(ctx)

    async def _list():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            invoices = await store.get_invoices(filter_status)
            if not invoices:
                click.echo("No invoices.")
                return
            for inv in invoices:
                click.echo(
                    f"  [{inv.status:7s}] {inv.invoice_id} user={inv.user_id} "
                    f"amount={_amount(cfg, inv.asset, inv.expected_amount)}"
                )
        finally:
            await store.close()

    asyncio.run(_list())


@cli.command()
@click.option("-n", "--limit", type=int, default=20, help="Number of recent deposits to show")
@click.pass_context
def deposits(ctx: click.Context, limit: int) -> None:
    """Show recently processed deposits."""
    cfg = _load(ctx)

    async def _deposits():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            records = await store.get_deposits(limit)
            if not records:
                click.echo("No deposits.")
                return
            for d in records:
                click.echo(
                    f"  [{d.outcome:15s}] {_amount(cfg, d.asset, d.amount)} from {d.sender[:16]}... "
                    f"tx={d.tx_hash[:16]}... comment={d.comment or '-'}"
                )
        finally:
            await store.close()

    asyncio.run(_deposits())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
