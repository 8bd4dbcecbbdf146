"""Instrument, account and strategy commands for K-Line Waker CLI."""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from klinewaker.cli.common import console, fail, get_data_store, resolve_id, short_id
from klinewaker.errors import NotFoundError, ReferentialIntegrityError
from klinewaker.journal import CatalogService

IN_USE_HINTS = {
    ReferentialIntegrityError.INSTRUMENT_IN_USE: "journal entries still use this instrument",
    ReferentialIntegrityError.ACCOUNT_IN_USE: "journal entries are still booked to this account",
    ReferentialIntegrityError.STRATEGY_IN_USE: "journal entries are still tagged with this strategy",
}


def _get_catalog() -> CatalogService:
    return CatalogService(get_data_store())


def _delete(delete, entity_id: str, label: str) -> None:
    try:
        delete(entity_id)
    except ReferentialIntegrityError as e:
        fail(
            f"{e.code}: {IN_USE_HINTS.get(e.code, 'still referenced')} "
            f"({e.references} entries). Reassign or delete them first.",
            title="Cannot Delete",
        )
    console.print(f"[green]✓ Removed {label}[/green]")


def _empty(kind: str, command: str) -> None:
    console.print(Panel(
        f"[dim]No {kind} yet. Use 'klinewaker {command} add' to create one.[/dim]",
        title=f"[bold]{kind.title()}[/bold]",
        border_style="dim",
    ))


# ==================== Instruments ====================

@click.group("instrument")
def instrument_group() -> None:
    """Manage instruments and their USD point values."""


@instrument_group.command("add")
@click.argument("name")
@click.option("--point-value", type=click.FloatRange(min=0), required=True,
              help="USD value of one point per contract (e.g. 20 for NQ).")
def add_instrument(name: str, point_value: float) -> None:
    """Create an instrument."""
    instrument = _get_catalog().create_instrument(name, point_value)
    console.print(f"[green]✓ Added {instrument.name} (${instrument.point_value_usd:g}/pt) "
                  f"[dim]{short_id(instrument.id)}[/dim][/green]")


@instrument_group.command("list")
def list_instruments() -> None:
    """List instruments."""
    instruments = _get_catalog().list_instruments()
    if not instruments:
        _empty("instruments", "instrument")
        return

    table = Table(title="Instruments", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Name", style="bold")
    table.add_column("USD / point", justify="right")
    for instrument in instruments:
        table.add_row(short_id(instrument.id), instrument.name, f"{instrument.point_value_usd:g}")
    console.print(table)


@instrument_group.command("edit")
@click.argument("ref")
@click.option("--name", default=None)
@click.option("--point-value", type=click.FloatRange(min=0), default=None)
def edit_instrument(ref: str, name: Optional[str], point_value: Optional[float]) -> None:
    """Rename an instrument or change its point value."""
    catalog = _get_catalog()
    instrument_id = resolve_id(catalog.store.instruments, ref, "Instrument", by_name=True)
    changes = {"name": name, "point_value_usd": point_value}
    try:
        instrument = catalog.update_instrument(
            instrument_id, **{k: v for k, v in changes.items() if v is not None}
        )
    except NotFoundError as e:
        fail(str(e))
    console.print(f"[green]✓ {instrument.name} is ${instrument.point_value_usd:g}/pt[/green]")


@instrument_group.command("remove")
@click.argument("ref")
def remove_instrument(ref: str) -> None:
    """Delete an instrument no trade uses."""
    catalog = _get_catalog()
    instrument_id = resolve_id(catalog.store.instruments, ref, "Instrument", by_name=True)
    _delete(catalog.delete_instrument, instrument_id, f"instrument {short_id(instrument_id)}")


# ==================== Accounts ====================

@click.group("account")
def account_group() -> None:
    """Manage trading accounts and their balances."""


@account_group.command("add")
@click.argument("name")
@click.option("--balance", type=float, default=0.0, show_default=True, help="Starting balance in USD.")
def add_account(name: str, balance: float) -> None:
    """Create an account."""
    account = _get_catalog().create_account(name, balance)
    console.print(f"[green]✓ Added {account.name} (${account.balance:,.2f}) "
                  f"[dim]{short_id(account.id)}[/dim][/green]")


@account_group.command("list")
def list_accounts() -> None:
    """List accounts with balances."""
    accounts = _get_catalog().list_accounts()
    if not accounts:
        _empty("accounts", "account")
        return

    table = Table(title="Accounts", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Name", style="bold")
    table.add_column("Balance", justify="right")
    for account in accounts:
        table.add_row(short_id(account.id), account.name, f"${account.balance:,.2f}")
    console.print(table)


@account_group.command("edit")
@click.argument("ref")
@click.option("--name", default=None)
@click.option("--balance", type=float, default=None, help="Manual balance correction in USD.")
def edit_account(ref: str, name: Optional[str], balance: Optional[float]) -> None:
    """Rename an account or correct its balance."""
    catalog = _get_catalog()
    account_id = resolve_id(catalog.store.accounts, ref, "Account", by_name=True)
    changes = {"name": name, "balance": balance}
    try:
        account = catalog.update_account(
            account_id, **{k: v for k, v in changes.items() if v is not None}
        )
    except NotFoundError as e:
        fail(str(e))
    console.print(f"[green]✓ {account.name}: ${account.balance:,.2f}[/green]")


@account_group.command("remove")
@click.argument("ref")
def remove_account(ref: str) -> None:
    """Delete an account no trade is booked to."""
    catalog = _get_catalog()
    account_id = resolve_id(catalog.store.accounts, ref, "Account", by_name=True)
    _delete(catalog.delete_account, account_id, f"account {short_id(account_id)}")


# ==================== Strategies ====================

@click.group("strategy")
def strategy_group() -> None:
    """Manage strategies used to tag trades."""


@strategy_group.command("add")
@click.argument("name")
@click.option("--description", default="", help="What the setup looks like.")
def add_strategy(name: str, description: str) -> None:
    """Create a strategy."""
    strategy = _get_catalog().create_strategy(name, description)
    console.print(f"[green]✓ Added {strategy.name} [dim]{short_id(strategy.id)}[/dim][/green]")


@strategy_group.command("list")
def list_strategies() -> None:
    """List strategies."""
    strategies = _get_catalog().list_strategies()
    if not strategies:
        _empty("strategies", "strategy")
        return

    table = Table(title="Strategies", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Name", style="bold")
    table.add_column("Description")
    for strategy in strategies:
        table.add_row(short_id(strategy.id), strategy.name, strategy.description)
    console.print(table)


@strategy_group.command("edit")
@click.argument("ref")
@click.option("--name", default=None)
@click.option("--description", default=None)
def edit_strategy(ref: str, name: Optional[str], description: Optional[str]) -> None:
    """Rename a strategy or change its description."""
    catalog = _get_catalog()
    strategy_id = resolve_id(catalog.store.strategies, ref, "Strategy", by_name=True)
    changes = {"name": name, "description": description}
    try:
        strategy = catalog.update_strategy(
            strategy_id, **{k: v for k, v in changes.items() if v is not None}
        )
    except NotFoundError as e:
        fail(str(e))
    console.print(f"[green]✓ Updated {strategy.name}[/green]")


@strategy_group.command("remove")
@click.argument("ref")
def remove_strategy(ref: str) -> None:
    """Delete a strategy no trade is tagged with."""
    catalog = _get_catalog()
    strategy_id = resolve_id(catalog.store.strategies, ref, "Strategy", by_name=True)
    _delete(catalog.delete_strategy, strategy_id, f"strategy {short_id(strategy_id)}")
