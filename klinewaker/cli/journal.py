"""Trade journal commands for K-Line Waker CLI.

Log trades, edit and remove them, and export attached screenshots.
Account balances follow automatically whenever a trade is settled.
"""

import base64
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import click
from pydantic import ValidationError
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from klinewaker.cli.common import (
    console,
    fail,
    format_usd,
    from_millis,
    get_data_store,
    get_image_store,
    parse_when,
    resolve_id,
    short_id,
    to_millis,
)
from klinewaker.db.store import DataStore
from klinewaker.errors import ImageNotFoundError
from klinewaker.journal import JournalService, range_for
from klinewaker.models import JournalEntry

DIRECTIONS = click.Choice(["Long", "Short"], case_sensitive=False)
STATUSES = click.Choice(["Open", "Closed", "Win", "Loss"], case_sensitive=False)
RANGES = click.Choice(["week", "month", "year", "custom", "all"], case_sensitive=False)


def _get_service() -> tuple[JournalService, DataStore]:
    store = get_data_store()
    return JournalService(store, get_image_store()), store


def _entry_id(store: DataStore, ref: str) -> str:
    return resolve_id(store.journal, ref, "Journal entry")


def _read_images(paths: tuple[Path, ...]) -> list[bytes]:
    return [path.read_bytes() for path in paths]


def _names(store: DataStore) -> dict[str, dict[str, str]]:
    return {
        "instruments": {d["id"]: d["name"] for d in store.instruments.find()},
        "accounts": {d["id"]: d["name"] for d in store.accounts.find()},
        "strategies": {d["id"]: d["name"] for d in store.strategies.find()},
    }


def _normalize_choice(value: Optional[str]) -> Optional[str]:
    return value.capitalize() if value else value


def _references(
    store: DataStore,
    instrument: Optional[str],
    account: Optional[str],
    strategy: Optional[str],
) -> dict[str, Any]:
    refs: dict[str, Any] = {}
    if instrument is not None:
        refs["instrument_id"] = (
            resolve_id(store.instruments, instrument, "Instrument", by_name=True) if instrument else None
        )
    if account is not None:
        refs["account_id"] = (
            resolve_id(store.accounts, account, "Account", by_name=True) if account else None
        )
    if strategy is not None:
        refs["strategy_id"] = (
            resolve_id(store.strategies, strategy, "Strategy", by_name=True) if strategy else None
        )
    return refs


def _trade_options(required: bool):
    """Options shared by 'journal add' and 'journal edit'."""

    def decorator(f):
        options = [
            click.option("--symbol", "-s", required=required, help="Traded symbol."),
            click.option("--direction", "-d", type=DIRECTIONS, required=required, help="Long or Short."),
            click.option("--entry", "entry_price", type=float, required=required, help="Entry price."),
            click.option("--exit", "exit_price", type=float, default=None, help="Exit price."),
            click.option("--stop", "stop_loss", type=float, default=None, help="Stop loss price."),
            click.option("--size", "position_size", type=float, default=None,
                         help="Position size in contracts (default 1)."),
            click.option("--status", type=STATUSES, default=None, help="Open, Closed, Win or Loss."),
            click.option("--pnl", type=float, default=None,
                         help="P&L in points. Derived from prices when omitted."),
            click.option("--instrument", "-i", default=None,
                         help="Instrument ID or name. Pass '' to clear."),
            click.option("--account", "-a", default=None, help="Account ID or name. Pass '' to clear."),
            click.option("--strategy", default=None, help="Strategy ID or name. Pass '' to clear."),
            click.option("--notes", default=None, help="Free-form notes."),
            click.option("--date", "when", default=None, help="Trade date, YYYY-MM-DD [HH:MM]."),
            click.option("--image", "images", multiple=True,
                         type=click.Path(exists=True, dir_okay=False, path_type=Path),
                         help="Screenshot to attach. Repeatable."),
        ]
        for option in reversed(options):
            f = option(f)
        return f

    return decorator


@click.group("journal")
def journal_group() -> None:
    """Log and review trades."""


@journal_group.command("add")
@_trade_options(required=True)
def add_entry(
    symbol: str,
    direction: str,
    entry_price: float,
    exit_price: Optional[float],
    stop_loss: Optional[float],
    position_size: Optional[float],
    status: Optional[str],
    pnl: Optional[float],
    instrument: Optional[str],
    account: Optional[str],
    strategy: Optional[str],
    notes: Optional[str],
    when: Optional[str],
    images: tuple[Path, ...],
) -> None:
    """Log a trade.

    \b
    Examples:
      klinewaker journal add -s NQ -d long --entry 18000 -i NQ
      klinewaker journal add -s ES -d short --entry 5000 --exit 4990 \\
          --stop 5005 --status win -i ES -a Main --image chart.png
    """
    service, store = _get_service()

    draft = {
        "date": to_millis(parse_when(when) or datetime.now()),
        "symbol": symbol.upper(),
        "direction": _normalize_choice(direction),
        "entry_price": entry_price,
        "exit_price": exit_price,
        "stop_loss": stop_loss,
        "position_size": position_size if position_size is not None else 1,
        "status": _normalize_choice(status) or "Open",
        "pnl": pnl,
        "notes": notes,
        "images": _read_images(images),
        **_references(store, instrument, account, strategy),
    }

    try:
        entry = service.create_entry(draft)
    except ValidationError as e:
        fail(f"Invalid trade:\n{e}")

    _print_entry(entry, store, title="[bold green]Trade Logged[/bold green]", border="green")


@journal_group.command("edit")
@click.argument("entry_ref")
@_trade_options(required=False)
@click.option("--clear-exit", is_flag=True, help="Remove the exit price (reopen the trade).")
@click.option("--clear-pnl", is_flag=True, help="Remove manual points so they are derived from prices.")
@click.option("--remove-image", "remove_images", multiple=True,
              help="Attached image filename to remove. Repeatable.")
def edit_entry(
    entry_ref: str,
    symbol: Optional[str],
    direction: Optional[str],
    entry_price: Optional[float],
    exit_price: Optional[float],
    stop_loss: Optional[float],
    position_size: Optional[float],
    status: Optional[str],
    pnl: Optional[float],
    instrument: Optional[str],
    account: Optional[str],
    strategy: Optional[str],
    notes: Optional[str],
    when: Optional[str],
    images: tuple[Path, ...],
    clear_exit: bool,
    clear_pnl: bool,
    remove_images: tuple[str, ...],
) -> None:
    """Edit a logged trade. Only the given options change.

    \b
    Examples:
      klinewaker journal edit 3fa2 --exit 18040 --status win
      klinewaker journal edit 3fa2 --status open --clear-exit
    """
    service, store = _get_service()
    entry_id = _entry_id(store, entry_ref)

    patch: dict[str, Any] = {
        "symbol": symbol.upper() if symbol else None,
        "direction": _normalize_choice(direction),
        "entry_price": entry_price,
        "exit_price": exit_price,
        "stop_loss": stop_loss,
        "position_size": position_size,
        "status": _normalize_choice(status),
        "pnl": pnl,
        "notes": notes,
    }
    if when:
        patch["date"] = to_millis(parse_when(when))
    patch = {key: value for key, value in patch.items() if value is not None}
    patch.update(_references(store, instrument, account, strategy))

    if clear_exit:
        patch["exit_price"] = None
    if clear_pnl:
        patch["pnl"] = None
    if images:
        patch["images"] = _read_images(images)
    if remove_images:
        patch["remove_image_file_names"] = list(remove_images)

    if not patch:
        fail("Nothing to change.")

    try:
        service.update_entry(entry_id, patch)
    except ValidationError as e:
        fail(f"Invalid trade:\n{e}")

    _print_entry(service.get_entry(entry_id), store, title="[bold]Trade Updated[/bold]", border="cyan")


@journal_group.command("remove")
@click.argument("entry_ref")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def remove_entry(entry_ref: str, yes: bool) -> None:
    """Delete a trade, its screenshots and its balance impact."""
    service, store = _get_service()
    entry_id = _entry_id(store, entry_ref)
    entry = service.get_entry(entry_id)

    if not yes:
        click.confirm(f"Delete {entry.symbol} {entry.direction} trade {short_id(entry_id)}?", abort=True)

    service.delete_entry(entry_id)
    console.print(f"[green]✓ Removed trade {short_id(entry_id)} ({entry.symbol})[/green]")


@journal_group.command("show")
@click.argument("entry_ref")
def show_entry(entry_ref: str) -> None:
    """Show one trade in full."""
    service, store = _get_service()
    entry = service.get_entry(_entry_id(store, entry_ref))
    _print_entry(entry, store, title="[bold]Trade[/bold]", border="cyan")


@journal_group.command("list")
@click.option("--account", "-a", default=None, help="Only trades for this account (ID or name).")
@click.option("--range", "range_mode", type=RANGES, default="all", show_default=True,
              help="Date range to show.")
@click.option("--from", "from_day", default=None, help="Custom range start, YYYY-MM-DD.")
@click.option("--to", "to_day", default=None, help="Custom range end, YYYY-MM-DD.")
def list_entries(account: Optional[str], range_mode: str, from_day: Optional[str], to_day: Optional[str]) -> None:
    """List trades, newest first."""
    service, store = _get_service()
    account_id = resolve_id(store.accounts, account, "Account", by_name=True) if account else None
    start, end = resolve_range(range_mode, from_day, to_day)

    entries = service.list_entries(account_id=account_id, start=start, end=end)
    if not entries:
        console.print(Panel(
            "[dim]No trades logged. Use 'klinewaker journal add' to log one.[/dim]",
            title="[bold]Journal[/bold]",
            border_style="dim",
        ))
        return

    console.print(entries_table(entries, _names(store)))
    total = sum(e.usd_pnl for e in entries)
    console.print(f"\n[dim]{len(entries)} trades[/dim]  Net: {format_usd(total)}")


@journal_group.command("image")
@click.argument("filename")
@click.option("--out", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Where to write the image (default: FILENAME in the current directory).")
def export_image(filename: str, out: Optional[Path]) -> None:
    """Save an attached screenshot to a file."""
    try:
        data_uri = get_image_store().read(filename)
    except ImageNotFoundError as e:
        fail(str(e))

    out = out or Path(filename)
    out.write_bytes(base64.b64decode(data_uri.split(",", 1)[1]))
    console.print(f"[green]✓ Wrote {out}[/green]")


def resolve_range(
    range_mode: str, from_day: Optional[str], to_day: Optional[str]
) -> tuple[Optional[int], Optional[int]]:
    """Turn --range/--from/--to into epoch-millisecond bounds."""
    mode = range_mode.lower()
    if mode == "custom" and not (from_day and to_day):
        fail("--range custom needs both --from and --to.")
    start_day = parse_when(from_day).date() if from_day else None
    end_day = parse_when(to_day).date() if to_day else None
    return range_for(mode, start_day=start_day, end_day=end_day)


def entries_table(entries: list[JournalEntry], names: dict[str, dict[str, str]]) -> Table:
    table = Table(title="Trade Journal", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Date", style="dim")
    table.add_column("Symbol", style="bold")
    table.add_column("Dir")
    table.add_column("Entry", justify="right")
    table.add_column("Exit", justify="right")
    table.add_column("Status", justify="center")
    table.add_column("Points", justify="right")
    table.add_column("USD", justify="right")
    table.add_column("R:R", justify="right")
    table.add_column("Account")

    for e in entries:
        direction = "[green]Long[/green]" if e.direction == "Long" else "[red]Short[/red]"
        table.add_row(
            short_id(e.id),
            f"{from_millis(e.date):%Y-%m-%d %H:%M}",
            e.symbol,
            direction,
            f"{e.entry_price:g}",
            f"{e.exit_price:g}" if e.exit_price is not None else "-",
            e.status,
            f"{e.pnl:+g}" if e.pnl is not None else "-",
            format_usd(e.usd_pnl),
            f"{e.risk_reward:.2f}" if e.risk_reward is not None else "-",
            names["accounts"].get(e.account_id or "", "-"),
        )

    return table


def _print_entry(entry: JournalEntry, store: DataStore, title: str, border: str) -> None:
    names = _names(store)
    lines = [
        f"ID:          {entry.id}",
        f"Date:        {from_millis(entry.date):%Y-%m-%d %H:%M}",
        f"Symbol:      {entry.symbol} ({entry.direction})",
        f"Status:      {entry.status}",
        f"Entry:       {entry.entry_price:g}",
        f"Exit:        {entry.exit_price:g}" if entry.exit_price is not None else "Exit:        -",
        f"Stop:        {entry.stop_loss:g}" if entry.stop_loss is not None else "Stop:        -",
        f"Size:        {entry.position_size if entry.position_size is not None else 1:g}",
        f"Points:      {entry.pnl:+g}" if entry.pnl is not None else "Points:      -",
        f"USD P&L:     {format_usd(entry.usd_pnl)}",
        f"R:R:         {entry.risk_reward:.2f}" if entry.risk_reward is not None else "R:R:         -",
        f"Instrument:  {names['instruments'].get(entry.instrument_id or '', '-')}",
        f"Account:     {names['accounts'].get(entry.account_id or '', '-')}",
        f"Strategy:    {names['strategies'].get(entry.strategy_id or '', entry.strategy_id or '-')}",
    ]
    if entry.notes:
        lines.append(f"\n{escape(entry.notes)}")
    if entry.image_file_names:
        lines.append("\n[dim]Images:[/dim]")
        lines.extend(f"  {name}" for name in entry.image_file_names)

    console.print(Panel("\n".join(lines), title=title, border_style=border))
