"""Journal statistics command for K-Line Waker CLI."""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from klinewaker.cli.common import console, format_usd, get_data_store, get_image_store, resolve_id
from klinewaker.cli.journal import RANGES, resolve_range
from klinewaker.journal import CatalogService, JournalService, summarize


@click.command("stats")
@click.option("--account", "-a", default=None, help="Only trades for this account (ID or name).")
@click.option("--range", "range_mode", type=RANGES, default="week", show_default=True,
              help="Date range to summarize.")
@click.option("--from", "from_day", default=None, help="Custom range start, YYYY-MM-DD.")
@click.option("--to", "to_day", default=None, help="Custom range end, YYYY-MM-DD.")
def stats(account: Optional[str], range_mode: str, from_day: Optional[str], to_day: Optional[str]) -> None:
    """Summarize win rate, P&L and R:R for decided trades.

    Only trades marked Win or Loss are counted.

    \b
    Examples:
      klinewaker stats                   # This week
      klinewaker stats --range month -a Main
      klinewaker stats --range custom --from 2024-01-01 --to 2024-03-31
    """
    store = get_data_store()
    account_id = resolve_id(store.accounts, account, "Account", by_name=True) if account else None
    start, end = resolve_range(range_mode, from_day, to_day)

    entries = JournalService(store, get_image_store()).list_entries(account_id, start, end)
    summary = summarize(entries, CatalogService(store).list_strategies())

    avg_rr = f"{summary.average_risk_reward:.2f}" if summary.average_risk_reward is not None else "-"
    console.print(Panel(
        f"Wins / Losses:  [green]{summary.wins}[/green] / [red]{summary.losses}[/red]\n"
        f"Win rate:       {summary.win_rate:.1f}%\n"
        f"Net points:     {summary.net_points:+.2f}\n"
        f"Net USD:        {format_usd(summary.net_usd)}\n"
        f"Average R:R:    {avg_rr}",
        title=f"[bold]Stats ({range_mode.lower()})[/bold]",
        border_style="cyan",
    ))

    if summary.by_strategy:
        table = Table(title="Win Rate by Strategy", show_header=True, header_style="bold cyan")
        table.add_column("Strategy", style="bold")
        table.add_column("Trades", justify="right")
        table.add_column("Win rate", justify="right")
        for group in summary.by_strategy:
            table.add_row(group.name, str(group.total), f"{group.win_rate:.1f}%")
        console.print(table)
