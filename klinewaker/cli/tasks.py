"""Reminder commands for K-Line Waker CLI.

Manage candle-close reminder tasks and run the live countdown.
"""

from datetime import datetime

import click
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from klinewaker.cli.common import (
    console,
    fail,
    get_data_store,
    get_settings,
    resolve_id,
    short_id,
)
from klinewaker.errors import StoreError
from klinewaker.scheduler import CountdownBoard, TaskBoard, next_aligned_time


def _get_board() -> TaskBoard:
    board = TaskBoard(get_data_store())
    board.refresh()
    return board


def _task_id(board: TaskBoard, ref: str) -> str:
    return resolve_id(board.store.tasks, ref, "Task", by_name=True)


@click.group("task")
def task_group() -> None:
    """Manage candle-close reminder tasks."""


@task_group.command("add")
@click.argument("name")
@click.option("--period", "-p", type=click.IntRange(min=1), required=True,
              help="Candle period in minutes (e.g. 15, 60, 240).")
@click.option("--notify-before", "-n", type=click.IntRange(min=0), default=0, show_default=True,
              help="Seconds before the close to notify. 0 notifies at the close.")
def add_task(name: str, period: int, notify_before: int) -> None:
    """Create a reminder task.

    \b
    Examples:
      klinewaker task add "BTC 15m" --period 15 --notify-before 30
      klinewaker task add "ES 4h" -p 240 -n 60
    """
    board = _get_board()
    try:
        task = board.add(name, period, notify_before)
    except StoreError as e:
        fail(str(e))

    console.print(Panel(
        f"[bold green]Task Created[/bold green]\n\n"
        f"ID:            {short_id(task.id)}\n"
        f"Name:          {task.name}\n"
        f"Period:        {task.period_label}\n"
        f"Notify before: {task.notify_before}s\n"
        f"Next close:    {next_aligned_time(task.period):%H:%M:%S}",
        title="[bold]New Task[/bold]",
        border_style="green",
    ))


@task_group.command("list")
def list_tasks() -> None:
    """List reminder tasks with their next close."""
    board = _get_board()
    if not board.tasks:
        console.print(Panel(
            "[dim]No tasks yet. Use 'klinewaker task add NAME --period MINUTES' to create one.[/dim]",
            title="[bold]Tasks[/bold]",
            border_style="dim",
        ))
        return

    table = Table(title="Reminder Tasks", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Name", style="bold")
    table.add_column("Period", justify="right")
    table.add_column("Notify", justify="right")
    table.add_column("Next close", justify="right")
    table.add_column("Status", justify="center")

    for task in board.tasks:
        status = "[green]● On[/green]" if task.enabled else "[dim]○ Off[/dim]"
        table.add_row(
            short_id(task.id),
            task.name,
            task.period_label,
            f"{task.notify_before}s",
            f"{next_aligned_time(task.period):%H:%M:%S}",
            status,
        )

    console.print(table)


@task_group.command("edit")
@click.argument("task_ref")
@click.option("--name", default=None, help="New name.")
@click.option("--period", "-p", type=click.IntRange(min=1), default=None, help="New period in minutes.")
@click.option("--notify-before", "-n", type=click.IntRange(min=0), default=None,
              help="New notify lead time in seconds.")
def edit_task(task_ref: str, name: str | None, period: int | None, notify_before: int | None) -> None:
    """Change a task's name, period or notify lead time."""
    board = _get_board()
    changes = {
        key: value
        for key, value in {"name": name, "period": period, "notify_before": notify_before}.items()
        if value is not None
    }
    if not changes:
        fail("Nothing to change. Pass --name, --period or --notify-before.")

    try:
        task = board.update(_task_id(board, task_ref), **changes)
    except StoreError as e:
        fail(str(e))
    console.print(f"[green]✓ Updated {task.name} ({task.period_label}, {task.notify_before}s)[/green]")


@task_group.command("toggle")
@click.argument("task_ref")
def toggle_task(task_ref: str) -> None:
    """Enable or disable a task's notifications."""
    board = _get_board()
    try:
        task = board.toggle(_task_id(board, task_ref))
    except StoreError as e:
        fail(str(e))
    state = "[green]enabled[/green]" if task.enabled else "[yellow]disabled[/yellow]"
    console.print(f"{task.name} is now {state}")


@task_group.command("remove")
@click.argument("task_ref")
def remove_task(task_ref: str) -> None:
    """Delete a task."""
    board = _get_board()
    task_id = _task_id(board, task_ref)
    task = board.get(task_id)
    try:
        board.remove(task_id)
    except StoreError as e:
        fail(str(e))
    console.print(f"[green]✓ Removed task {task.name}[/green]")


def _countdown_table(countdowns: CountdownBoard) -> Table:
    table = Table(
        title="Candle Close Countdown (Ctrl+C to stop)",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Task", style="bold")
    table.add_column("Period", justify="right")
    table.add_column("Closes at", justify="right", style="dim")
    table.add_column("Left", justify="right")
    table.add_column("Progress", justify="left")

    for task in countdowns.tasks:
        engine = countdowns.engine(task.id)
        if engine is None or engine.target is None:
            continue

        left = engine.formatted_time
        if engine.is_urgent:
            left = f"[bold red]{left}[/bold red]"
        elif engine.is_notifying:
            left = f"[yellow]{left}[/yellow]"

        filled = int(engine.progress / 5)
        bar = "█" * filled + "░" * (20 - filled)
        name = task.name if task.enabled else f"[dim]{task.name} (off)[/dim]"

        table.add_row(name, task.period_label, f"{engine.target:%H:%M:%S}", left, bar)

    return table


@click.command("watch")
@click.option("--refresh", type=float, default=1.0, show_default=True,
              help="Seconds between ticks.")
def watch(refresh: float) -> None:
    """Show a live countdown to each task's next candle close.

    Enabled tasks notify once per candle, NOTIFY-BEFORE seconds ahead of
    the close. Press Ctrl+C to stop.
    """
    from klinewaker.notifier import Notifier

    board = _get_board()
    if not board.tasks:
        fail("No tasks to watch. Use 'klinewaker task add' first.")

    notifier = Notifier(get_settings().notifications, console=console)
    countdowns = CountdownBoard()
    countdowns.sync(board.tasks, notifier.notify_task)

    try:
        with Live(_countdown_table(countdowns), refresh_per_second=2, console=console) as live:
            countdowns.run(
                on_tick=lambda: live.update(_countdown_table(countdowns)),
                interval=refresh,
            )
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped watching.[/dim]")


@click.command("next")
@click.argument("period", type=click.IntRange(min=1))
@click.option("--count", "-c", type=click.IntRange(min=1), default=1, show_default=True,
              help="How many upcoming closes to show.")
def next_close(period: int, count: int) -> None:
    """Print the next candle close times for PERIOD minutes."""
    moment = datetime.now()
    for _ in range(count):
        moment = next_aligned_time(period, moment)
        console.print(f"{moment:%Y-%m-%d %H:%M:%S}")
