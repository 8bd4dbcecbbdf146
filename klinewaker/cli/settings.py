"""Configuration commands for K-Line Waker CLI."""

import click
import toml
from rich.panel import Panel
from rich.text import Text

from klinewaker.cli.common import console, get_settings
from klinewaker.config import config_path, write_template


@click.group("config")
def config_group() -> None:
    """Create or inspect the configuration file."""


@config_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
@click.pass_context
def init_config(ctx: click.Context, force: bool) -> None:
    """Write a template configuration file."""
    path = ctx.find_root().obj.get("config_path") or config_path()
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists. Use --force to overwrite.[/yellow]")
        return

    write_template(path)
    console.print(f"[green]✓ Wrote {path}[/green]")


@config_group.command("show")
def show_config() -> None:
    """Show the effective settings."""
    settings = get_settings()
    console.print(Panel(
        Text(toml.dumps(settings.model_dump(mode="json", exclude_none=True))),
        title="[bold]Settings[/bold]",
        border_style="cyan",
    ))
    console.print(f"[dim]Database: {settings.db_path}[/dim]")
