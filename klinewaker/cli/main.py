"""Main CLI entry point for K-Line Waker.

This module provides the main click group and lazy loading of the
command modules so that ``--help`` stays fast.
"""

import importlib
from pathlib import Path
from typing import Optional

import click

from klinewaker.config import configure_logging


class LazyGroup(click.Group):
    """A click Group that imports command modules on first use."""

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        base = super().list_commands(ctx)
        return sorted(set(base) | set(self._lazy_subcommands))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name in self.commands:
            return self.commands[cmd_name]
        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)
        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, click.Command) and attr.name == cmd_name:
                self.add_command(attr)
                return attr

        raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")


LAZY_SUBCOMMANDS = {
    # Reminders
    "task": "klinewaker.cli.tasks",
    "watch": "klinewaker.cli.tasks",
    "next": "klinewaker.cli.tasks",
    # Journal
    "journal": "klinewaker.cli.journal",
    "stats": "klinewaker.cli.stats",
    "instrument": "klinewaker.cli.catalog",
    "account": "klinewaker.cli.catalog",
    "strategy": "klinewaker.cli.catalog",
    # Settings
    "config": "klinewaker.cli.settings",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="klinewaker")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: ~/.config/klinewaker/config.toml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """K-Line Waker - candle-close reminders and a trade journal.

    \b
    Quick Start:
      klinewaker task add "BTC 15m" --period 15 --notify-before 30
      klinewaker watch                  # Live countdown with alerts
      klinewaker journal add --symbol NQ --direction long --entry 18000
      klinewaker stats --range week
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    from klinewaker.cli.common import get_settings

    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.logging.level)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
