"""Helpers shared by the CLI command modules."""

from datetime import datetime
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.panel import Panel

from klinewaker.config import Settings, load_settings
from klinewaker.db.documents import Collection
from klinewaker.db.images import ImageStore
from klinewaker.db.store import DataStore
from klinewaker.errors import ConfigError

console = Console()

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"]


def fail(message: str, title: str = "Error") -> NoReturn:
    """Print an error panel and exit with status 1."""
    console.print(Panel(
        f"[red]{message}[/red]",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))
    raise SystemExit(1)


def get_settings() -> Settings:
    """Settings for the current invocation, honouring ``--config``."""
    ctx = click.get_current_context(silent=True)
    root = ctx.find_root() if ctx else None
    obj = root.obj if root and isinstance(root.obj, dict) else {}

    if "settings" not in obj:
        try:
            obj["settings"] = load_settings(obj.get("config_path"))
        except ConfigError as e:
            fail(str(e), title="Configuration Error")
    return obj["settings"]


def get_data_store() -> DataStore:
    """Get the data store instance."""
    return DataStore(get_settings().db_path)


def get_image_store() -> ImageStore:
    return ImageStore(get_settings().images_dir)


def short_id(entity_id: Optional[str]) -> str:
    return (entity_id or "")[:8]


def resolve_id(collection: Collection, ref: str, kind: str, by_name: bool = False) -> str:
    """Resolve a full ID, an ID prefix or (optionally) a name to an ID.

    Exits with an error panel when nothing or more than one document matches.
    """
    if collection.find_one({"id": ref}) is not None:
        return ref

    docs = collection.find()
    matches = [d for d in docs if d["id"].startswith(ref)]
    if not matches and by_name:
        matches = [d for d in docs if str(d.get("name", "")).lower() == ref.lower()]

    if len(matches) == 1:
        return matches[0]["id"]
    if not matches:
        fail(f"{kind} '{ref}' not found")
    fail(f"{kind} '{ref}' is ambiguous ({len(matches)} matches). Use a longer ID.")


def parse_when(value: Optional[str]) -> Optional[datetime]:
    """Parse a CLI date or date-time in local time."""
    if value is None:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise click.BadParameter(f"'{value}' is not a date (use YYYY-MM-DD or 'YYYY-MM-DD HH:MM')")


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def from_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000)


def format_usd(value: float) -> str:
    if value >= 0:
        return f"[green]+${value:,.2f}[/green]"
    return f"[red]-${abs(value):,.2f}[/red]"
