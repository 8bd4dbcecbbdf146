"""Configuration for K-Line Waker.

Settings live in ``~/.config/klinewaker/config.toml`` (or the file named by
``KLINEWAKER_CONFIG``). A missing file means defaults. The loaded Settings
object is passed to the components that need it.
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import toml
from pydantic import BaseModel, Field, ValidationError, field_validator
from rich.logging import RichHandler

from klinewaker.errors import ConfigError

CONFIG_ENV_VAR = "KLINEWAKER_CONFIG"
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "klinewaker"


class StorageSettings(BaseModel):
    data_dir: Path = Field(default=DEFAULT_CONFIG_DIR, description="Database and images directory")

    @field_validator("data_dir", mode="before")
    @classmethod
    def _expand(cls, value):
        return Path(value).expanduser()


class NotificationSettings(BaseModel):
    sound: Literal["default", "custom", "off"] = Field(default="default")
    custom_sound_path: Optional[Path] = Field(default=None, description="Sound file for 'custom'")
    tts: bool = Field(default=False, description="Speak the reminder aloud")

    @field_validator("custom_sound_path", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        if value in ("", None):
            return None
        return Path(value).expanduser()


class DisplaySettings(BaseModel):
    always_on_top: bool = False
    theme: Literal["light", "dark", "system"] = "dark"


class LoggingSettings(BaseModel):
    level: str = Field(default="WARNING")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"Unknown log level: {value}")
        return value


class Settings(BaseModel):
    """All user settings."""

    storage: StorageSettings = Field(default_factory=StorageSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def db_path(self) -> Path:
        return self.storage.data_dir / "klinewaker.db"

    @property
    def images_dir(self) -> Path:
        return self.storage.data_dir / "trade_images"


def config_path() -> Path:
    """Location of the configuration file."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_DIR / "config.toml"


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from a TOML file.

    Raises:
        ConfigError: If the file exists but cannot be parsed or validated.
    """
    path = path or config_path()
    if not path.exists():
        return Settings()

    try:
        data = toml.load(path)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e


def write_template(path: Optional[Path] = None) -> Path:
    """Write a template configuration file and return its path."""
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    template = {
        "storage": {
            "data_dir": str(DEFAULT_CONFIG_DIR),
        },
        "notifications": {
            "sound": "default",  # default, custom or off
            "custom_sound_path": "",
            "tts": False,
        },
        "display": {
            "always_on_top": False,
            "theme": "dark",
        },
        "logging": {
            "level": "WARNING",
        },
    }

    with open(path, "w") as f:
        toml.dump(template, f)

    return path


def configure_logging(level: str = "WARNING") -> None:
    """Route log records through rich at ``level``."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
