"""Reminder notifications: a console banner, a sound and optional speech.

Notifications are fire-and-forget. Anything that goes wrong while playing a
sound or speaking is logged and otherwise ignored.
"""

import logging
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from klinewaker.config import NotificationSettings
from klinewaker.models import Task

logger = logging.getLogger(__name__)

# Command-line players tried in order for a custom sound file.
SOUND_PLAYERS = ("afplay", "paplay", "aplay", "ffplay")
SPEECH_COMMANDS = ("say", "espeak", "spd-say")


def _first_available(commands: tuple[str, ...]) -> Optional[str]:
    for command in commands:
        path = shutil.which(command)
        if path:
            return path
    return None


def _spawn(args: list[str]) -> None:
    subprocess.Popen(
        args,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


class Notifier:
    """Delivers reminder notifications according to NotificationSettings."""

    def __init__(self, settings: NotificationSettings, console: Optional[Console] = None):
        self.settings = settings
        self.console = console or Console()

    def _play_custom(self, sound_path: Path) -> bool:
        player = _first_available(SOUND_PLAYERS)
        if player is None or not sound_path.exists():
            return False
        args = [player, str(sound_path)]
        if Path(player).name == "ffplay":
            args = [player, "-nodisp", "-autoexit", "-loglevel", "quiet", str(sound_path)]
        _spawn(args)
        return True

    def play_sound(self) -> None:
        """Play the configured sound, falling back to the terminal bell."""
        if self.settings.sound == "off":
            return
        if self.settings.sound == "custom" and self.settings.custom_sound_path:
            try:
                if self._play_custom(self.settings.custom_sound_path):
                    return
                logger.warning("Cannot play %s, using the default beep", self.settings.custom_sound_path)
            except OSError as e:
                logger.error("Failed to play custom sound, using the default beep: %s", e)
        self.console.bell()

    def speak(self, text: str) -> None:
        if not self.settings.tts:
            return
        command = _first_available(SPEECH_COMMANDS)
        if command is None:
            logger.warning("Text-to-speech is enabled but no speech command was found")
            return
        try:
            _spawn([command, text])
        except OSError as e:
            logger.error("Failed to speak reminder: %s", e)

    def notify(self, title: str, body: str) -> None:
        """Show a notification. Never raises."""
        try:
            self.console.print(Panel(
                body,
                title=f"[bold yellow]{title}[/bold yellow]",
                border_style="yellow",
            ))
        except Exception as e:
            print(f"{title}: {body}", file=sys.stderr)
            logger.error("Failed to render notification: %s", e)
        self.play_sound()
        self.speak(title)

    def notify_task(self, task: Task) -> None:
        """Announce that ``task``'s candle is about to close."""
        if task.notify_before > 0:
            body = f"{task.period_label} candle closes in {task.notify_before} seconds."
        else:
            body = f"{task.period_label} candle is closing now."
        self.notify(f"{task.name} candle close", body)
