"""K-Line Waker: candle-close reminders and a local trade journal."""

__version__ = "0.1.0"
