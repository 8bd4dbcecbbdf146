"""Candle-close countdown scheduling."""

from klinewaker.scheduler.aligner import format_time_left, next_aligned_time
from klinewaker.scheduler.countdown import CountdownBoard, CountdownEngine, CountdownState
from klinewaker.scheduler.tasks import TaskBoard

__all__ = [
    "next_aligned_time",
    "format_time_left",
    "CountdownEngine",
    "CountdownState",
    "CountdownBoard",
    "TaskBoard",
]
