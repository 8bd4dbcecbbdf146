"""Data models for K-Line Waker."""

from klinewaker.models.task import Task
from klinewaker.models.instrument import Instrument
from klinewaker.models.account import Account
from klinewaker.models.strategy import Strategy
from klinewaker.models.journal import (
    SETTLEMENT_STATUSES,
    Direction,
    JournalEntry,
    TradeStatus,
)

__all__ = [
    "Task",
    "Instrument",
    "Account",
    "Strategy",
    "JournalEntry",
    "Direction",
    "TradeStatus",
    "SETTLEMENT_STATUSES",
]
