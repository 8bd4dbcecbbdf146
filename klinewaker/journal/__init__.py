"""Trade journal: derivation, settlement, catalog and statistics."""

from klinewaker.journal.catalog import CatalogService
from klinewaker.journal.derivation import (
    compute_risk_reward,
    compute_usd_pnl,
    is_settled,
    round2,
)
from klinewaker.journal.service import JournalService
from klinewaker.journal.stats import JournalStats, range_for, summarize

__all__ = [
    "CatalogService",
    "JournalService",
    "JournalStats",
    "compute_usd_pnl",
    "compute_risk_reward",
    "is_settled",
    "round2",
    "range_for",
    "summarize",
]
