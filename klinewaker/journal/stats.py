"""Performance statistics over journal entries."""

from datetime import date, datetime, time, timedelta
from typing import Iterable, Literal, Optional

from pydantic import BaseModel, Field

from klinewaker.models import JournalEntry, Strategy

RangeMode = Literal["week", "month", "year", "custom", "all"]


class StrategyWinRate(BaseModel):
    """Win rate for trades tagged with one strategy."""

    strategy_id: Optional[str] = Field(default=None, description="Strategy ID, None if untagged")
    name: str = Field(..., description="Strategy name, or the raw ID if unknown")
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    win_rate: float = Field(default=0.0, ge=0, le=100, description="Win rate percentage")


class JournalStats(BaseModel):
    """Summary of decided (Win/Loss) trades."""

    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    win_rate: float = Field(default=0.0, ge=0, le=100, description="Win rate percentage")
    net_points: float = Field(default=0.0, description="Sum of P&L in points")
    net_usd: float = Field(default=0.0, description="Sum of P&L in USD")
    average_risk_reward: Optional[float] = Field(
        default=None, description="Mean R:R of trades that have one"
    )
    by_strategy: list[StrategyWinRate] = Field(default_factory=list)


def summarize(
    entries: Iterable[JournalEntry],
    strategies: Iterable[Strategy] = (),
    untagged_label: str = "(no strategy)",
) -> JournalStats:
    """Compute win/loss statistics.

    Only entries with status Win or Loss count; Open and Closed trades are
    undecided and ignored.
    """
    decided = [e for e in entries if e.status in ("Win", "Loss")]
    wins = sum(1 for e in decided if e.status == "Win")
    losses = len(decided) - wins

    ratios = [e.risk_reward for e in decided if e.risk_reward is not None]
    names = {s.id: s.name for s in strategies}

    groups: dict[Optional[str], StrategyWinRate] = {}
    for entry in decided:
        sid = entry.strategy_id or None
        group = groups.get(sid)
        if group is None:
            name = names.get(sid, sid) if sid else untagged_label
            group = groups[sid] = StrategyWinRate(strategy_id=sid, name=name)
        if entry.status == "Win":
            group.wins += 1
        else:
            group.losses += 1
        group.total += 1

    for group in groups.values():
        group.win_rate = group.wins / group.total * 100 if group.total else 0.0

    return JournalStats(
        wins=wins,
        losses=losses,
        win_rate=wins / len(decided) * 100 if decided else 0.0,
        net_points=round(sum(e.pnl or 0.0 for e in decided), 2),
        net_usd=round(sum(e.usd_pnl for e in decided), 2),
        average_risk_reward=round(sum(ratios) / len(ratios), 2) if ratios else None,
        by_strategy=sorted(groups.values(), key=lambda g: g.win_rate, reverse=True),
    )


def _millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def range_for(
    mode: RangeMode,
    now: Optional[datetime] = None,
    start_day: Optional[date] = None,
    end_day: Optional[date] = None,
) -> tuple[Optional[int], Optional[int]]:
    """Resolve a reporting range to inclusive epoch-millisecond bounds.

    Week starts on Monday. Week, month and year end at the close of today.
    A custom range needs both days; otherwise, and for ``all``, both bounds
    are None.
    """
    now = now or datetime.now()
    end_of_today = datetime.combine(now.date(), time.max)

    if mode == "week":
        start = datetime.combine(now.date() - timedelta(days=now.weekday()), time.min)
    elif mode == "month":
        start = datetime.combine(now.date().replace(day=1), time.min)
    elif mode == "year":
        start = datetime.combine(now.date().replace(month=1, day=1), time.min)
    elif mode == "custom" and start_day and end_day:
        return (
            _millis(datetime.combine(start_day, time.min)),
            _millis(datetime.combine(end_day, time.max)),
        )
    else:
        return None, None

    return _millis(start), _millis(end_of_today)
