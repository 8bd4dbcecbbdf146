"""Derived trade figures: USD P&L, reward-to-risk, settlement.

These functions accept either raw documents (camelCase keys, as drafts and
patches arrive) or model instances. Anything that is not a finite number is
treated as missing, so a derivation never raises on bad input.
"""

import math
from typing import Any, Optional, Union

from pydantic import BaseModel

from klinewaker.models import SETTLEMENT_STATUSES, Instrument

_FIELD_ALIASES = {
    "pnl": "pnl",
    "entryPrice": "entry_price",
    "exitPrice": "exit_price",
    "stopLoss": "stop_loss",
    "positionSize": "position_size",
    "direction": "direction",
    "status": "status",
    "accountId": "account_id",
    "pointValueUSD": "point_value_usd",
}

Snapshot = Union[dict, BaseModel]


def _get(source: Optional[Snapshot], key: str) -> Any:
    if source is None:
        return None
    if isinstance(source, dict):
        if key in source:
            return source[key]
        return source.get(_FIELD_ALIASES.get(key, key))
    return getattr(source, _FIELD_ALIASES.get(key, key), None)


def as_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float if it is a finite number, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def round2(value: float) -> float:
    """Round to 2 decimals, normalizing -0.0 to 0.0."""
    return round(value, 2) + 0.0


def compute_usd_pnl(entry: Snapshot, instrument: Optional[Union[Instrument, dict]]) -> float:
    """Compute a trade's P&L in USD.

    Points come from ``pnl`` when given, otherwise from the entry and exit
    prices in the trade direction. They are scaled by the instrument's point
    value and the position size (1 when unset).

    Returns:
        The P&L rounded to 2 decimals, or 0 without an instrument or when the
        result is not finite.
    """
    if instrument is None:
        return 0.0

    point_value = as_number(_get(instrument, "pointValueUSD"))
    if point_value is None:
        return 0.0

    points = as_number(_get(entry, "pnl"))
    if points is None:
        entry_price = as_number(_get(entry, "entryPrice"))
        exit_price = as_number(_get(entry, "exitPrice"))
        if entry_price is not None and exit_price is not None:
            if _get(entry, "direction") == "Long":
                points = exit_price - entry_price
            else:
                points = entry_price - exit_price
        else:
            points = 0.0

    size = as_number(_get(entry, "positionSize"))
    if size is None:
        size = 1.0

    usd = points * point_value * size
    if not math.isfinite(usd):
        return 0.0
    return round2(usd)


def compute_risk_reward(entry: Snapshot) -> Optional[float]:
    """Compute reward-to-risk from entry, exit and stop loss.

    Returns:
        ``|exit - entry| / |entry - stop|`` rounded to 2 decimals, or None
        when any price is missing or the risk is zero.
    """
    entry_price = as_number(_get(entry, "entryPrice"))
    exit_price = as_number(_get(entry, "exitPrice"))
    stop_loss = as_number(_get(entry, "stopLoss"))
    if entry_price is None or exit_price is None or stop_loss is None:
        return None

    profit = abs(exit_price - entry_price)
    risk = abs(entry_price - stop_loss)
    if risk > 0:
        return round2(profit / risk)
    return None


def is_settled(entry: Snapshot) -> bool:
    """Whether the entry's USD P&L belongs in its account balance."""
    return (
        _get(entry, "status") in SETTLEMENT_STATUSES
        and _get(entry, "exitPrice") is not None
        and bool(_get(entry, "accountId"))
    )
