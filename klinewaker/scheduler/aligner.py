"""Wall-clock alignment of recurring candle closes.

Closes are aligned to local midnight rather than to when the app started,
so a 15 minute task fires at :00, :15, :30 and :45 of every hour. The next
close is always derived from the current time; nothing is persisted, which
lets day rollover and DST changes correct themselves on the next call.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

_ONE_US = timedelta(microseconds=1)


def next_aligned_time(period_minutes: int, now: Optional[datetime] = None) -> datetime:
    """Compute the next candle close strictly after ``now``.

    Args:
        period_minutes: Candle period in minutes. Must be positive.
        now: Reference time. Naive datetimes are treated as local time and a
            naive datetime is returned; aware datetimes keep their tzinfo.
            Defaults to the current local time.

    Returns:
        The first instant after ``now`` whose offset from local midnight is a
        whole multiple of the period.

    Raises:
        ValueError: If ``period_minutes`` is not positive.
    """
    if period_minutes <= 0:
        raise ValueError(f"period_minutes must be positive, got {period_minutes}")

    if now is None:
        now = datetime.now()

    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

    # Absolute (UTC) arithmetic so a DST shift during the day is accounted for.
    now_utc = now.astimezone(timezone.utc)
    start_utc = start_of_day.astimezone(timezone.utc)

    elapsed = (now_utc - start_utc) // _ONE_US
    period = period_minutes * 60 * 1_000_000

    slot = -(-elapsed // period) * period
    # Exactly on a boundary (e.g. 10:15:00.000) means the next one.
    if slot <= elapsed:
        slot += period

    result = start_utc + timedelta(microseconds=slot)
    if now.tzinfo is None:
        return result.astimezone().replace(tzinfo=None)
    return result.astimezone(now.tzinfo)


def format_time_left(seconds: int) -> str:
    """Format a countdown as ``H:MM:SS`` or ``MM:SS`` when under an hour."""
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)

    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"
