"""Calendar boundary math for time-bound periods.

All arithmetic happens in UTC. Windows are half-open: a commit stamped exactly
at a boundary belongs to the window that starts there.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from .models import Strategy


def to_utc(timestamp: datetime) -> datetime:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def align_down(timestamp: datetime, strategy: Strategy, week_start: int = 0) -> datetime:
    """Start of the calendar unit containing ``timestamp``.

    Args:
        timestamp: Any datetime
        strategy: DAILY, WEEKLY or MONTHLY
        week_start: Weekday that opens a week (Monday = 0)
    """
    day = to_utc(timestamp).replace(hour=0, minute=0, second=0, microsecond=0)
    if strategy is Strategy.DAILY:
        return day
    if strategy is Strategy.WEEKLY:
        offset = (day.weekday() - week_start) % 7
        return day - timedelta(days=offset)
    if strategy is Strategy.MONTHLY:
        return day.replace(day=1)
    raise ValueError(f"{strategy.value} has no calendar alignment")


def advance(boundary: datetime, strategy: Strategy) -> datetime:
    """Next boundary after an aligned ``boundary``."""
    if strategy is Strategy.DAILY:
        return boundary + timedelta(days=1)
    if strategy is Strategy.WEEKLY:
        return boundary + timedelta(days=7)
    if strategy is Strategy.MONTHLY:
        if boundary.month == 12:
            return boundary.replace(year=boundary.year + 1, month=1)
        return boundary.replace(month=boundary.month + 1)
    raise ValueError(f"{strategy.value} has no calendar unit")


def window_label(start: datetime, strategy: Strategy) -> str:
    if strategy is Strategy.DAILY:
        return start.strftime("%Y-%m-%d")
    if strategy is Strategy.WEEKLY:
        return f"Week of {start:%Y-%m-%d}"
    return start.strftime("%B %Y")


def window_id(start: datetime, strategy: Strategy) -> str:
    return f"{strategy.value}-{start:%Y-%m-%d}"
