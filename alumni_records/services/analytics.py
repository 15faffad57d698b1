"""
Derived values computed from already-loaded fields.

Everything here is pure: no I/O, no store access. Entity declarations wire
these functions in as accessors, so ``record.success_rate`` reads the
record's own columns and calls ``success_rate`` with them.

Functions that compare against the current time take an optional ``now``
so callers (and tests) can pin the clock.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Sized, Union

from alumni_records.store.casts import as_utc

Number = Union[int, float, Decimal]

HOURS_PER_WEEK = 40
WEEKS_PER_YEAR = 52
MONTHS_PER_YEAR = 12


def _now(now: Optional[datetime]) -> datetime:
    return as_utc(now) if now is not None else datetime.now(timezone.utc)


def percentage(part: Optional[Number], total: Optional[Number]) -> float:
    """``part / total * 100`` rounded to 2 decimals; 0 when there is nothing to divide by."""
    if not total:
        return 0
    return round(float(part or 0) / float(total) * 100, 2)


def success_rate(created: Optional[int], updated: Optional[int], total: Optional[int]) -> float:
    return percentage((created or 0) + (updated or 0), total)


def tracking_rate(tracked: Optional[int], total: Optional[int]) -> float:
    return percentage(tracked, total)


def attendance_rate(attended: Optional[int], registered: Optional[int]) -> float:
    return percentage(attended, registered)


def salary_growth(starting: Optional[Number], current: Optional[Number]) -> Optional[float]:
    """Percentage change from starting to current salary, or None if it cannot be computed."""
    if starting is None or current is None or not starting:
        return None
    return round((float(current) - float(starting)) / float(starting) * 100, 2)


def annualize_salary(amount: Optional[Number], salary_type: Optional[str]) -> Optional[Number]:
    """Convert an hourly or monthly figure to a yearly one.

    Annual amounts and unrecognised salary types pass through unchanged.
    """
    if amount is None:
        return None
    salary_type = getattr(salary_type, "value", salary_type)
    if salary_type == "hourly":
        return amount * HOURS_PER_WEEK * WEEKS_PER_YEAR
    if salary_type == "monthly":
        return amount * MONTHS_PER_YEAR
    return amount


def duration_minutes(
    started_at: Optional[datetime],
    ended_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Optional[int]:
    """Whole minutes from start to end, running to ``now`` while there is no end."""
    if started_at is None:
        return None
    end = as_utc(ended_at) if ended_at is not None else _now(now)
    return int((end - as_utc(started_at)).total_seconds() // 60)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if expires_at is None:
        return False
    if not isinstance(expires_at, datetime):
        # plain dates expire once the day has passed
        return expires_at < _now(now).date()
    return as_utc(expires_at) < _now(now)


def has_engaged(last_interaction_at: Optional[datetime], interactions: Optional[Sized] = None) -> bool:
    return last_interaction_at is not None or bool(interactions)


def can_rollback(is_current: Any, published_at: Optional[datetime]) -> bool:
    """A version can be restored when it was published once and is not live now."""
    return not is_current and published_at is not None
