"""
Date and formatting helpers shared by the timeline, schedule and adherence code.

All calendar math is done on `date` objects in UTC.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

DAYS_PER_WEEK = 7


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    """Coerce a datetime / ISO string / date to a date (None passes through)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def inclusive_end(start: date, duration_weeks: int) -> date:
    """Last day of a block of `duration_weeks` weeks starting on `start`."""
    return start + timedelta(days=duration_weeks * DAYS_PER_WEEK - 1)


def period_start(period: str, now: datetime) -> datetime:
    """
    Start of the reporting period containing `now`.

    day   -> midnight today
    week  -> Monday 00:00 of this week
    month -> 1st of this month
    year  -> Jan 1st
    anything else -> rolling 7 days back
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "day":
        return midnight
    if period == "week":
        return midnight - timedelta(days=midnight.weekday())
    if period == "month":
        return midnight.replace(day=1)
    if period == "year":
        return midnight.replace(month=1, day=1)
    return now - timedelta(days=7)


def display_name(full_name: Optional[str], email: Optional[str]) -> str:
    if full_name:
        return full_name
    if email:
        return email.split("@")[0]
    return "Client"


def round_to(value: float, step: float) -> float:
    """Round to the nearest multiple of `step` (0.1, 0.5, ...)."""
    return round(round(value / step) * step, 6)


def day_of_week(day: date) -> int:
    """Calendar day-of-week as stored on workouts: 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % DAYS_PER_WEEK
