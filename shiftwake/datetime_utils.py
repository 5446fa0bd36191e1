"""Shared datetime helpers for local-clock and calendar-day arithmetic."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

_TIME_KEYWORDS = {
    "noon": (12, 0),
    "midday": (12, 0),
    "midnight": (0, 0),
}

_TIME_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$")


def local_now() -> datetime:
    """Get current datetime in local timezone."""
    return datetime.now().astimezone()


def ensure_local(dt: datetime) -> datetime:
    """Ensure datetime is in local timezone. Naive values are read as local wall-clock time."""
    return dt.astimezone()


def to_local_date(value: date | datetime | str) -> date:
    """Strip the time-of-day from a date, datetime or ISO string."""
    if isinstance(value, datetime):
        return ensure_local(value).date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) <= 10:
        return date.fromisoformat(text)
    return to_local_date(datetime.fromisoformat(text))


def calendar_days_between(start: date | datetime, end: date | datetime) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative when ``end`` is earlier)."""
    return (to_local_date(end) - to_local_date(start)).days


def alarm_instant(day: date, hour: int, minute: int) -> datetime:
    """Local instant for ``day`` at ``hour:minute:00.000``.

    The UTC offset is resolved for the target day, so the result stays on the
    requested wall-clock time across DST changes. Out-of-range hours/minutes
    roll over into the following day instead of raising.
    """
    wall_clock = datetime.combine(day, time()) + timedelta(hours=hour, minutes=minute)
    return wall_clock.astimezone()


def parse_time_of_day(phrase: str | None) -> tuple[int, int] | None:
    """Parse time of day phrase into (hour, minute) tuple. Returns None if invalid."""
    if not phrase:
        return None
    cleaned = phrase.strip().lower()
    if not cleaned:
        return None
    keyword = _TIME_KEYWORDS.get(cleaned)
    if keyword:
        return keyword
    match = _TIME_PATTERN.match(cleaned)
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    suffix = match.group(3)
    if suffix:
        if hour == 12:
            hour = 0
        if suffix == "pm":
            hour += 12
    if hour >= 24 or minute >= 60:
        return None
    return hour, minute


def parse_time_string(value: str) -> tuple[int, int]:
    """Parse time string into (hour, minute) tuple. Raises ValueError if invalid."""
    result = parse_time_of_day(value)
    if result is None:
        raise ValueError(f"Invalid time format: {value!r}")
    return result


def format_time_of_day(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"
