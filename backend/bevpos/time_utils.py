from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from typing import Optional


DATE_RANGE_PRESETS = ("today", "week", "month", "year", "all")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def _shift_months(dt: datetime, months: int) -> datetime:
    # Clamp the day so Mar 31 minus one month lands on Feb 28/29.
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def range_start(preset: str, now: datetime | None = None) -> datetime | None:
    """
    Inclusive lower bound for a named date range, anchored at midnight today.

    today -> midnight today, week -> 7 days back, month -> one calendar
    month back, year -> one year back, all -> None (no bound).
    """
    if preset not in DATE_RANGE_PRESETS:
        raise ValueError(f"date range must be one of: {', '.join(DATE_RANGE_PRESETS)}")

    today = start_of_day(now or utcnow())
    if preset == "today":
        return today
    if preset == "week":
        return today - timedelta(days=7)
    if preset == "month":
        return _shift_months(today, -1)
    if preset == "year":
        return _shift_months(today, -12)
    return None
