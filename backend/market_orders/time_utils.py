from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_day(value: Optional[str]) -> date:
    """
    Parse a "YYYY-MM-DD" report date.

    - None / "" -> today (UTC)
    - Anything else that is not an ISO date raises ValueError
    """
    if value is None or not value.strip():
        return utcnow().date()
    return date.fromisoformat(value.strip())


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) UTC-naive range covering one calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


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
