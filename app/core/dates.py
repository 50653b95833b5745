from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utcnow_iso() -> str:
    return datetime.utcnow().isoformat(timespec="seconds") + "Z"


def today_iso(tz: str | None = None) -> str:
    now = datetime.now(ZoneInfo(tz)) if tz else datetime.now(timezone.utc)
    return now.date().isoformat()


def parse_iso(ts: str | None, tz: str = "UTC") -> datetime | None:
    """Parse an ISO-8601 timestamp string.

    If naive, attach the provided tz. Returns None if ts is falsy.
    """
    if not ts:
        return None
    dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(tz))
    return dt


def compact_date(value: str) -> str:
    """``2024-05-01`` or a full timestamp -> ``20240501``."""

    return value[:10].replace("-", "")
