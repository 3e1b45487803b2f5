from __future__ import annotations
from datetime import date, datetime, UTC, time
from typing import Any, Optional

__all__ = ["utc_now", "ensure_aware_utc", "parse_datetime"]

def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(UTC)

def ensure_aware_utc(dt: datetime | None) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware in UTC (assumes naive input already in UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)

def parse_datetime(value: Any) -> Optional[datetime]:
    """Coerce a datetime, date or ISO-8601 string to aware UTC; None if it cannot be parsed."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        # fromisoformat on older interpreters rejects the "Z" suffix
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_aware_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None
