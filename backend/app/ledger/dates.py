"""
Ledger - date normalization.

Source records arrive with one of three date shapes:
- a plain string ("2024-03-01", "2024-03-01T10:15:00Z")
- a timestamp-like object exposing a date accessor (to_datetime / toDate / to_date)
- a raw value: datetime/date instances, or epoch milliseconds

Everything is reduced to a date-only value. Anything unparseable returns None so the
caller can put the entry in the undated bucket instead of inventing a date.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any, Optional

TIMESTAMP_ACCESSORS = ("to_datetime", "toDate", "to_date")


def _from_datetime(dt: datetime) -> date:
    # Aware datetimes are read in UTC, the same day an ISO timestamp would print.
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.date()


def date_from_string(raw: str) -> Optional[date]:
    s = (raw or "").strip()
    if not s:
        return None
    # the calendar day as written; a stored time or offset is not trusted
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def date_from_timestamp(obj: Any) -> Optional[date]:
    for name in TIMESTAMP_ACCESSORS:
        accessor = getattr(obj, name, None)
        if callable(accessor):
            try:
                value = accessor()
            except (TypeError, ValueError, OverflowError, OSError):
                return None
            if isinstance(value, datetime):
                return _from_datetime(value)
            if isinstance(value, date):
                return value
            return None
    return None


def date_from_raw(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return _from_datetime(value)
    if isinstance(value, date):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    try:
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError):
        return None


def has_timestamp_accessor(value: Any) -> bool:
    return any(callable(getattr(value, name, None)) for name in TIMESTAMP_ACCESSORS)


def to_ledger_date(value: Any) -> Optional[date]:
    """
    Reduce any tolerated date shape to a date, or None when it cannot be read.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return date_from_string(value)
    if isinstance(value, (datetime, date)):
        return date_from_raw(value)
    if has_timestamp_accessor(value):
        return date_from_timestamp(value)
    return date_from_raw(value)
