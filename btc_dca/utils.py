from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pandas as pd


def to_utc_datetime(value: Any) -> datetime | None:
    """Normalize assorted timestamp-like inputs to an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), pandas Timestamps, epoch
    seconds or milliseconds, and ISO-8601 strings. Returns None when the value
    cannot be interpreted.
    """

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    try:
        numeric = float(value)
    except (TypeError, ValueError):
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
        return to_utc_datetime(dt)

    if numeric < 0:
        return None
    if numeric >= 1_000_000_000_000:
        numeric /= 1000
    try:
        return datetime.fromtimestamp(numeric, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def to_milliseconds(value: Any) -> int | None:
    """Epoch milliseconds for ``value``, or None if it is not a timestamp."""

    dt = to_utc_datetime(value)
    if dt is None:
        return None
    return int(dt.timestamp() * 1000)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
