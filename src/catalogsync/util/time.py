from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Current time as a tz-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC3339 string (as stored in sqlite or sent by the backend) into UTC.

    Examples:
      - 2025-03-01T09:00:00Z
      - 2025-03-01T09:00:00.250Z
      - 2025-03-01T06:00:00-03:00
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("timestamp must be a non-empty string")

    text = value.strip()
    # fromisoformat() on 3.10 rejects a trailing 'Z'.
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    return normalize_dt(datetime.fromisoformat(text)).astimezone(timezone.utc)


def to_rfc3339(dt: datetime) -> str:
    """UTC RFC3339 text with microseconds and a 'Z' suffix (sorts chronologically)."""
    text = normalize_dt(dt).astimezone(timezone.utc).isoformat(timespec="microseconds")
    return text.replace("+00:00", "Z")


def normalize_dt(dt: datetime) -> datetime:
    """Return dt unchanged if tz-aware; naive datetimes are rejected."""
    if not isinstance(dt, datetime):
        raise TypeError("dt must be a datetime")
    if dt.tzinfo is None:
        raise ValueError("naive datetime is not allowed; timezone-aware required")
    return dt


def coerce_timestamp(value: object) -> datetime:
    """
    Best-effort conversion of a stored/wire timestamp into UTC datetime.

    Accepts datetimes, RFC3339 strings and epoch milliseconds (the format the
    legacy web client wrote). Falls back to now on anything unparseable.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str) and value:
        try:
            return parse_rfc3339(value)
        except ValueError:
            return now_utc()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return now_utc()
    return now_utc()
