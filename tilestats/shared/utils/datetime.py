"""UTC datetime helpers.

Time ranges, placeholder values, and relative-time formatting all work on
timezone-aware UTC datetimes; naive values are taken to be UTC.
"""

from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Return dt converted to UTC; naive values are labelled UTC, None passes through."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_datetime_utc(value: object) -> datetime:
    """
    Parse an ISO-8601 string (trailing 'Z' allowed), date, or datetime into UTC.

    Args:
        value: ISO string, datetime, or date

    Returns:
        UTC-aware datetime

    Raises:
        ValueError: If value is not a recognizable timestamp
    """
    if isinstance(value, datetime):
        return ensure_utc(value)  # type: ignore[return-value]
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Not a timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))  # type: ignore[return-value]


def to_iso_utc(dt: datetime) -> str:
    """Return dt as an ISO-8601 UTC string with a 'Z' suffix (PostgREST-friendly)."""
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")  # type: ignore[union-attr]
