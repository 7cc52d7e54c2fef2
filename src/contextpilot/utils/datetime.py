"""Centralized datetime handling.

Design decisions:
- All datetimes inside contextpilot are timezone-aware UTC
- Naive datetimes are assumed to be UTC (not local time)
- Storage records may carry ISO strings or Unix timestamps
"""

from datetime import UTC, datetime

__all__ = ["age_in_days", "deserialize_datetime", "ensure_utc", "utc_now"]

_SECONDS_PER_DAY = 60 * 60 * 24


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Return dt as a timezone-aware UTC datetime.

    Examples:
        >>> ensure_utc(datetime(2024, 12, 14, 10, 30))
        datetime.datetime(2024, 12, 14, 10, 30, tzinfo=datetime.timezone.utc)
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def age_in_days(timestamp: datetime, reference: datetime) -> float:
    """Fractional days between timestamp and reference (negative if in the future)."""
    delta = ensure_utc(reference) - ensure_utc(timestamp)
    return delta.total_seconds() / _SECONDS_PER_DAY


def deserialize_datetime(value: str | float | int | datetime) -> datetime:
    """Deserialize a datetime from ISO 8601, Unix timestamp or datetime.

    Args:
        value: ISO string, Unix timestamp (int or float) or datetime

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        ValueError: If value cannot be parsed as a datetime.
        TypeError: If value is not a supported type.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)

    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value)
        except ValueError as e:
            raise ValueError(f"Cannot parse ISO datetime string: {value!r}") from e
        return ensure_utc(dt)

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OSError, OverflowError, ValueError) as e:
            raise ValueError(f"Cannot parse Unix timestamp: {value!r}") from e

    raise TypeError(
        f"Cannot deserialize datetime from {type(value).__name__}: {value!r}. "
        f"Expected str (ISO 8601), int, float or datetime."
    )
