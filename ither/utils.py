"""Utility functions for ither.

Datetime handling, rounding and small collection helpers shared by the
stores and feature modules.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from dateutil import parser as dateutil_parser  # type: ignore[import-untyped]


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse ISO8601 timestamp string into timezone-aware UTC datetime.

    Args:
        value: ISO8601 timestamp string, datetime object, or None

    Returns:
        Parsed timezone-aware datetime in UTC, or None if input is None

    Raises:
        ValueError: If timestamp format is invalid

    Example:
        >>> dt = parse_datetime("2024-01-15T10:30:00Z")
        >>> dt.tzinfo
        datetime.timezone.utc
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    dt = dateutil_parser.isoparse(value)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def utc_now() -> datetime:
    """Get current UTC timestamp as timezone-aware datetime."""
    return datetime.now(UTC)


def format_iso(dt: datetime | None) -> str | None:
    """Format datetime as ISO8601 string with 'Z' suffix.

    Example:
        >>> dt = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
        >>> format_iso(dt)
        '2024-01-15T10:30:00Z'
    """
    if dt is None:
        return None
    return dt.isoformat().replace("+00:00", "Z")


def timestamp_key(value: Any) -> float:
    """Sort key for optional timestamps; missing values sort as the epoch."""
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = parse_datetime(value)
    if isinstance(value, datetime):
        return parse_datetime(value).timestamp()  # type: ignore[union-attr]
    return float(value)


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like ``Math.round(x * 10) / 10`` instead of banker's rounding.

    Example:
        >>> round_half_up(4.25)
        4.3
        >>> round_half_up(4.5)
        4.5
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def truncate(text: str, length: int = 100) -> str:
    """Shorten text for previews, appending an ellipsis when cut."""
    text = text.strip()
    if len(text) <= length:
        return text
    return text[:length].rstrip() + "..."


def safe_get(data: Any, *keys: str, default: Any = None) -> Any:
    """Safely navigate nested dictionary structure.

    Example:
        >>> data = {"a": {"b": {"c": 123}}}
        >>> safe_get(data, "a", "b", "c")
        123
        >>> safe_get(data, "a", "x", "y", default=0)
        0
    """
    for key in keys:
        if isinstance(data, dict):
            data = data.get(key)
            if data is None:
                return default
        else:
            return default
    return data


def ensure_list(value: Any) -> list[Any]:
    """Ensure value is a list, wrapping if necessary.

    Example:
        >>> ensure_list([1, 2, 3])
        [1, 2, 3]
        >>> ensure_list(42)
        [42]
        >>> ensure_list(None)
        []
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]
