"""
UTC timestamp utilities for Graph Migrator.

All timestamps MUST be in UTC with explicit timezone markers.
Migration nodes store their application time as an ISO 8601 string
with a 'Z' suffix so that the value is portable across graph stores.

This module provides:
- utc_now(): Current time as timezone-aware datetime
- utc_timestamp(): ISO 8601 timestamp string with 'Z' suffix

Examples:
    >>> from graph_migrator.utils.time import utc_now, utc_timestamp
    >>> now = utc_now()
    >>> now.tzinfo
    datetime.timezone.utc
    >>> utc_timestamp()
    '2025-11-02T08:30:45Z'
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return current time in UTC with timezone info.

    Returns:
        datetime: Current UTC time with tzinfo=timezone.utc

    Note:
        NEVER use datetime.now() without timezone parameter.
        NEVER use datetime.utcnow() (deprecated, returns naive datetime).
    """
    return datetime.now(UTC)


def utc_timestamp(dt: datetime | None = None) -> str:
    """
    Return ISO 8601 timestamp string with 'Z' suffix.

    Format: YYYY-MM-DDTHH:MM:SSZ

    Args:
        dt: Optional timezone-aware datetime. Uses current time if None.

    Returns:
        str: ISO 8601 formatted timestamp in UTC

    Raises:
        ValueError: If dt is a naive datetime

    Example:
        >>> utc_timestamp().endswith("Z")
        True
    """
    if dt is None:
        dt = utc_now()
    elif dt.tzinfo is None:
        raise ValueError("Naive datetime is not allowed, pass a timezone-aware value")

    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
