"""Utility functions for Udiddit.

This module provides helpers for datetime handling and for the field
transformations applied while migrating legacy rows.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

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


def split_voters(packed: str | None, delimiter: str = ",") -> set[str]:
    """Split a comma-packed legacy voter list into a set of usernames.

    An empty or missing list means "no voters". Tokens that are blank after
    trimming are discarded; every other token is kept verbatim. Order and
    repetition carry no meaning for vote identity, so a set is returned.

    Args:
        packed: Delimited usernames as stored in the legacy post
        delimiter: Separator between usernames

    Returns:
        Set of voter usernames (possibly empty)

    Example:
        >>> sorted(split_voters("bob,carol,bob"))
        ['bob', 'carol']
        >>> split_voters("")
        set()
        >>> split_voters(None)
        set()
    """
    if not packed:
        return set()
    return {token for token in packed.split(delimiter) if token.strip()}


def truncate(value: str | None, max_length: int) -> str | None:
    """Keep the first ``max_length`` characters of ``value`` (None stays None).

    Example:
        >>> truncate("abcdef", 3)
        'abc'
    """
    if value is None:
        return None
    return value[:max_length]


def distinct_names(*groups: Iterable[str | None]) -> list[str | None]:
    """Union several iterables of names in sorted order.

    A missing name (None) is kept, sorted last, so that the storage layer
    rejects it instead of it vanishing from the union.

    Example:
        >>> distinct_names(["b", "a"], ["a"], {"c"})
        ['a', 'b', 'c']
    """
    union: set[str | None] = set()
    for group in groups:
        union.update(group)
    return sorted(union, key=lambda name: (name is None, name or ""))
