"""Client-side filtering, keyword search and sorting.

Pure functions over in-memory sequences of records. They behave the same
whether the records came from the mock store or the document database, so
feature modules always fetch first and shape the result here.

All sorts use ``sorted`` and are therefore stable: records that compare equal
keep their prior relative order.

Example:
    >>> from ither.query import filter_records, keyword_search, sort_by_recency
    >>> items = filter_records(items, category="books", status="active")
    >>> items = keyword_search(items, "vue")
    >>> items = sort_by_recency(items)
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel

from ither.utils import timestamp_key

R = TypeVar("R")

IGNORED_FILTER_VALUES = (None, "all")
"""Filter values meaning "no constraint" for ``filter_records``."""


def field_value(record: Any, name: str) -> Any:
    """Read a field from a pydantic record or a plain mapping."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _normalize(value: Any) -> Any:
    # StrEnum members compare equal to their string value already; models do not
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


def matches(record: Any, filters: Mapping[str, Any] | None) -> bool:
    """Check every equality filter against a record (AND-composed).

    Args:
        record: Pydantic record or mapping
        filters: Field name to expected value; ``None`` means the field is unset

    Returns:
        True when all filters match (or there are none)
    """
    if not filters:
        return True
    return all(
        _normalize(field_value(record, name)) == _normalize(expected)
        for name, expected in filters.items()
    )


def filter_records(records: Iterable[R], **equals: Any) -> list[R]:
    """Keep records matching every given field value.

    Values of ``None`` or ``"all"`` are skipped so UI filter slots can be
    passed through unchanged.

    Example:
        >>> filter_records(items, category="all", status="active")  # status only
    """
    active = {
        name: value for name, value in equals.items() if value not in IGNORED_FILTER_VALUES
    }
    return [record for record in records if matches(record, active)]


def keyword_search(
    records: Iterable[R],
    keyword: str | None,
    fields: Sequence[str] = ("title", "description"),
) -> list[R]:
    """Case-insensitive substring search OR-composed across ``fields``.

    A blank keyword returns every record.

    Example:
        >>> [i.title for i in keyword_search(items, "VUE")]
        ['Vue.js 設計與實作']
    """
    records = list(records)
    needle = (keyword or "").strip().lower()
    if not needle:
        return records

    def hit(record: R) -> bool:
        for name in fields:
            value = field_value(record, name)
            if isinstance(value, str) and needle in value.lower():
                return True
        return False

    return [record for record in records if hit(record)]


def sort_by_recency(records: Iterable[R], field: str = "createdAt") -> list[R]:
    """Newest first."""
    return sorted(records, key=lambda r: timestamp_key(field_value(r, field)), reverse=True)


def sort_chronological(records: Iterable[R], field: str = "createdAt") -> list[R]:
    """Oldest first (comment threads)."""
    return sorted(records, key=lambda r: timestamp_key(field_value(r, field)))


def sort_by_rating(records: Iterable[R], field: str = "avgRating") -> list[R]:
    """Highest average rating first."""
    return sorted(records, key=lambda r: field_value(r, field) or 0, reverse=True)


def sort_by_popularity(
    records: Iterable[R],
    fields: Sequence[str] = ("finishedCount", "readingCount"),
) -> list[R]:
    """Highest sum of usage counters first."""
    return sorted(
        records,
        key=lambda r: sum(field_value(r, name) or 0 for name in fields),
        reverse=True,
    )


def dedupe_by_id(records: Iterable[R]) -> list[R]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[R] = []
    for record in records:
        record_id = field_value(record, "id")
        if record_id in seen:
            continue
        seen.add(record_id)
        unique.append(record)
    return unique


__all__ = [
    "field_value",
    "matches",
    "filter_records",
    "keyword_search",
    "sort_by_recency",
    "sort_chronological",
    "sort_by_rating",
    "sort_by_popularity",
    "dedupe_by_id",
]
