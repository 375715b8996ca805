"""Write transforms and type aliases shared by both storage backends.

A partial update is a mapping of field name to either a plain value or one
of the transform sentinels below. ``apply_transforms`` resolves them against
the current document, so the mock store and the document database produce
the same result for the same update.

Example:
    >>> doc = {"likeCount": 0, "likedBy": []}
    >>> apply_transforms(doc, {"likeCount": Increment(1), "likedBy": ArrayUnion(["u1"])})
    {'likeCount': 1, 'likedBy': ['u1']}
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ither.utils import utc_now

Document = dict[str, Any]
"""A record as stored: plain JSON-compatible mapping without its id."""

Filters = Mapping[str, Any]
"""Equality filters, AND-composed."""

Update = Mapping[str, Any]
"""Partial update; values may be transform sentinels."""


@dataclass(frozen=True)
class Increment:
    """Add ``amount`` to a numeric field, never going below ``floor``.

    A missing field counts as 0. ``floor=None`` disables clamping.
    """

    amount: int | float
    floor: int | float | None = 0


@dataclass(frozen=True)
class ArrayUnion:
    """Append each value not already present in a list field."""

    values: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ArrayRemove:
    """Remove every occurrence of each value from a list field."""

    values: list[Any] = field(default_factory=list)


class _ServerTimestamp:
    """Resolved to the writer's clock when the update is applied."""

    _instance: "_ServerTimestamp | None" = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def resolve_value(current: Any, value: Any, now: datetime) -> Any:
    """Compute the new value of one field from its current value."""
    if isinstance(value, Increment):
        result = (current or 0) + value.amount
        if value.floor is not None and result < value.floor:
            result = value.floor
        return result
    if isinstance(value, ArrayUnion):
        items = list(current or [])
        for item in value.values:
            if item not in items:
                items.append(item)
        return items
    if isinstance(value, ArrayRemove):
        return [item for item in (current or []) if item not in value.values]
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, Mapping):
        return {key: resolve_value(None, item, now) for key, item in value.items()}
    return value


def apply_transforms(
    document: Document,
    fields: Update,
    now: datetime | None = None,
) -> Document:
    """Apply a partial update to ``document`` in place and return it.

    Args:
        document: Current document contents
        fields: Field values or transform sentinels
        now: Clock used for ``SERVER_TIMESTAMP`` (defaults to ``utc_now()``)

    Returns:
        The same document, updated
    """
    now = now or utc_now()
    for key, value in fields.items():
        document[key] = resolve_value(document.get(key), value, now)
    return document


def merge_documents(document: Document, fields: Update, now: datetime | None = None) -> Document:
    """Deep-merge ``fields`` into ``document`` (``set(..., merge=True)`` semantics).

    Nested mappings are merged key by key instead of being replaced.
    """
    now = now or utc_now()
    for key, value in fields.items():
        current = document.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            document[key] = merge_documents(dict(current), value, now)
        else:
            document[key] = resolve_value(current, value, now)
    return document


__all__ = [
    "Document",
    "Filters",
    "Update",
    "Increment",
    "ArrayUnion",
    "ArrayRemove",
    "SERVER_TIMESTAMP",
    "apply_transforms",
    "merge_documents",
    "resolve_value",
]
