"""Denormalized counter maintenance.

Parent records cache counts of their children (likes, comments, views,
wishlist entries, shares, reviews, reading-progress buckets). Every helper
here adjusts those fields through the record store with ``Increment``
transforms: the document database resolves them inside one transaction,
the mock store resolves them against the in-memory record. Both clamp at 0.

Example:
    >>> liked = await toggle_membership(posts, "post-1", "u1")
    >>> liked
    True
    >>> await toggle_membership(posts, "post-1", "u1")
    False
"""

from collections.abc import Mapping
from typing import Any

from ither.interfaces import IRecordStore
from ither.logging import logger
from ither.metrics import observe_counter
from ither.query import field_value
from ither.types import ArrayRemove, ArrayUnion, Increment
from ither.utils import round_half_up


async def bump(store: IRecordStore[Any], record_id: str, field: str, delta: int = 1) -> bool:
    """Add ``delta`` to a counter, never going below 0.

    Returns:
        True when the parent record was updated
    """
    ok = await store.update(record_id, {field: Increment(delta)})
    if ok:
        observe_counter(store.name, field, delta)
        logger.debug(f"{store.name}/{record_id}.{field} {delta:+d}")
    return ok


async def toggle_membership(
    store: IRecordStore[Any],
    record_id: str,
    user_id: str,
    set_field: str = "likedBy",
    count_field: str = "likeCount",
) -> bool | None:
    """Flip a user's membership in a liked-by/saved-by set and its counter.

    Present: remove the user and decrement by 1 (floor 0).
    Absent: add the user and increment by 1.

    Returns:
        New membership state, or None when the record is missing or the
        write failed
    """
    record = await store.get(record_id)
    if record is None:
        return None

    members = field_value(record, set_field) or []
    if user_id in members:
        fields = {set_field: ArrayRemove([user_id]), count_field: Increment(-1)}
        delta = -1
    else:
        fields = {set_field: ArrayUnion([user_id]), count_field: Increment(1)}
        delta = 1

    if not await store.update(record_id, fields):
        return None

    observe_counter(store.name, count_field, delta)
    logger.debug(f"{store.name}/{record_id}.{set_field} toggled by {user_id}: {delta > 0}")
    return delta > 0


async def transition_status(
    store: IRecordStore[Any],
    parent_id: str,
    old: Any | None,
    new: Any,
    counter_fields: Mapping[Any, str],
) -> bool:
    """Move one unit between per-state counters on a parent record.

    Args:
        store: Store of the parent records
        parent_id: Parent record id
        old: Previous state (None for a brand-new child record)
        new: New state
        counter_fields: State to counter field name

    Returns:
        True when the counters are consistent with the transition
    """
    if old == new:
        return True

    fields: dict[str, Increment] = {}
    if old is not None and old in counter_fields:
        fields[counter_fields[old]] = Increment(-1)
    if new in counter_fields:
        fields[counter_fields[new]] = Increment(1)
    if not fields:
        return True

    if not await store.update(parent_id, fields):
        return False

    for name, change in fields.items():
        observe_counter(store.name, name, change.amount)
    logger.debug(f"{store.name}/{parent_id} status counters {old} -> {new}")
    return True


def next_average(average: float, count: int, rating: float) -> float:
    """Running mean after one more rating, rounded half-up to one decimal.

    Example:
        >>> next_average(5.0, 1, 4)
        4.5
    """
    return round_half_up((average * count + rating) / (count + 1), 1)


async def apply_rating(
    store: IRecordStore[Any],
    parent_id: str,
    rating: int,
    avg_field: str = "avgRating",
    count_field: str = "reviewCount",
) -> float | None:
    """Fold a new rating into the parent's average and count.

    Append-only: there is no path to edit or retract a rating.

    Returns:
        The new average, or None on failure
    """
    parent = await store.get(parent_id)
    if parent is None:
        return None

    average = next_average(
        field_value(parent, avg_field) or 0.0,
        field_value(parent, count_field) or 0,
        rating,
    )
    if not await store.update(parent_id, {avg_field: average, count_field: Increment(1)}):
        return None

    observe_counter(store.name, avg_field, None)
    observe_counter(store.name, count_field, 1)
    return average


async def add_child(
    children: IRecordStore[Any],
    record: Any,
    parents: IRecordStore[Any],
    parent_id: str,
    count_field: str,
    record_id: str | None = None,
) -> str | None:
    """Create a child record and bump its parent's counter as one unit.

    When the counter update fails the child is removed again so the count
    and the children never drift apart.

    Returns:
        The new child id, or None when nothing was written
    """
    child_id = await children.create(record, record_id)
    if child_id is None:
        return None

    if not await bump(parents, parent_id, count_field, 1):
        logger.warning(f"⚠️  Rolling back {children.name}/{child_id}: {parents.name}/{parent_id} not updated")
        await children.remove(child_id)
        return None
    return child_id


async def remove_child(
    children: IRecordStore[Any],
    child_id: str,
    parents: IRecordStore[Any],
    parent_id: str,
    count_field: str,
) -> bool:
    """Delete a child record and decrement its parent's counter as one unit.

    The counter goes down first. When the delete then fails the decrement is
    reverted, so a failure leaves both the child and the count as they were.
    """
    if not await bump(parents, parent_id, count_field, -1):
        return False

    if not await children.remove(child_id):
        logger.warning(f"⚠️  Restoring {parents.name}/{parent_id}.{count_field}: {children.name}/{child_id} not removed")
        await bump(parents, parent_id, count_field, 1)
        return False
    return True


__all__ = [
    "bump",
    "toggle_membership",
    "transition_status",
    "next_average",
    "apply_rating",
    "add_child",
    "remove_child",
]
