"""Sibling-order helpers shared by every structural mutation.

Pure functions over tuples of records carrying ``id`` and ``order``. After any
change in membership or position a sibling list is renumbered to exactly
``1..N``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from typing import Any, Protocol, TypeVar


class Ordered(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def order(self) -> int: ...


T = TypeVar("T", bound=Ordered)


def renumber(items: Iterable[T]) -> tuple[T, ...]:
    """Return the items with ``order`` set to their 1-based position.

    Items whose order is already correct are reused as-is.
    """
    result: list[T] = []
    for position, item in enumerate(items, start=1):
        result.append(item if item.order == position else replace(item, order=position))
    return tuple(result)


def sort_by_order(items: Iterable[T]) -> list[T]:
    return sorted(items, key=lambda item: item.order)


def move_adjacent(items: tuple[T, ...], item_id: str, direction: int) -> tuple[T, ...]:
    """Swap the item with its neighbour in *direction* (+1 / -1) and renumber.

    Returns *items* itself when the id is missing or the move would leave the
    list; callers compare by identity to detect the no-op.
    """
    if direction not in (-1, 1):
        msg = f"direction must be -1 or 1, got {direction!r}"
        raise ValueError(msg)
    idx = index_of(items, item_id)
    if idx < 0:
        return items
    target = idx + direction
    if target < 0 or target >= len(items):
        return items
    swapped = list(items)
    swapped[idx], swapped[target] = swapped[target], swapped[idx]
    return renumber(swapped)


def insert_after(items: Iterable[T], after_id: str | None, new_item: T) -> tuple[T, ...]:
    """Insert *new_item* one past *after_id* in order-sorted position.

    Sort by ``order``, locate the anchor (end of list when *after_id* is None or
    unknown), splice, then renumber the whole list.
    """
    ordered = sort_by_order(items)
    insert_at = len(ordered)
    if after_id is not None:
        anchor = index_of(ordered, after_id)
        if anchor >= 0:
            insert_at = anchor + 1
    ordered.insert(insert_at, new_item)
    return renumber(ordered)


def remove_and_renumber(items: tuple[T, ...], doomed: set[str]) -> tuple[T, ...]:
    """Drop items whose id is in *doomed*; same tuple back if nothing matched."""
    kept = [item for item in items if item.id not in doomed]
    if len(kept) == len(items):
        return items
    return renumber(kept)


def index_of(items: Sequence[Any], item_id: str) -> int:
    for idx, item in enumerate(items):
        if item.id == item_id:
            return idx
    return -1


def sort_by_card_order(items: Iterable[T], card_order: Sequence[str] | None) -> list[T]:
    """Order items by a lane's persisted card order.

    Ids present in *card_order* come first, in that order; the rest follow in
    their original relative order.
    """
    items = list(items)
    if not card_order:
        return items
    positions: Mapping[str, int] = {item_id: pos for pos, item_id in enumerate(card_order)}
    unplaced = len(positions)
    # sorted() is stable, so unplaced items keep their relative order.
    return sorted(items, key=lambda item: positions.get(item.id, unplaced))
