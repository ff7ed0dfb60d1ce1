"""Tests for sibling ordering helpers."""

from __future__ import annotations

import pytest

from storymap.models import Release
from storymap.ordering import (
    index_of,
    insert_after,
    move_adjacent,
    remove_and_renumber,
    renumber,
    sort_by_card_order,
    sort_by_order,
)


def _releases(*orders: int) -> tuple[Release, ...]:
    return tuple(Release(id=f"rel-{i}", name=f"R{i}", order=o) for i, o in enumerate(orders, start=1))


class TestRenumber:
    def test_assigns_contiguous_orders(self) -> None:
        result = renumber(_releases(5, 9, 2))
        assert [r.order for r in result] == [1, 2, 3]
        assert [r.id for r in result] == ["rel-1", "rel-2", "rel-3"]

    def test_reuses_items_already_in_place(self) -> None:
        items = _releases(1, 7)
        result = renumber(items)
        assert result[0] is items[0]
        assert result[1] is not items[1]

    def test_empty(self) -> None:
        assert renumber([]) == ()


class TestSortByOrder:
    def test_sorts_ascending(self) -> None:
        assert [r.id for r in sort_by_order(_releases(3, 1, 2))] == ["rel-2", "rel-3", "rel-1"]


class TestMoveAdjacent:
    def test_swaps_down(self) -> None:
        result = move_adjacent(_releases(1, 2, 3), "rel-1", 1)
        assert [r.id for r in result] == ["rel-2", "rel-1", "rel-3"]
        assert [r.order for r in result] == [1, 2, 3]

    def test_swaps_up(self) -> None:
        result = move_adjacent(_releases(1, 2, 3), "rel-3", -1)
        assert [r.id for r in result] == ["rel-1", "rel-3", "rel-2"]

    def test_out_of_bounds_returns_same_tuple(self) -> None:
        items = _releases(1, 2, 3)
        assert move_adjacent(items, "rel-1", -1) is items
        assert move_adjacent(items, "rel-3", 1) is items

    def test_missing_id_returns_same_tuple(self) -> None:
        items = _releases(1, 2)
        assert move_adjacent(items, "nope", 1) is items

    @pytest.mark.parametrize("direction", [0, 2, -3])
    def test_rejects_other_directions(self, direction: int) -> None:
        with pytest.raises(ValueError, match="direction"):
            move_adjacent(_releases(1, 2), "rel-1", direction)


class TestInsertAfter:
    def test_inserts_after_anchor_and_renumbers(self) -> None:
        new = Release(id="new", name="New", order=99)
        result = insert_after(_releases(1, 2, 3), "rel-1", new)
        assert [r.id for r in result] == ["rel-1", "new", "rel-2", "rel-3"]
        assert [r.order for r in result] == [1, 2, 3, 4]

    def test_none_appends(self) -> None:
        new = Release(id="new", name="New")
        result = insert_after(_releases(1, 2), None, new)
        assert result[-1].id == "new"
        assert result[-1].order == 3

    def test_unknown_anchor_appends(self) -> None:
        result = insert_after(_releases(1, 2), "ghost", Release(id="new", name="New"))
        assert [r.id for r in result] == ["rel-1", "rel-2", "new"]

    def test_sorts_before_locating(self) -> None:
        # Stored out of order: rel-1 is last by order.
        items = _releases(3, 1, 2)
        result = insert_after(items, "rel-2", Release(id="new", name="New"))
        assert [r.id for r in result] == ["rel-2", "new", "rel-3", "rel-1"]


class TestRemoveAndRenumber:
    def test_removes_and_closes_gaps(self) -> None:
        result = remove_and_renumber(_releases(1, 2, 3), {"rel-2"})
        assert [(r.id, r.order) for r in result] == [("rel-1", 1), ("rel-3", 2)]

    def test_nothing_removed_returns_same_tuple(self) -> None:
        items = _releases(1, 2)
        assert remove_and_renumber(items, {"ghost"}) is items


class TestIndexOf:
    def test_found_and_missing(self) -> None:
        items = _releases(1, 2)
        assert index_of(items, "rel-2") == 1
        assert index_of(items, "ghost") == -1


class TestSortByCardOrder:
    def test_listed_ids_first_rest_keep_relative_order(self) -> None:
        items = _releases(1, 2, 3, 4)
        result = sort_by_card_order(items, ["rel-3", "rel-1"])
        assert [r.id for r in result] == ["rel-3", "rel-1", "rel-2", "rel-4"]

    def test_no_card_order(self) -> None:
        items = _releases(1, 2)
        assert [r.id for r in sort_by_card_order(items, None)] == ["rel-1", "rel-2"]
