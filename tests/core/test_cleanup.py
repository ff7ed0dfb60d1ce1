"""Tests for cascade cleanup of releases, sprints and rib references."""

from __future__ import annotations

import json
from dataclasses import replace

from storymap.cleanup import delete_release, delete_sprint, has_allocations_for_release, purge_rib_references
from storymap.models import Document, ProgressEntry, ReleaseAllocation
from storymap.walk import find_rib


def _rib(document: Document, rib_id: str):
    location = find_rib(document, rib_id)
    assert location is not None
    return location.rib


class TestDeleteRelease:
    def test_cascade_scenario(self, doc: Document) -> None:
        result = delete_release(doc, "rel-1")
        r1 = _rib(result, "r1")
        assert r1.release_allocations == (ReleaseAllocation("rel-2", 40),)
        assert [p.key for p in r1.progress_history] == [("sp-1", "rel-2")]
        assert [(r.id, r.order) for r in result.releases] == [("rel-2", 1), ("rel-3", 2)]
        assert "rel-1" not in result.release_card_order

    def test_leaves_other_lanes_and_sizing(self, doc: Document) -> None:
        result = delete_release(doc, "rel-1")
        assert result.release_card_order["rel-2"] == ("r2", "r1")
        assert result.sizing_card_order is doc.sizing_card_order

    def test_untouched_ribs_shared(self, doc: Document) -> None:
        result = delete_release(doc, "rel-1")
        assert _rib(result, "r3") is _rib(doc, "r3")
        assert result.themes[1] is doc.themes[1]

    def test_input_not_mutated(self, doc: Document) -> None:
        before = json.dumps(doc.to_dict(), sort_keys=True)
        delete_release(doc, "rel-1")
        assert json.dumps(doc.to_dict(), sort_keys=True) == before

    def test_unknown_release_is_noop(self, doc: Document) -> None:
        assert delete_release(doc, "ghost") is doc


class TestDeleteSprint:
    def test_strips_progress_and_renumbers(self, doc: Document) -> None:
        result = delete_sprint(doc, "sp-1")
        assert [p.key for p in _rib(result, "r1").progress_history] == [("sp-2", "rel-1")]
        assert [(s.id, s.order) for s in result.sprints] == [("sp-2", 1)]

    def test_card_orders_untouched(self, doc: Document) -> None:
        result = delete_sprint(doc, "sp-2")
        assert result.release_card_order is doc.release_card_order
        assert result.sizing_card_order is doc.sizing_card_order

    def test_unknown_sprint_is_noop(self, doc: Document) -> None:
        assert delete_sprint(doc, "ghost") is doc

    def test_allocations_kept(self, doc: Document) -> None:
        result = delete_sprint(doc, "sp-1")
        assert _rib(result, "r1").release_allocations == _rib(doc, "r1").release_allocations


class TestPurgeRibReferences:
    def test_removes_from_both_maps(self, doc: Document) -> None:
        result = purge_rib_references(doc, {"r1"})
        assert result.release_card_order["rel-1"] == ()
        assert result.release_card_order["rel-2"] == ("r2",)
        assert result.sizing_card_order["M"] == ()

    def test_empty_maps(self, doc: Document) -> None:
        bare = replace(doc, release_card_order={}, sizing_card_order={})
        result = purge_rib_references(bare, {"r1"})
        assert result.release_card_order == {}
        assert result.sizing_card_order == {}

    def test_no_ids_is_noop(self, doc: Document) -> None:
        assert purge_rib_references(doc, []) is doc


class TestHasAllocationsForRelease:
    def test_true_and_false(self, doc: Document) -> None:
        assert has_allocations_for_release(doc, "rel-1") is True
        assert has_allocations_for_release(doc, "rel-3") is False

    def test_progress_alone_does_not_count(self, doc: Document) -> None:
        r3 = _rib(doc, "r3")
        tracked = replace(r3, progress_history=(ProgressEntry("sp-1", "rel-3", 10),))
        backbone = replace(doc.themes[0].backbone_items[1], rib_items=(tracked,))
        theme = replace(doc.themes[0], backbone_items=(doc.themes[0].backbone_items[0], backbone))
        document = replace(doc, themes=(theme, doc.themes[1]))
        assert has_allocations_for_release(document, "rel-3") is False

    def test_empty_document(self) -> None:
        assert has_allocations_for_release(Document(id="d", name="d"), "rel-1") is False
