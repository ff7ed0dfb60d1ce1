"""Cascade cleanup for Release, Sprint and Rib removal.

Each function takes a document and returns a new one with the entity gone and
every reference to it removed. The input document is never modified.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from storymap.models import CardOrder, Document, RibItem
from storymap.ordering import index_of, remove_and_renumber
from storymap.walk import iter_ribs, map_ribs

logger = logging.getLogger(__name__)


def delete_release(document: Document, release_id: str) -> Document:
    """Remove a release, its card-order lane, and all allocations/progress naming it."""
    if index_of(document.releases, release_id) < 0:
        return document

    def strip(rib: RibItem) -> RibItem:
        allocations = tuple(a for a in rib.release_allocations if a.release_id != release_id)
        history = tuple(p for p in rib.progress_history if p.release_id != release_id)
        if len(allocations) == len(rib.release_allocations) and len(history) == len(rib.progress_history):
            return rib
        return replace(rib, release_allocations=allocations, progress_history=history)

    cleaned = map_ribs(document, strip)
    card_order = {lane: ids for lane, ids in document.release_card_order.items() if lane != release_id}
    logger.debug("Deleting release %s from document %s", release_id, document.id)
    return replace(
        cleaned,
        releases=remove_and_renumber(document.releases, {release_id}),
        release_card_order=card_order,
    )


def delete_sprint(document: Document, sprint_id: str) -> Document:
    """Remove a sprint and every progress entry recorded against it.

    Card-order maps are keyed by release and size, so they are left alone.
    """
    if index_of(document.sprints, sprint_id) < 0:
        return document

    def strip(rib: RibItem) -> RibItem:
        history = tuple(p for p in rib.progress_history if p.sprint_id != sprint_id)
        if len(history) == len(rib.progress_history):
            return rib
        return replace(rib, progress_history=history)

    cleaned = map_ribs(document, strip)
    logger.debug("Deleting sprint %s from document %s", sprint_id, document.id)
    return replace(cleaned, sprints=remove_and_renumber(document.sprints, {sprint_id}))


def _purge_lanes(card_order: CardOrder, doomed: set[str]) -> CardOrder:
    return {lane: tuple(i for i in ids if i not in doomed) for lane, ids in card_order.items()}


def purge_rib_references(document: Document, rib_ids: Iterable[str]) -> Document:
    """Drop *rib_ids* from every lane of both card-order maps."""
    doomed = set(rib_ids)
    if not doomed:
        return document
    return replace(
        document,
        release_card_order=_purge_lanes(document.release_card_order or {}, doomed),
        sizing_card_order=_purge_lanes(document.sizing_card_order or {}, doomed),
    )


def has_allocations_for_release(document: Document, release_id: str) -> bool:
    """True when any rib holds an allocation to *release_id*. Stops at the first hit."""
    return any(
        allocation.release_id == release_id
        for location in iter_ribs(document)
        for allocation in location.rib.release_allocations
    )
