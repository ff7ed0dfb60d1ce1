"""Create, duplicate, export and import whole documents."""

from __future__ import annotations

import json
import logging
from dataclasses import replace

from storymap.models import UNASSIGNED_LANE, CardOrder, Document, RibItem
from storymap.storage import serialize_document
from storymap.store_base import _now_iso
from storymap.tree import IdFactory, new_uuid
from storymap.validation import validate_document

logger = logging.getLogger(__name__)


def create_document(name: str, description: str = "", *, new_id: IdFactory = new_uuid) -> Document:
    """Return an empty document with default size mapping and cadence."""
    now = _now_iso()
    return Document(id=new_id(), name=name, description=description, created_at=now, updated_at=now)


class _IdRemapper:
    """Hands out one fresh id per old id, consistently."""

    def __init__(self, new_id: IdFactory) -> None:
        self._new_id = new_id
        self._mapping: dict[str, str] = {}

    def __call__(self, old_id: str) -> str:
        if old_id not in self._mapping:
            self._mapping[old_id] = self._new_id()
        return self._mapping[old_id]

    def get(self, old_id: str) -> str:
        return self._mapping.get(old_id, old_id)


def duplicate_document(document: Document, *, new_id: IdFactory = new_uuid) -> Document:
    """Deep copy with every id replaced.

    Allocation and progress references follow their release/sprint, and both
    card-order maps are rewritten to the new rib ids (release lanes also get
    the new release ids as keys).
    """
    remap = _IdRemapper(new_id)
    releases = tuple(replace(r, id=remap(r.id)) for r in document.releases)
    sprints = tuple(replace(s, id=remap(s.id)) for s in document.sprints)

    def copy_rib(rib: RibItem) -> RibItem:
        return replace(
            rib,
            id=remap(rib.id),
            release_allocations=tuple(replace(a, release_id=remap(a.release_id)) for a in rib.release_allocations),
            progress_history=tuple(
                replace(
                    p,
                    sprint_id=remap(p.sprint_id),
                    release_id=remap(p.release_id) if p.release_id is not None else None,
                )
                for p in rib.progress_history
            ),
        )

    themes = tuple(
        replace(
            theme,
            id=remap(theme.id),
            backbone_items=tuple(
                replace(b, id=remap(b.id), rib_items=tuple(copy_rib(r) for r in b.rib_items))
                for b in theme.backbone_items
            ),
        )
        for theme in document.themes
    )

    def remap_lanes(card_order: CardOrder, *, keys_are_releases: bool) -> CardOrder:
        result: CardOrder = {}
        for lane, rib_ids in card_order.items():
            key = remap(lane) if keys_are_releases and lane != UNASSIGNED_LANE else lane
            result[key] = tuple(remap.get(i) for i in rib_ids)
        return result

    now = _now_iso()
    return replace(
        document,
        id=new_id(),
        name=f"{document.name} (Copy)",
        created_at=now,
        updated_at=now,
        themes=themes,
        releases=releases,
        sprints=sprints,
        release_card_order=remap_lanes(document.release_card_order, keys_are_releases=True),
        sizing_card_order=remap_lanes(document.sizing_card_order, keys_are_releases=False),
    )


def export_document(document: Document) -> str:
    return serialize_document(document)


def import_document(text: str) -> Document:
    """Parse, validate and build a document from exported JSON.

    Raises ``ValueError`` on malformed JSON or data that fails validation.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON: {exc}"
        raise ValueError(msg) from exc
    cleaned = validate_document(data)
    try:
        document = Document.from_dict(cleaned)
    except (KeyError, TypeError) as exc:
        msg = f"Invalid document structure: {exc}"
        raise ValueError(msg) from exc
    logger.info("Imported document %s", document.id, extra={"op": "import", "document_id": document.id})
    return document
