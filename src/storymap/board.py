"""Board-lane moves for the release and sizing boards.

A card-order map keeps, per lane, the display order of rib ids independent of
the tree's own ordering. Release-board lanes are keyed by release id (or
``"unassigned"``); sizing-board lanes by size label (or ``"unsized"``). These
moves keep the rib's allocations / size and the card order consistent in one
document replacement.
"""

from __future__ import annotations

from dataclasses import replace

from storymap.models import UNASSIGNED_LANE, UNSIZED_LANE, BackboneItem, CardOrder, Document, ReleaseAllocation, RibItem, Theme
from storymap.ordering import index_of, remove_and_renumber, renumber
from storymap.tree import Patch, Transform, update_backbone, update_rib, update_theme
from storymap.walk import RibPath, find_rib


def _insert_card(card_order: CardOrder, lane: str, rib_id: str, insert_index: int | None) -> CardOrder:
    """Place *rib_id* in *lane* at *insert_index* (end when None or out of range)."""
    lane_ids = [i for i in card_order.get(lane, ()) if i != rib_id]
    if insert_index is None or not 0 <= insert_index <= len(lane_ids):
        lane_ids.append(rib_id)
    else:
        lane_ids.insert(insert_index, rib_id)
    return {**card_order, lane: tuple(lane_ids)}


def _remove_card(card_order: CardOrder, lane: str, rib_id: str) -> CardOrder:
    if lane not in card_order:
        return card_order
    return {**card_order, lane: tuple(i for i in card_order[lane] if i != rib_id)}


def move_rib_to_release(
    document: Document,
    rib_id: str,
    from_release_id: str | None,
    to_release_id: str | None,
    insert_index: int | None = None,
) -> Document:
    """Move a rib between release lanes, transferring its allocation.

    Moving to ``None`` (unassigned) clears all allocations; moving from
    unassigned creates a 100% allocation. A transfer onto a release the rib is
    already allocated to is refused (the document is returned unchanged).
    """
    location = find_rib(document, rib_id)
    if location is None:
        return document
    if to_release_id is not None and index_of(document.releases, to_release_id) < 0:
        return document
    rib = location.rib

    if to_release_id is None:
        allocations: tuple[ReleaseAllocation, ...] = ()
    elif from_release_id is None:
        allocations = (ReleaseAllocation(to_release_id, 100),)
    else:
        if any(a.release_id == to_release_id for a in rib.release_allocations):
            return document
        previous = next((a for a in rib.release_allocations if a.release_id == from_release_id), None)
        moved = ReleaseAllocation(
            to_release_id,
            previous.percentage if previous else 100,
            previous.memo if previous else "",
        )
        allocations = (*(a for a in rib.release_allocations if a.release_id != from_release_id), moved)

    theme_id, backbone_id, _ = location.path
    result = update_rib(document, theme_id, backbone_id, rib_id, Patch(release_allocations=allocations))
    card_order = _remove_card(result.release_card_order, from_release_id or UNASSIGNED_LANE, rib_id)
    card_order = _insert_card(card_order, to_release_id or UNASSIGNED_LANE, rib_id, insert_index)
    return replace(result, release_card_order=card_order)


def reorder_rib_in_release(
    document: Document, rib_id: str, release_id: str | None, insert_index: int | None = None
) -> Document:
    """Reposition a rib within one release lane; allocations are untouched."""
    if find_rib(document, rib_id) is None:
        return document
    card_order = _insert_card(document.release_card_order, release_id or UNASSIGNED_LANE, rib_id, insert_index)
    return replace(document, release_card_order=card_order)


def move_rib_to_backbone(
    document: Document, rib_id: str, source: tuple[str, str], target: tuple[str, str]
) -> Document:
    """Detach a rib from the *source* (theme_id, backbone_id) and append it to *target*."""
    if source == target:
        return document
    location = find_rib(document, rib_id)
    if location is None or (location.theme.id, location.backbone.id) != source:
        return document
    target_theme = next((t for t in document.themes if t.id == target[0]), None)
    if target_theme is None or index_of(target_theme.backbone_items, target[1]) < 0:
        return document

    def detach(backbone: BackboneItem) -> BackboneItem:
        return replace(backbone, rib_items=remove_and_renumber(backbone.rib_items, {rib_id}))

    def attach(backbone: BackboneItem) -> BackboneItem:
        moved = replace(location.rib, order=len(backbone.rib_items) + 1)
        return replace(backbone, rib_items=(*backbone.rib_items, moved))

    result = update_backbone(document, source[0], source[1], Transform(detach))
    return update_backbone(result, target[0], target[1], Transform(attach))


def move_backbone_to_theme(document: Document, backbone_id: str, from_theme_id: str, to_theme_id: str) -> Document:
    """Move a backbone (with its ribs) to the end of another theme, renumbering both."""
    if from_theme_id == to_theme_id:
        return document
    source = next((t for t in document.themes if t.id == from_theme_id), None)
    if source is None or index_of(document.themes, to_theme_id) < 0:
        return document
    backbone = next((b for b in source.backbone_items if b.id == backbone_id), None)
    if backbone is None:
        return document

    def detach(theme: Theme) -> Theme:
        return replace(theme, backbone_items=remove_and_renumber(theme.backbone_items, {backbone_id}))

    def attach(theme: Theme) -> Theme:
        return replace(theme, backbone_items=renumber([*theme.backbone_items, backbone]))

    result = update_theme(document, from_theme_id, Transform(detach))
    return update_theme(result, to_theme_id, Transform(attach))


def move_rib_to_size(
    document: Document, path: RibPath, target_size: str | None, insert_index: int | None = None
) -> Document:
    """Resize a rib and place it in the target sizing lane in one step."""
    theme_id, backbone_id, rib_id = path
    location = find_rib(document, rib_id)
    if location is None or location.path != path:
        return document
    if target_size is not None and target_size not in {m.label for m in document.size_mapping}:
        return document
    source_size = location.rib.size

    result = document
    if source_size != target_size:

        def resize(rib: RibItem) -> RibItem:
            return replace(rib, size=target_size)

        result = update_rib(document, theme_id, backbone_id, rib_id, Transform(resize))

    card_order = result.sizing_card_order
    if source_size != target_size:
        card_order = _remove_card(card_order, source_size or UNSIZED_LANE, rib_id)
    card_order = _insert_card(card_order, target_size or UNSIZED_LANE, rib_id, insert_index)
    return replace(result, sizing_card_order=card_order)
