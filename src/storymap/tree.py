"""Pure tree-path mutators for the Theme → Backbone → Rib hierarchy.

Every function takes a Document and returns a Document. Only the addressed
node and its ancestors are copied; unrelated subtrees come back as the very
same objects. A path that does not resolve returns the input document
unchanged (UI actions may race with earlier deletions), so callers can use
``result is document`` to detect a no-op.

Node updates are a tagged variant: ``Patch(name="x")`` sets fields,
``Transform(fn)`` maps the current node to its replacement.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

from storymap.cleanup import purge_rib_references
from storymap.models import (
    THEME_COLOR_KEYS,
    BackboneItem,
    Document,
    Release,
    ReleaseAllocation,
    RibItem,
    Sprint,
    Theme,
)
from storymap.ordering import insert_after, move_adjacent, remove_and_renumber, renumber, sort_by_order
from storymap.progress import calculate_next_sprint_end_date
from storymap.walk import RibPath, collect_rib_ids, find_rib

N = TypeVar("N")

IdFactory = Callable[[], str]


def new_uuid() -> str:
    return str(uuid.uuid4())


class Patch:
    """Literal field assignments applied with ``dataclasses.replace``."""

    __slots__ = ("fields",)

    def __init__(self, **fields: Any) -> None:
        self.fields = fields

    def apply(self, node: N) -> N:
        return replace(node, **self.fields)  # type: ignore[type-var]

    def __repr__(self) -> str:
        return f"Patch({self.fields!r})"


@dataclass(frozen=True)
class Transform(Generic[N]):
    """A function from the current node to its replacement."""

    fn: Callable[[N], N]

    def apply(self, node: N) -> N:
        return self.fn(node)


NodeUpdate = Patch | Transform[Any]


def _replace_child(items: tuple[N, ...], item_id: str, fn: Callable[[N], N]) -> tuple[N, ...]:
    """Replace the item with *item_id* by ``fn(item)``; same tuple back on a miss."""
    for idx, item in enumerate(items):
        if item.id == item_id:  # type: ignore[attr-defined]
            updated = fn(item)
            if updated is item:
                return items
            return (*items[:idx], updated, *items[idx + 1 :])
    return items


# -- Updates ----------------------------------------------------------------


def update_theme(document: Document, theme_id: str, update: NodeUpdate) -> Document:
    themes = _replace_child(document.themes, theme_id, update.apply)
    if themes is document.themes:
        return document
    return replace(document, themes=themes)


def update_backbone(document: Document, theme_id: str, backbone_id: str, update: NodeUpdate) -> Document:
    def on_theme(theme: Theme) -> Theme:
        backbones = _replace_child(theme.backbone_items, backbone_id, update.apply)
        if backbones is theme.backbone_items:
            return theme
        return replace(theme, backbone_items=backbones)

    return update_theme(document, theme_id, Transform(on_theme))


def update_rib(document: Document, theme_id: str, backbone_id: str, rib_id: str, update: NodeUpdate) -> Document:
    def on_backbone(backbone: BackboneItem) -> BackboneItem:
        ribs = _replace_child(backbone.rib_items, rib_id, update.apply)
        if ribs is backbone.rib_items:
            return backbone
        return replace(backbone, rib_items=ribs)

    return update_backbone(document, theme_id, backbone_id, Transform(on_backbone))


def update_release(document: Document, release_id: str, update: NodeUpdate) -> Document:
    releases = _replace_child(document.releases, release_id, update.apply)
    if releases is document.releases:
        return document
    return replace(document, releases=releases)


def update_sprint(document: Document, sprint_id: str, update: NodeUpdate) -> Document:
    sprints = _replace_child(document.sprints, sprint_id, update.apply)
    if sprints is document.sprints:
        return document
    return replace(document, sprints=sprints)


def set_allocations(document: Document, rib_id: str, allocations: Iterable[ReleaseAllocation]) -> Document:
    """Replace a rib's release allocations, wherever the rib lives.

    Allocations naming an unknown release are dropped. Percentages are not
    required to sum to 100.
    """
    location = find_rib(document, rib_id)
    if location is None:
        return document
    known = {r.id for r in document.releases}
    kept = tuple(a for a in allocations if a.release_id in known)
    theme_id, backbone_id, _ = location.path
    return update_rib(document, theme_id, backbone_id, rib_id, Patch(release_allocations=kept))


# -- Additions --------------------------------------------------------------


def add_theme(document: Document, *, new_id: IdFactory = new_uuid) -> Document:
    count = len(document.themes)
    theme = Theme(
        id=new_id(),
        name="New Theme",
        order=count + 1,
        color=THEME_COLOR_KEYS[count % len(THEME_COLOR_KEYS)],
    )
    return replace(document, themes=(*document.themes, theme))


def add_backbone(document: Document, theme_id: str, *, new_id: IdFactory = new_uuid) -> Document:
    def on_theme(theme: Theme) -> Theme:
        backbone = BackboneItem(id=new_id(), name="New Backbone Item", order=len(theme.backbone_items) + 1)
        return replace(theme, backbone_items=(*theme.backbone_items, backbone))

    return update_theme(document, theme_id, Transform(on_theme))


def add_rib(document: Document, theme_id: str, backbone_id: str, *, new_id: IdFactory = new_uuid) -> Document:
    def on_backbone(backbone: BackboneItem) -> BackboneItem:
        rib = RibItem(id=new_id(), name="New Rib Item", order=len(backbone.rib_items) + 1)
        return replace(backbone, rib_items=(*backbone.rib_items, rib))

    return update_backbone(document, theme_id, backbone_id, Transform(on_backbone))


def add_release_after(document: Document, after_release_id: str | None, *, new_id: IdFactory = new_uuid) -> Document:
    """Insert a new release directly after *after_release_id* (end of list when None/unknown)."""
    release = Release(id=new_id(), name=f"Release {len(document.releases) + 1}")
    return replace(document, releases=insert_after(document.releases, after_release_id, release))


def add_sprint(document: Document, cadence_weeks: int | None = None, *, new_id: IdFactory = new_uuid) -> Document:
    """Append a sprint ending one cadence after the previous sprint's end date."""
    weeks = cadence_weeks if cadence_weeks is not None else document.sprint_cadence_weeks
    ordered = sort_by_order(document.sprints)
    last_end = ordered[-1].end_date if ordered else None
    sprint = Sprint(
        id=new_id(),
        name=f"Sprint {len(ordered) + 1}",
        order=len(ordered) + 1,
        end_date=calculate_next_sprint_end_date(last_end, weeks),
    )
    return replace(document, sprints=renumber([*ordered, sprint]))


# -- Deletions --------------------------------------------------------------


def delete_theme(document: Document, theme_id: str) -> Document:
    doomed = [t for t in document.themes if t.id == theme_id]
    if not doomed:
        return document
    pruned = replace(document, themes=remove_and_renumber(document.themes, {theme_id}))
    return purge_rib_references(pruned, collect_rib_ids(doomed))


def delete_backbone(document: Document, theme_id: str, backbone_id: str) -> Document:
    doomed: set[str] = set()

    def on_theme(theme: Theme) -> Theme:
        for backbone in theme.backbone_items:
            if backbone.id == backbone_id:
                doomed.update(rib.id for rib in backbone.rib_items)
        backbones = remove_and_renumber(theme.backbone_items, {backbone_id})
        if backbones is theme.backbone_items:
            return theme
        return replace(theme, backbone_items=backbones)

    pruned = update_theme(document, theme_id, Transform(on_theme))
    if pruned is document:
        return document
    return purge_rib_references(pruned, doomed)


def delete_rib(document: Document, theme_id: str, backbone_id: str, rib_id: str) -> Document:
    return delete_ribs(document, [RibPath(theme_id, backbone_id, rib_id)])


def delete_ribs(document: Document, paths: Iterable[RibPath | tuple[str, str, str]]) -> Document:
    """Remove an arbitrary set of ribs in one pass, then purge their card-order references."""
    by_backbone: dict[tuple[str, str], set[str]] = defaultdict(set)
    for theme_id, backbone_id, rib_id in paths:
        by_backbone[(theme_id, backbone_id)].add(rib_id)

    removed: set[str] = set()
    result = document
    for (theme_id, backbone_id), rib_ids in by_backbone.items():

        def on_backbone(backbone: BackboneItem, rib_ids: set[str] = rib_ids) -> BackboneItem:
            ribs = remove_and_renumber(backbone.rib_items, rib_ids)
            if ribs is backbone.rib_items:
                return backbone
            removed.update(r.id for r in backbone.rib_items if r.id in rib_ids)
            return replace(backbone, rib_items=ribs)

        result = update_backbone(result, theme_id, backbone_id, Transform(on_backbone))

    if result is document:
        return document
    return purge_rib_references(result, removed)


# -- Moves ------------------------------------------------------------------


def move_sibling(document: Document, parent_path: tuple[str, ...], item_id: str, direction: int) -> Document:
    """Swap a node with its neighbour under the parent addressed by *parent_path*.

    ``()`` addresses the theme list, ``(theme_id,)`` a theme's backbones and
    ``(theme_id, backbone_id)`` a backbone's ribs.
    """
    if len(parent_path) == 0:
        themes = move_adjacent(document.themes, item_id, direction)
        return document if themes is document.themes else replace(document, themes=themes)
    if len(parent_path) == 1:
        (theme_id,) = parent_path

        def on_theme(theme: Theme) -> Theme:
            backbones = move_adjacent(theme.backbone_items, item_id, direction)
            return theme if backbones is theme.backbone_items else replace(theme, backbone_items=backbones)

        return update_theme(document, theme_id, Transform(on_theme))
    if len(parent_path) == 2:
        theme_id, backbone_id = parent_path

        def on_backbone(backbone: BackboneItem) -> BackboneItem:
            ribs = move_adjacent(backbone.rib_items, item_id, direction)
            return backbone if ribs is backbone.rib_items else replace(backbone, rib_items=ribs)

        return update_backbone(document, theme_id, backbone_id, Transform(on_backbone))
    msg = f"parent_path must have at most 2 elements, got {len(parent_path)}"
    raise ValueError(msg)


def move_release(document: Document, release_id: str, direction: int) -> Document:
    releases = move_adjacent(document.releases, release_id, direction)
    return document if releases is document.releases else replace(document, releases=releases)


def move_sprint(document: Document, sprint_id: str, direction: int) -> Document:
    sprints = move_adjacent(document.sprints, sprint_id, direction)
    return document if sprints is document.sprints else replace(document, sprints=sprints)
