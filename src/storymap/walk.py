"""Traversal helpers over the Theme → Backbone → Rib hierarchy."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import replace
from typing import NamedTuple

from storymap.models import BackboneItem, Document, RibItem, Theme


class RibPath(NamedTuple):
    """Full id path of a Rib Item."""

    theme_id: str
    backbone_id: str
    rib_id: str


class RibLocation(NamedTuple):
    theme: Theme
    backbone: BackboneItem
    rib: RibItem

    @property
    def path(self) -> RibPath:
        return RibPath(self.theme.id, self.backbone.id, self.rib.id)


def iter_ribs(document: Document) -> Iterator[RibLocation]:
    for theme in document.themes:
        for backbone in theme.backbone_items:
            for rib in backbone.rib_items:
                yield RibLocation(theme, backbone, rib)


def find_rib(document: Document, rib_id: str) -> RibLocation | None:
    """Locate a rib anywhere in the tree. Rib ids are globally unique."""
    for location in iter_ribs(document):
        if location.rib.id == rib_id:
            return location
    return None


def collect_rib_ids(themes: tuple[Theme, ...] | list[Theme]) -> set[str]:
    return {rib.id for theme in themes for backbone in theme.backbone_items for rib in backbone.rib_items}


def map_ribs(document: Document, fn: Callable[[RibItem], RibItem]) -> Document:
    """Apply *fn* to every rib, copying only the ancestors of changed ribs.

    *fn* signals "unchanged" by returning its argument; when nothing changes
    the input document is returned as-is.
    """
    themes_changed = False
    new_themes: list[Theme] = []
    for theme in document.themes:
        backbones_changed = False
        new_backbones: list[BackboneItem] = []
        for backbone in theme.backbone_items:
            ribs = tuple(fn(rib) for rib in backbone.rib_items)
            if any(new is not old for new, old in zip(ribs, backbone.rib_items, strict=True)):
                backbone = replace(backbone, rib_items=ribs)
                backbones_changed = True
            new_backbones.append(backbone)
        if backbones_changed:
            theme = replace(theme, backbone_items=tuple(new_backbones))
            themes_changed = True
        new_themes.append(theme)
    if not themes_changed:
        return document
    return replace(document, themes=tuple(new_themes))
