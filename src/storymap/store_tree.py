"""TreeMutationsMixin: structural edits, cascade deletes and board moves.

Each method wraps a pure function from ``tree``, ``cleanup`` or ``board`` in a
single ``self.apply`` call, so every edit is one undo step and one debounced
save.
"""

from __future__ import annotations

from collections.abc import Iterable

from storymap import board, cleanup, tree
from storymap.models import ReleaseAllocation
from storymap.store_base import StoreMixinProtocol
from storymap.tree import NodeUpdate
from storymap.walk import RibPath


class TreeMutationsMixin(StoreMixinProtocol):
    """Theme/backbone/rib/release/sprint mutations built on ``apply``.

    Inherits ``StoreMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``DocumentStore`` at composition time via MRO.
    """

    # -- Themes / backbones / ribs -------------------------------------------

    def update_theme(self, theme_id: str, update: NodeUpdate) -> None:
        self.apply(lambda d: tree.update_theme(d, theme_id, update))

    def update_backbone(self, theme_id: str, backbone_id: str, update: NodeUpdate) -> None:
        self.apply(lambda d: tree.update_backbone(d, theme_id, backbone_id, update))

    def update_rib(self, theme_id: str, backbone_id: str, rib_id: str, update: NodeUpdate) -> None:
        self.apply(lambda d: tree.update_rib(d, theme_id, backbone_id, rib_id, update))

    def add_theme(self) -> None:
        self.apply(lambda d: tree.add_theme(d, new_id=self.new_id))

    def add_backbone(self, theme_id: str) -> None:
        self.apply(lambda d: tree.add_backbone(d, theme_id, new_id=self.new_id))

    def add_rib(self, theme_id: str, backbone_id: str) -> None:
        self.apply(lambda d: tree.add_rib(d, theme_id, backbone_id, new_id=self.new_id))

    def delete_theme(self, theme_id: str) -> None:
        self.apply(lambda d: tree.delete_theme(d, theme_id))

    def delete_backbone(self, theme_id: str, backbone_id: str) -> None:
        self.apply(lambda d: tree.delete_backbone(d, theme_id, backbone_id))

    def delete_rib(self, theme_id: str, backbone_id: str, rib_id: str) -> None:
        self.apply(lambda d: tree.delete_rib(d, theme_id, backbone_id, rib_id))

    def delete_ribs(self, paths: Iterable[RibPath | tuple[str, str, str]]) -> None:
        entries = list(paths)
        if not entries:
            return
        self.apply(lambda d: tree.delete_ribs(d, entries))

    def move_sibling(self, parent_path: tuple[str, ...], item_id: str, direction: int) -> None:
        self.apply(lambda d: tree.move_sibling(d, parent_path, item_id, direction))

    def set_allocations(self, rib_id: str, allocations: Iterable[ReleaseAllocation]) -> None:
        entries = tuple(allocations)
        self.apply(lambda d: tree.set_allocations(d, rib_id, entries))

    # -- Releases / sprints --------------------------------------------------

    def add_release_after(self, after_release_id: str | None) -> None:
        self.apply(lambda d: tree.add_release_after(d, after_release_id, new_id=self.new_id))

    def update_release(self, release_id: str, update: NodeUpdate) -> None:
        self.apply(lambda d: tree.update_release(d, release_id, update))

    def move_release(self, release_id: str, direction: int) -> None:
        self.apply(lambda d: tree.move_release(d, release_id, direction))

    def delete_release(self, release_id: str) -> None:
        self.apply(lambda d: cleanup.delete_release(d, release_id))

    def add_sprint(self, cadence_weeks: int | None = None) -> None:
        self.apply(lambda d: tree.add_sprint(d, cadence_weeks, new_id=self.new_id))

    def update_sprint(self, sprint_id: str, update: NodeUpdate) -> None:
        self.apply(lambda d: tree.update_sprint(d, sprint_id, update))

    def move_sprint(self, sprint_id: str, direction: int) -> None:
        self.apply(lambda d: tree.move_sprint(d, sprint_id, direction))

    def delete_sprint(self, sprint_id: str) -> None:
        self.apply(lambda d: cleanup.delete_sprint(d, sprint_id))

    def has_allocations_for_release(self, release_id: str) -> bool:
        document = self.document
        return document is not None and cleanup.has_allocations_for_release(document, release_id)

    # -- Board lanes ---------------------------------------------------------

    def move_rib_to_release(
        self,
        rib_id: str,
        from_release_id: str | None,
        to_release_id: str | None,
        insert_index: int | None = None,
    ) -> None:
        self.apply(lambda d: board.move_rib_to_release(d, rib_id, from_release_id, to_release_id, insert_index))

    def reorder_rib_in_release(self, rib_id: str, release_id: str | None, insert_index: int | None = None) -> None:
        self.apply(lambda d: board.reorder_rib_in_release(d, rib_id, release_id, insert_index))

    def move_rib_to_backbone(self, rib_id: str, source: tuple[str, str], target: tuple[str, str]) -> None:
        self.apply(lambda d: board.move_rib_to_backbone(d, rib_id, source, target))

    def move_backbone_to_theme(self, backbone_id: str, from_theme_id: str, to_theme_id: str) -> None:
        self.apply(lambda d: board.move_backbone_to_theme(d, backbone_id, from_theme_id, to_theme_id))

    def move_rib_to_size(self, path: RibPath, target_size: str | None, insert_index: int | None = None) -> None:
        self.apply(lambda d: board.move_rib_to_size(d, path, target_size, insert_index))
