"""ProgressMutationsMixin: per-sprint progress and comments on rib items."""

from __future__ import annotations

from storymap import progress
from storymap.store_base import StoreMixinProtocol


class ProgressMutationsMixin(StoreMixinProtocol):
    """Progress-ledger edits. No-ops (no undo step, no save) without a sprint."""

    def update_progress(
        self, rib_id: str, release_id: str | None, sprint_id: str | None, percent_complete: float | None
    ) -> None:
        progress.update_progress(self.apply, rib_id, release_id, sprint_id, percent_complete)

    def remove_progress(self, rib_id: str, release_id: str | None, sprint_id: str | None) -> None:
        progress.remove_progress(self.apply, rib_id, release_id, sprint_id)

    def update_comment(self, rib_id: str, release_id: str | None, sprint_id: str | None, comment: str) -> None:
        progress.update_comment(self.apply, rib_id, release_id, sprint_id, comment)
