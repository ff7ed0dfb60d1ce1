"""Progress-ledger mutations on a rib's progress history.

A progress entry is identified by its ``(sprint_id, release_id)`` pair; a rib
holds at most one entry per pair. The rib is located by id anywhere in the
tree.

``update_progress`` / ``remove_progress`` / ``update_comment`` take the
store's ``apply`` callable and never invoke it when no sprint is selected, so
no undo snapshot or save is produced. ``set_progress`` / ``clear_progress`` /
``set_comment`` are the pure document-level forms.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import date, timedelta

from storymap.models import Document, ProgressEntry, RibItem
from storymap.store_base import Updater, _now_iso
from storymap.walk import map_ribs

Clock = Callable[[], str]
ApplyFn = Callable[[Updater], object]

# Receives the history (as a list) and the index of the matching entry, or -1.
# Returns the new history, or None to leave the rib untouched.
HistoryEdit = Callable[[list[ProgressEntry], int], list[ProgressEntry] | None]


def _edit_history(document: Document, rib_id: str, sprint_id: str, release_id: str | None, edit: HistoryEdit) -> Document:
    def on_rib(rib: RibItem) -> RibItem:
        if rib.id != rib_id:
            return rib
        history = list(rib.progress_history)
        existing = next(
            (i for i, p in enumerate(history) if p.sprint_id == sprint_id and p.release_id == release_id),
            -1,
        )
        result = edit(history, existing)
        if result is None:
            return rib
        return replace(rib, progress_history=tuple(result))

    return map_ribs(document, on_rib)


def set_progress(
    document: Document,
    rib_id: str,
    release_id: str | None,
    sprint_id: str,
    percent_complete: float | None,
    *,
    clock: Clock = _now_iso,
) -> Document:
    """Upsert the percentage for one (sprint, release) pair, keeping any comment."""

    def edit(history: list[ProgressEntry], idx: int) -> list[ProgressEntry]:
        now = clock()
        if idx >= 0:
            history[idx] = replace(history[idx], percent_complete=percent_complete, updated_at=now)
        else:
            history.append(ProgressEntry(sprint_id, release_id, percent_complete, "", now))
        return history

    return _edit_history(document, rib_id, sprint_id, release_id, edit)


def clear_progress(
    document: Document,
    rib_id: str,
    release_id: str | None,
    sprint_id: str,
    *,
    clock: Clock = _now_iso,
) -> Document:
    """Delete the entry, or only null its percentage when it carries a comment."""

    def edit(history: list[ProgressEntry], idx: int) -> list[ProgressEntry] | None:
        if idx < 0:
            return None
        if history[idx].comment:
            history[idx] = replace(history[idx], percent_complete=None, updated_at=clock())
        else:
            del history[idx]
        return history

    return _edit_history(document, rib_id, sprint_id, release_id, edit)


def set_comment(
    document: Document,
    rib_id: str,
    release_id: str | None,
    sprint_id: str,
    comment: str,
    *,
    clock: Clock = _now_iso,
) -> Document:
    """Upsert the comment for one (sprint, release) pair, keeping any percentage."""

    def edit(history: list[ProgressEntry], idx: int) -> list[ProgressEntry]:
        now = clock()
        if idx >= 0:
            history[idx] = replace(history[idx], comment=comment, updated_at=now)
        else:
            history.append(ProgressEntry(sprint_id, release_id, None, comment, now))
        return history

    return _edit_history(document, rib_id, sprint_id, release_id, edit)


def update_progress(
    apply: ApplyFn,
    rib_id: str,
    release_id: str | None,
    sprint_id: str | None,
    percent_complete: float | None,
    *,
    clock: Clock = _now_iso,
) -> None:
    if not sprint_id:
        return
    apply(lambda doc: set_progress(doc, rib_id, release_id, sprint_id, percent_complete, clock=clock))


def remove_progress(
    apply: ApplyFn,
    rib_id: str,
    release_id: str | None,
    sprint_id: str | None,
    *,
    clock: Clock = _now_iso,
) -> None:
    if not sprint_id:
        return
    apply(lambda doc: clear_progress(doc, rib_id, release_id, sprint_id, clock=clock))


def update_comment(
    apply: ApplyFn,
    rib_id: str,
    release_id: str | None,
    sprint_id: str | None,
    comment: str,
    *,
    clock: Clock = _now_iso,
) -> None:
    if not sprint_id:
        return
    apply(lambda doc: set_comment(doc, rib_id, release_id, sprint_id, comment, clock=clock))


def calculate_next_sprint_end_date(last_end_date: str | date | None, cadence_weeks: int) -> str | None:
    """Add ``cadence_weeks`` weeks to an ISO date; None when there is no previous date."""
    if not last_end_date:
        return None
    start = last_end_date if isinstance(last_end_date, date) else date.fromisoformat(last_end_date[:10])
    return (start + timedelta(days=cadence_weeks * 7)).isoformat()
