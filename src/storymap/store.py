"""Document store with whole-document undo/redo and debounced persistence.

Single source of truth for the currently loaded document. Every edit goes
through ``apply()``: the previous document is pushed on a bounded undo stack,
the redo stack is cleared, the pointer is replaced, and a save is scheduled.
Because documents are immutable, snapshots are just references, and readers
always see either the whole old or the whole new document.

Remote-change notifications replace the document without touching either
stack. Local undo after a remote overwrite can therefore restore a state the
remote writer never produced; this is a known limitation.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from storymap.scheduler import SAVE_DELAY_SECONDS, DebouncedSaver, TimerFactory, daemon_timer
from storymap.store_base import IdFactory, StoreStatus, Updater
from storymap.store_progress import ProgressMutationsMixin
from storymap.store_tree import TreeMutationsMixin
from storymap.tree import new_uuid

if TYPE_CHECKING:
    from storymap.models import Document
    from storymap.storage import SaveErrorCallback, StorageDriver, Unsubscribe

logger = logging.getLogger(__name__)

MAX_UNDO = 30


class DocumentStore(TreeMutationsMixin, ProgressMutationsMixin):
    """Holds one document, its undo/redo history, and its save schedule."""

    def __init__(
        self,
        storage: StorageDriver,
        *,
        new_id: IdFactory = new_uuid,
        save_delay: float = SAVE_DELAY_SECONDS,
        timer_factory: TimerFactory = daemon_timer,
        undo_limit: int = MAX_UNDO,
        on_save_error: SaveErrorCallback | None = None,
    ) -> None:
        self.storage = storage
        self.new_id = new_id
        self._lock = threading.RLock()
        self._document: Document | None = None
        self._document_id: str | None = None
        self._status: StoreStatus = "uninitialized"
        self._last_saved_at: datetime | None = None
        self._undo: deque[Document] = deque(maxlen=undo_limit)
        self._redo: list[Document] = []
        self._load_cursor = 0
        self._unsubscribe: Unsubscribe | None = None
        self._saver = DebouncedSaver(self._persist, delay=save_delay, timer_factory=timer_factory)
        self._on_save_error = on_save_error
        self._save_failed = False
        storage.on_save_error(self._handle_save_error)

    def __enter__(self) -> DocumentStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- State ---------------------------------------------------------------

    @property
    def document(self) -> Document | None:
        return self._document

    @property
    def document_id(self) -> str | None:
        return self._document_id

    @property
    def status(self) -> StoreStatus:
        return self._status

    @property
    def loading(self) -> bool:
        return self._status == "loading"

    @property
    def last_saved_at(self) -> datetime | None:
        return self._last_saved_at

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    # -- Loading -------------------------------------------------------------

    def begin_load(self, document_id: str) -> int:
        """Enter the loading state for *document_id* and return its request cursor.

        Any pending save for the previous document is flushed first and its
        remote subscription dropped. The flush runs outside the store lock
        because a timer-thread save takes that lock to record ``last_saved_at``.
        """
        self._saver.flush()
        with self._lock:
            self._drop_subscription()
            self._load_cursor += 1
            self._document_id = document_id
            self._status = "loading"
            return self._load_cursor

    def finish_load(self, cursor: int, document: Document | None) -> bool:
        """Install a loaded document unless a newer load superseded *cursor*.

        Returns False (and changes nothing) for a stale result.
        """
        with self._lock:
            if cursor != self._load_cursor:
                logger.debug("Ignoring stale load result (cursor %d, current %d)", cursor, self._load_cursor)
                return False
            self._document = document
            self._undo.clear()
            self._redo.clear()
            self._status = "ready"
            self._last_saved_at = _parse_timestamp(document.updated_at) if document is not None else None
            document_id = self._document_id
        if document is None:
            logger.warning("Document %s not found", document_id)
        elif document_id is not None:
            self._subscribe(document_id)
        return True

    def load(self, document_id: str) -> Document | None:
        cursor = self.begin_load(document_id)
        document = self.storage.load_document(document_id)
        self.finish_load(cursor, document)
        return self._document

    def _subscribe(self, document_id: str) -> None:
        unsubscribe = self.storage.subscribe_to_remote_changes(document_id, self.receive_remote_change)
        with self._lock:
            self._unsubscribe = unsubscribe

    def _drop_subscription(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # -- Mutation ------------------------------------------------------------

    def apply(self, updater: Updater | Document) -> Document | None:
        """Replace the document with ``updater(current)`` (or *updater* itself).

        No-op when nothing is loaded, or when the result is the current
        document object (a mutator that found nothing to change).
        """
        with self._lock:
            current = self._document
            if current is None:
                return None
            next_document = updater(current) if callable(updater) else updater
            if next_document is current:
                return current
            self._undo.append(current)
            self._redo.clear()
            self._document = next_document
            self._saver.schedule(next_document)
            return next_document

    def undo(self) -> Document | None:
        with self._lock:
            if self._document is None or not self._undo:
                return self._document
            previous = self._undo.pop()
            self._redo.append(self._document)
            self._document = previous
            self._saver.schedule(previous)
            return previous

    def redo(self) -> Document | None:
        with self._lock:
            if self._document is None or not self._redo:
                return self._document
            following = self._redo.pop()
            self._undo.append(self._document)
            self._document = following
            self._saver.schedule(following)
            return following

    def receive_remote_change(self, document: Document) -> None:
        """Adopt a document written elsewhere. Undo/redo history is left as-is."""
        with self._lock:
            if document.id != self._document_id:
                return
            self._saver.cancel()
            self._document = document
            self._last_saved_at = _parse_timestamp(document.updated_at) or datetime.now(UTC)
        logger.info("Applied remote change to document %s", document.id)

    # -- Persistence ---------------------------------------------------------

    def _handle_save_error(self, exc: Exception) -> None:
        self._save_failed = True
        if self._on_save_error is not None:
            self._on_save_error(exc)

    def _persist(self, document: Document) -> None:
        # Runs under the saver's save lock, so calls never overlap.
        self._save_failed = False
        self.storage.save_document(document)
        if self._save_failed:
            return
        with self._lock:
            self._last_saved_at = datetime.now(UTC)

    def flush(self) -> None:
        """Write any pending save now. Call on shutdown or before navigating away."""
        self._saver.flush()
        self.storage.flush_pending_saves()

    def close(self) -> None:
        self.flush()
        with self._lock:
            self._drop_subscription()


def _parse_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None
