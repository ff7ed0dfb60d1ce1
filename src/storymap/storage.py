"""Storage collaborators for the document store.

``StorageDriver`` is the contract the store depends on. ``LocalStorageDriver``
keeps one JSON file per document under ``<root>/documents/`` plus an
``index.json`` listing. Saves are fire-and-forget: failures are logged and
reported through the ``on_save_error`` callback, never raised.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Protocol

from storymap.config import DOCUMENTS_DIRNAME, INDEX_FILENAME, write_atomic
from storymap.models import Document
from storymap.store_base import _now_iso
from storymap.types.core import DocumentIndexEntry
from storymap.validation import is_valid_id

logger = logging.getLogger(__name__)

SaveErrorCallback = Callable[[Exception], None]
RemoteChangeCallback = Callable[[Document], None]
Unsubscribe = Callable[[], None]


class StorageDriver(Protocol):
    """Load/save/subscribe contract consumed by DocumentStore."""

    mode: str

    def load_document(self, document_id: str) -> Document | None: ...

    def save_document(self, document: Document) -> None: ...

    def subscribe_to_remote_changes(self, document_id: str, on_change: RemoteChangeCallback) -> Unsubscribe: ...

    def flush_pending_saves(self) -> None: ...

    def on_save_error(self, callback: SaveErrorCallback | None) -> None: ...


def _noop_unsubscribe() -> None:
    return None


def serialize_document(document: Document) -> str:
    return json.dumps(document.to_dict(), indent=2, sort_keys=True) + "\n"


class LocalStorageDriver:
    """File-backed driver. Writes are atomic (temp file + rename)."""

    mode = "local"

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._documents_dir = self.root / DOCUMENTS_DIRNAME
        self._index_path = self.root / INDEX_FILENAME
        self._save_error_cb: SaveErrorCallback | None = None
        self._index_lock = threading.Lock()

    def _document_path(self, document_id: str) -> Path:
        if not is_valid_id(document_id):
            msg = f"Invalid document id: {document_id!r}"
            raise ValueError(msg)
        return self._documents_dir / f"{document_id}.json"

    # -- Index ---------------------------------------------------------------

    def list_documents(self) -> list[DocumentIndexEntry]:
        if not self._index_path.exists():
            return []
        try:
            data = json.loads(self._index_path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read %s: %s", self._index_path, exc)
            return []
        if not isinstance(data, list):
            return []
        return [e for e in data if isinstance(e, dict) and "id" in e]

    def _update_index(self, document: Document) -> None:
        with self._index_lock:
            entries = [e for e in self.list_documents() if e["id"] != document.id]
            entries.append({"id": document.id, "name": document.name, "updatedAt": document.updated_at})
            write_atomic(self._index_path, json.dumps(entries, indent=2) + "\n")

    def _remove_from_index(self, document_id: str) -> None:
        with self._index_lock:
            entries = [e for e in self.list_documents() if e["id"] != document_id]
            write_atomic(self._index_path, json.dumps(entries, indent=2) + "\n")

    # -- Documents -----------------------------------------------------------

    def load_document(self, document_id: str) -> Document | None:
        path = self._document_path(document_id)
        if not path.exists():
            return None
        try:
            return Document.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, OSError, KeyError, TypeError) as exc:
            logger.warning("Failed to load document %s from %s: %s", document_id, path, exc)
            return None

    def save_document(self, document: Document) -> None:
        stamped = replace(document, updated_at=_now_iso())
        try:
            self._documents_dir.mkdir(parents=True, exist_ok=True)
            write_atomic(self._document_path(document.id), serialize_document(stamped))
            self._update_index(stamped)
        except (OSError, ValueError, TypeError) as exc:
            logger.error("Failed to save document %s", document.id, extra={"error": str(exc)})
            if self._save_error_cb is not None:
                self._save_error_cb(exc)

    def create_document(self, document: Document) -> None:
        self.save_document(document)

    def delete_document(self, document_id: str) -> bool:
        path = self._document_path(document_id)
        existed = path.exists()
        if existed:
            path.unlink()
        self._remove_from_index(document_id)
        return existed

    def subscribe_to_remote_changes(self, document_id: str, on_change: RemoteChangeCallback) -> Unsubscribe:
        """Local files have no remote writer; returns a no-op unsubscribe."""
        return _noop_unsubscribe

    def flush_pending_saves(self) -> None:
        """Saves are written synchronously, so there is nothing to drain."""

    def on_save_error(self, callback: SaveErrorCallback | None) -> None:
        self._save_error_cb = callback
