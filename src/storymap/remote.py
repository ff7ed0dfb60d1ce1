"""HTTP-synchronized storage driver.

Talks to a document service exposing ``GET /documents/{id}`` and
``PUT /documents/{id}`` with the JSON wire shape. Remote changes are observed
by polling; the last ``updatedAt`` this driver wrote is remembered so its own
writes are not echoed back as remote changes.

Remote overwrite is last-writer-wins at the document level.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace

import httpx

from storymap.config import DEFAULT_POLL_INTERVAL
from storymap.models import Document
from storymap.storage import RemoteChangeCallback, SaveErrorCallback, Unsubscribe
from storymap.store_base import _now_iso

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10.0


class HttpStorageDriver:
    mode = "synchronized"

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.Client | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._client = client if client is not None else httpx.Client(base_url=base_url, timeout=_DEFAULT_TIMEOUT)
        self._owns_client = client is None
        self.poll_interval = poll_interval
        self._save_error_cb: SaveErrorCallback | None = None
        self._lock = threading.Lock()
        self._last_written: dict[str, str] = {}
        self._last_seen: dict[str, str] = {}
        self._puts_in_flight: dict[str, int] = {}
        self._puts_started: dict[str, int] = {}

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpStorageDriver:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _fetch(self, document_id: str) -> Document | None:
        response = self._client.get(f"/documents/{document_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return Document.from_dict(response.json())

    def load_document(self, document_id: str) -> Document | None:
        try:
            document = self._fetch(document_id)
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.warning("Failed to load remote document %s: %s", document_id, exc)
            return None
        if document is not None:
            with self._lock:
                self._last_seen[document_id] = document.updated_at
        return document

    def save_document(self, document: Document) -> None:
        stamped = replace(document, updated_at=_now_iso())
        with self._lock:
            self._last_written[document.id] = stamped.updated_at
            self._last_seen[document.id] = stamped.updated_at
            self._puts_started[document.id] = self._puts_started.get(document.id, 0) + 1
            self._puts_in_flight[document.id] = self._puts_in_flight.get(document.id, 0) + 1
        try:
            response = self._client.put(f"/documents/{document.id}", json=stamped.to_dict())
            response.raise_for_status()
        except (httpx.HTTPError, TypeError) as exc:
            logger.error("Failed to save remote document %s", document.id, extra={"error": str(exc)})
            if self._save_error_cb is not None:
                self._save_error_cb(exc)
        finally:
            with self._lock:
                self._puts_in_flight[document.id] -= 1

    def poll_once(self, document_id: str) -> Document | None:
        """Fetch the document and return it if it changed since we last saw it.

        Our own writes (matching ``updatedAt``) and fetch failures return None.
        So does any fetch that overlapped one of our PUTs: the server may have
        answered with the copy from before that write.
        """
        with self._lock:
            if self._puts_in_flight.get(document_id, 0):
                return None
            puts_before = self._puts_started.get(document_id, 0)
        try:
            document = self._fetch(document_id)
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.debug("Poll for %s failed: %s", document_id, exc)
            return None
        if document is None:
            return None
        with self._lock:
            if self._puts_in_flight.get(document_id, 0) or self._puts_started.get(document_id, 0) != puts_before:
                logger.debug("Discarding poll for %s that overlapped a save", document_id)
                return None
            if document.updated_at == self._last_written.get(document_id):
                return None
            if document.updated_at == self._last_seen.get(document_id):
                return None
            self._last_seen[document_id] = document.updated_at
        return document

    def subscribe_to_remote_changes(self, document_id: str, on_change: RemoteChangeCallback) -> Unsubscribe:
        stop = threading.Event()

        def run() -> None:
            while not stop.wait(self.poll_interval):
                document = self.poll_once(document_id)
                if document is not None and not stop.is_set():
                    logger.info("Remote change for document %s", document_id)
                    on_change(document)

        thread = threading.Thread(target=run, name=f"storymap-poll-{document_id}", daemon=True)
        thread.start()

        def unsubscribe() -> None:
            stop.set()

        return unsubscribe

    def flush_pending_saves(self) -> None:
        """PUTs are issued synchronously, so there is nothing to drain."""

    def on_save_error(self, callback: SaveErrorCallback | None) -> None:
        self._save_error_cb = callback
