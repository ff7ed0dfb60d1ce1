"""Shared CLI helpers: project discovery, driver selection and store loading."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Literal

import click

from storymap.config import (
    DEFAULT_POLL_INTERVAL,
    STORYMAP_DIR_NAME,
    find_storymap_root,
    get_mode,
    read_config,
    save_delay_seconds,
)
from storymap.logging import setup_logging, timed_operation
from storymap.models import Document
from storymap.remote import HttpStorageDriver
from storymap.storage import LocalStorageDriver, StorageDriver
from storymap.store import DocumentStore
from storymap.tree import new_uuid
from storymap.walk import find_rib

logger = logging.getLogger(__name__)

NodeKind = Literal["theme", "backbone", "rib", "release", "sprint"]


def get_storymap_dir() -> Path:
    """Discover .storymap/ or exit with an error."""
    try:
        storymap_dir = find_storymap_root()
    except FileNotFoundError:
        click.echo(f"No {STORYMAP_DIR_NAME}/ found. Run 'storymap init' first.", err=True)
        sys.exit(1)
    setup_logging(storymap_dir)
    return storymap_dir


def open_storage(storymap_dir: Path) -> LocalStorageDriver | HttpStorageDriver:
    config = read_config(storymap_dir)
    if get_mode(storymap_dir) == "synchronized":
        return HttpStorageDriver(config["remote_url"], poll_interval=config.get("poll_interval", DEFAULT_POLL_INTERVAL))
    return LocalStorageDriver(storymap_dir)


def close_storage(storage: StorageDriver) -> None:
    if isinstance(storage, HttpStorageDriver):
        storage.close()


def _report_save_error(exc: Exception) -> None:
    click.echo(f"Error: failed to save: {exc}", err=True)


class IdRecorder:
    """Id factory that remembers what it handed out, so commands can report new ids."""

    def __init__(self) -> None:
        self.created: list[str] = []

    def __call__(self) -> str:
        new_id = new_uuid()
        self.created.append(new_id)
        return new_id

    @property
    def last(self) -> str | None:
        return self.created[-1] if self.created else None


@contextmanager
def open_store(
    document_id: str, *, op: str, new_id: IdRecorder | None = None
) -> Iterator[tuple[DocumentStore, Document]]:
    """Load *document_id* into a store, yield the store and the loaded document, then flush and close.

    Exits with status 1 when the document does not exist.
    """
    storymap_dir = get_storymap_dir()
    config = read_config(storymap_dir)
    storage = open_storage(storymap_dir)
    store = DocumentStore(
        storage,
        new_id=new_id or new_uuid,
        save_delay=save_delay_seconds(config),
        on_save_error=_report_save_error,
    )
    try:
        with timed_operation(logger, op, document_id):
            try:
                loaded = store.load(document_id)
            except ValueError as e:
                click.echo(f"Error: {e}", err=True)
                sys.exit(1)
            if loaded is None:
                click.echo(f"Not found: {document_id}", err=True)
                sys.exit(1)
            yield store, loaded
            store.flush()
    finally:
        store.close()
        close_storage(storage)


def find_node(document: Document, node_id: str) -> tuple[NodeKind, tuple[str, ...]] | None:
    """Locate any node by id. Returns its kind and the path of ids above it."""
    for theme in document.themes:
        if theme.id == node_id:
            return "theme", ()
        for backbone in theme.backbone_items:
            if backbone.id == node_id:
                return "backbone", (theme.id,)
    location = find_rib(document, node_id)
    if location is not None:
        return "rib", (location.theme.id, location.backbone.id)
    if any(r.id == node_id for r in document.releases):
        return "release", ()
    if any(s.id == node_id for s in document.sprints):
        return "sprint", ()
    return None
