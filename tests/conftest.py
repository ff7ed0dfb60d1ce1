"""Shared pytest fixtures for storymap tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from storymap.config import STORYMAP_DIR_NAME, write_config
from storymap.models import (
    BackboneItem,
    Document,
    ProgressEntry,
    Release,
    ReleaseAllocation,
    RibItem,
    Sprint,
    Theme,
)
from storymap.storage import RemoteChangeCallback, SaveErrorCallback, Unsubscribe
from storymap.store import DocumentStore


class SequentialIds:
    """Deterministic id factory: ``new-1``, ``new-2``, ..."""

    def __init__(self, prefix: str = "new") -> None:
        self.prefix = prefix
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"{self.prefix}-{self.count}"


class FakeTimer:
    def __init__(self, delay: float, fn: Callable[[], None]) -> None:
        self.delay = delay
        self.fn = fn
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def armed(self) -> bool:
        return self.started and not self.cancelled


class FakeTimers:
    """Timer factory that records timers and fires them on demand."""

    def __init__(self) -> None:
        self.created: list[FakeTimer] = []

    def __call__(self, delay: float, fn: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, fn)
        self.created.append(timer)
        return timer

    @property
    def armed(self) -> list[FakeTimer]:
        return [t for t in self.created if t.armed]

    def fire_all(self) -> int:
        fired = 0
        for timer in self.armed:
            timer.cancelled = True
            timer.fn()
            fired += 1
        return fired


class MemoryStorage:
    """In-memory storage driver that records every call."""

    mode = "local"

    def __init__(self, documents: dict[str, Document] | None = None) -> None:
        self.documents: dict[str, Document] = dict(documents or {})
        self.saved: list[Document] = []
        self.subscriptions: dict[str, RemoteChangeCallback] = {}
        self.unsubscribed: list[str] = []
        self.flushes = 0
        self.save_error_cb: SaveErrorCallback | None = None
        self.fail_with: Exception | None = None

    def load_document(self, document_id: str) -> Document | None:
        return self.documents.get(document_id)

    def save_document(self, document: Document) -> None:
        if self.fail_with is not None:
            if self.save_error_cb is not None:
                self.save_error_cb(self.fail_with)
            return
        self.saved.append(document)
        self.documents[document.id] = document

    def subscribe_to_remote_changes(self, document_id: str, on_change: RemoteChangeCallback) -> Unsubscribe:
        self.subscriptions[document_id] = on_change

        def unsubscribe() -> None:
            self.subscriptions.pop(document_id, None)
            self.unsubscribed.append(document_id)

        return unsubscribe

    def flush_pending_saves(self) -> None:
        self.flushes += 1

    def on_save_error(self, callback: SaveErrorCallback | None) -> None:
        self.save_error_cb = callback


def build_document() -> Document:
    """Two themes, three releases, two sprints and one heavily referenced rib.

    Rib ``r1`` (theme t1 / backbone b1) is allocated 60/40 to rel-1/rel-2 and
    has progress for (sp-1, rel-1), (sp-1, rel-2) and (sp-2, rel-1).
    """
    r1 = RibItem(
        id="r1",
        name="Checkout",
        order=1,
        size="M",
        release_allocations=(ReleaseAllocation("rel-1", 60), ReleaseAllocation("rel-2", 40)),
        progress_history=(
            ProgressEntry("sp-1", "rel-1", 20, "", "2026-01-01T00:00:00+00:00"),
            ProgressEntry("sp-1", "rel-2", 10, "", "2026-01-01T00:00:00+00:00"),
            ProgressEntry("sp-2", "rel-1", 50, "", "2026-01-15T00:00:00+00:00"),
        ),
    )
    r2 = RibItem(id="r2", name="Payments", order=2, size="S", release_allocations=(ReleaseAllocation("rel-2"),))
    r3 = RibItem(id="r3", name="Search", order=1, category="non-core")
    t1 = Theme(
        id="t1",
        name="Buying",
        order=1,
        color="blue",
        backbone_items=(
            BackboneItem(id="b1", name="Cart", order=1, rib_items=(r1, r2)),
            BackboneItem(id="b2", name="Browse", order=2, rib_items=(r3,)),
        ),
    )
    t2 = Theme(
        id="t2",
        name="Selling",
        order=2,
        color="teal",
        backbone_items=(BackboneItem(id="b3", name="Listings", order=1),),
    )
    return Document(
        id="doc-1",
        name="Shop",
        themes=(t1, t2),
        releases=(
            Release(id="rel-1", name="MVP", order=1),
            Release(id="rel-2", name="Beta", order=2),
            Release(id="rel-3", name="GA", order=3),
        ),
        sprints=(
            Sprint(id="sp-1", name="Sprint 1", order=1, end_date="2026-01-14"),
            Sprint(id="sp-2", name="Sprint 2", order=2, end_date="2026-01-28"),
        ),
        release_card_order={"rel-1": ("r1",), "rel-2": ("r2", "r1"), "unassigned": ("r3",)},
        sizing_card_order={"M": ("r1",), "S": ("r2",), "unsized": ("r3",)},
        created_at="2026-01-01T00:00:00+00:00",
        updated_at="2026-01-01T00:00:00+00:00",
    )


@pytest.fixture
def doc() -> Document:
    return build_document()


@pytest.fixture
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def storage(doc: Document) -> MemoryStorage:
    return MemoryStorage({doc.id: doc})


@pytest.fixture
def store(storage: MemoryStorage, ids: SequentialIds, timers: FakeTimers) -> Generator[DocumentStore, None, None]:
    """DocumentStore with the sample document loaded and fake timers."""
    s = DocumentStore(storage, new_id=ids, timer_factory=timers)
    s.load("doc-1")
    yield s
    s.close()


@pytest.fixture
def storymap_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a storymap project (.storymap/ with config).

    Returns the project root (parent of .storymap/).
    """
    storymap_dir = tmp_path / STORYMAP_DIR_NAME
    storymap_dir.mkdir()
    write_config(storymap_dir, {"mode": "local"})
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
