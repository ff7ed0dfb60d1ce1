"""Shared utilities, types, and Protocol for DocumentStore mixins."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal, Protocol

if TYPE_CHECKING:
    from storymap.models import Document

Updater = Callable[["Document"], "Document"]
IdFactory = Callable[[], str]

StoreStatus = Literal["uninitialized", "loading", "ready"]


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class StoreMixinProtocol(Protocol):
    """Attributes and methods that mutation mixins access via self.

    Mixins inherit this Protocol so mypy can type-check ``self.apply`` and
    ``self.new_id`` without ``type: ignore`` on every call. The implementation
    is provided by DocumentStore at composition time.
    """

    new_id: IdFactory

    @property
    def document(self) -> Document | None: ...

    def apply(self, updater: Updater | Document) -> Document | None: ...
