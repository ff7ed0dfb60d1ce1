"""Storymap: an immutable story-map document engine with undo/redo and debounced persistence."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("storymap")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from storymap.models import (
    BackboneItem,
    Document,
    ProgressEntry,
    Release,
    ReleaseAllocation,
    RibItem,
    SizeMapping,
    Sprint,
    Theme,
)
from storymap.storage import LocalStorageDriver
from storymap.store import DocumentStore
from storymap.tree import Patch, Transform

__all__ = [
    "BackboneItem",
    "Document",
    "DocumentStore",
    "LocalStorageDriver",
    "Patch",
    "ProgressEntry",
    "Release",
    "ReleaseAllocation",
    "RibItem",
    "SizeMapping",
    "Sprint",
    "Theme",
    "Transform",
    "__version__",
]
