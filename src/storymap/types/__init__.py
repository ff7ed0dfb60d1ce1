# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from models.py, store.py, or any mixin; this prevents circular imports.
"""Typed wire-format and config contracts for the storymap engine."""

from __future__ import annotations

from storymap.types.core import DocumentIndexEntry, ISOTimestamp, ProjectConfig
from storymap.types.wire import (
    AllocationDict,
    BackboneDict,
    DocumentDict,
    ProgressEntryDict,
    ReleaseDict,
    RibDict,
    SizeMappingDict,
    SprintDict,
    ThemeDict,
)

__all__ = [
    "AllocationDict",
    "BackboneDict",
    "DocumentDict",
    "DocumentIndexEntry",
    "ISOTimestamp",
    "ProgressEntryDict",
    "ProjectConfig",
    "ReleaseDict",
    "RibDict",
    "SizeMappingDict",
    "SprintDict",
    "ThemeDict",
]
