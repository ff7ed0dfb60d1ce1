"""Foundational TypedDicts for config and the document index."""

from __future__ import annotations

from typing import NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class ProjectConfig(TypedDict, total=False):
    """Shape of .storymap/config.json."""

    mode: str
    remote_url: str
    save_delay_ms: int
    poll_interval: float


class DocumentIndexEntry(TypedDict):
    """One row of the local ``index.json`` listing."""

    id: str
    name: str
    updatedAt: str
