"""TypedDicts for the persisted document shape returned by ``to_dict()``.

Keys are camelCase because the same JSON is exchanged with remote backends.
"""

from __future__ import annotations

from typing import TypedDict


class SizeMappingDict(TypedDict):
    label: str
    points: float


class AllocationDict(TypedDict):
    releaseId: str
    percentage: float
    memo: str


class ProgressEntryDict(TypedDict):
    sprintId: str
    releaseId: str | None
    percentComplete: float | None
    comment: str
    updatedAt: str


class RibDict(TypedDict):
    id: str
    name: str
    order: int
    description: str
    size: str | None
    category: str
    releaseAllocations: list[AllocationDict]
    progressHistory: list[ProgressEntryDict]


class BackboneDict(TypedDict):
    id: str
    name: str
    order: int
    description: str
    ribItems: list[RibDict]


class ThemeDict(TypedDict):
    id: str
    name: str
    order: int
    color: str | None
    backboneItems: list[BackboneDict]


class ReleaseDict(TypedDict):
    id: str
    name: str
    order: int
    description: str
    targetDate: str | None


class SprintDict(TypedDict):
    id: str
    name: str
    order: int
    endDate: str | None


class DocumentDict(TypedDict):
    id: str
    name: str
    description: str
    createdAt: str
    updatedAt: str
    schemaVersion: int
    sizeMapping: list[SizeMappingDict]
    sprintCadenceWeeks: int
    releases: list[ReleaseDict]
    sprints: list[SprintDict]
    themes: list[ThemeDict]
    releaseCardOrder: dict[str, list[str]]
    sizingCardOrder: dict[str, list[str]]
