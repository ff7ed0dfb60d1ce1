"""Immutable value records for the story map document.

Every entity is a frozen dataclass and every child list is a tuple, so a
mutation can only produce new objects along the changed path while unchanged
siblings are reused by reference.

``to_dict()`` / ``from_dict()`` translate to and from the persisted wire shape
(nested camelCase JSON). Release and Sprint references inside allocations and
progress entries are plain id strings.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

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

Category = Literal["core", "non-core"]

VALID_CATEGORIES: frozenset[str] = frozenset({"core", "non-core"})

SCHEMA_VERSION = 1

# Card-order lane keys for ribs without a release / without a size.
UNASSIGNED_LANE = "unassigned"
UNSIZED_LANE = "unsized"

THEME_COLOR_KEYS: tuple[str, ...] = ("blue", "teal", "violet", "rose", "amber", "emerald", "indigo", "orange")

DEFAULT_SPRINT_CADENCE_WEEKS = 2

CardOrder = dict[str, tuple[str, ...]]


@dataclass(frozen=True)
class SizeMapping:
    label: str
    points: float = 0

    def to_dict(self) -> SizeMappingDict:
        return {"label": self.label, "points": self.points}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SizeMapping:
        return cls(label=data["label"], points=data.get("points", 0))


DEFAULT_SIZE_MAPPING: tuple[SizeMapping, ...] = (
    SizeMapping("XS", 5),
    SizeMapping("S", 10),
    SizeMapping("M", 20),
    SizeMapping("L", 40),
    SizeMapping("XL", 100),
    SizeMapping("XXL", 200),
    SizeMapping("XXXL", 300),
)


@dataclass(frozen=True)
class ReleaseAllocation:
    release_id: str
    percentage: float = 100
    memo: str = ""

    def to_dict(self) -> AllocationDict:
        return {"releaseId": self.release_id, "percentage": self.percentage, "memo": self.memo}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReleaseAllocation:
        return cls(
            release_id=data["releaseId"],
            percentage=data.get("percentage", 100),
            memo=data.get("memo") or "",
        )


@dataclass(frozen=True)
class ProgressEntry:
    """Per-sprint, per-release completion record. Identity is (sprint_id, release_id)."""

    sprint_id: str
    release_id: str | None = None
    percent_complete: float | None = None
    comment: str = ""
    updated_at: str = ""

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.sprint_id, self.release_id)

    def to_dict(self) -> ProgressEntryDict:
        return {
            "sprintId": self.sprint_id,
            "releaseId": self.release_id,
            "percentComplete": self.percent_complete,
            "comment": self.comment,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProgressEntry:
        return cls(
            sprint_id=data["sprintId"],
            release_id=data.get("releaseId"),
            percent_complete=data.get("percentComplete"),
            comment=data.get("comment") or "",
            updated_at=data.get("updatedAt") or "",
        )


@dataclass(frozen=True)
class RibItem:
    id: str
    name: str = "New Rib Item"
    order: int = 1
    description: str = ""
    size: str | None = None
    category: Category = "core"
    release_allocations: tuple[ReleaseAllocation, ...] = ()
    progress_history: tuple[ProgressEntry, ...] = ()

    def to_dict(self) -> RibDict:
        return {
            "id": self.id,
            "name": self.name,
            "order": self.order,
            "description": self.description,
            "size": self.size,
            "category": self.category,
            "releaseAllocations": [a.to_dict() for a in self.release_allocations],
            "progressHistory": [p.to_dict() for p in self.progress_history],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RibItem:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            order=data.get("order", 1),
            description=data.get("description") or "",
            size=data.get("size") or None,
            category=data.get("category") or "core",
            release_allocations=tuple(ReleaseAllocation.from_dict(a) for a in data.get("releaseAllocations") or ()),
            progress_history=tuple(ProgressEntry.from_dict(p) for p in data.get("progressHistory") or ()),
        )


@dataclass(frozen=True)
class BackboneItem:
    id: str
    name: str = "New Backbone Item"
    order: int = 1
    description: str = ""
    rib_items: tuple[RibItem, ...] = ()

    def to_dict(self) -> BackboneDict:
        return {
            "id": self.id,
            "name": self.name,
            "order": self.order,
            "description": self.description,
            "ribItems": [r.to_dict() for r in self.rib_items],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BackboneItem:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            order=data.get("order", 1),
            description=data.get("description") or "",
            rib_items=tuple(RibItem.from_dict(r) for r in data.get("ribItems") or ()),
        )


@dataclass(frozen=True)
class Theme:
    id: str
    name: str = "New Theme"
    order: int = 1
    color: str | None = None
    backbone_items: tuple[BackboneItem, ...] = ()

    def to_dict(self) -> ThemeDict:
        return {
            "id": self.id,
            "name": self.name,
            "order": self.order,
            "color": self.color,
            "backboneItems": [b.to_dict() for b in self.backbone_items],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Theme:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            order=data.get("order", 1),
            color=data.get("color"),
            backbone_items=tuple(BackboneItem.from_dict(b) for b in data.get("backboneItems") or ()),
        )


@dataclass(frozen=True)
class Release:
    id: str
    name: str
    order: int = 1
    description: str = ""
    target_date: str | None = None

    def to_dict(self) -> ReleaseDict:
        return {
            "id": self.id,
            "name": self.name,
            "order": self.order,
            "description": self.description,
            "targetDate": self.target_date,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Release:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            order=data.get("order", 1),
            description=data.get("description") or "",
            target_date=data.get("targetDate"),
        )


@dataclass(frozen=True)
class Sprint:
    id: str
    name: str
    order: int = 1
    end_date: str | None = None

    def to_dict(self) -> SprintDict:
        return {"id": self.id, "name": self.name, "order": self.order, "endDate": self.end_date}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Sprint:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            order=data.get("order", 1),
            end_date=data.get("endDate"),
        )


def _card_order_to_dict(card_order: Mapping[str, tuple[str, ...]]) -> dict[str, list[str]]:
    return {lane: list(ids) for lane, ids in card_order.items()}


def _card_order_from_dict(data: Mapping[str, Any] | None) -> CardOrder:
    if not data:
        return {}
    return {lane: tuple(ids) for lane, ids in data.items()}


@dataclass(frozen=True)
class Document:
    """Root aggregate. Owns every Theme, Release and Sprint."""

    id: str
    name: str
    description: str = ""
    themes: tuple[Theme, ...] = ()
    releases: tuple[Release, ...] = ()
    sprints: tuple[Sprint, ...] = ()
    size_mapping: tuple[SizeMapping, ...] = DEFAULT_SIZE_MAPPING
    sprint_cadence_weeks: int = DEFAULT_SPRINT_CADENCE_WEEKS
    release_card_order: CardOrder = field(default_factory=dict)
    sizing_card_order: CardOrder = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""
    schema_version: int = SCHEMA_VERSION

    def to_dict(self) -> DocumentDict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "schemaVersion": self.schema_version,
            "sizeMapping": [m.to_dict() for m in self.size_mapping],
            "sprintCadenceWeeks": self.sprint_cadence_weeks,
            "releases": [r.to_dict() for r in self.releases],
            "sprints": [s.to_dict() for s in self.sprints],
            "themes": [t.to_dict() for t in self.themes],
            "releaseCardOrder": _card_order_to_dict(self.release_card_order),
            "sizingCardOrder": _card_order_to_dict(self.sizing_card_order),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Document:
        size_mapping = data.get("sizeMapping")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description") or "",
            themes=tuple(Theme.from_dict(t) for t in data.get("themes") or ()),
            releases=tuple(Release.from_dict(r) for r in data.get("releases") or ()),
            sprints=tuple(Sprint.from_dict(s) for s in data.get("sprints") or ()),
            size_mapping=(
                tuple(SizeMapping.from_dict(m) for m in size_mapping) if size_mapping is not None else DEFAULT_SIZE_MAPPING
            ),
            sprint_cadence_weeks=data.get("sprintCadenceWeeks") or DEFAULT_SPRINT_CADENCE_WEEKS,
            release_card_order=_card_order_from_dict(data.get("releaseCardOrder")),
            sizing_card_order=_card_order_from_dict(data.get("sizingCardOrder")),
            created_at=data.get("createdAt") or "",
            updated_at=data.get("updatedAt") or "",
            schema_version=data.get("schemaVersion") or SCHEMA_VERSION,
        )
