"""Structural validation for imported document data.

Pure functions over the raw wire dict, with no click or httpx dependencies.
Checks types, ranges, string lengths and collection sizes; clamps
percentages, clears unknown sizes, drops malformed card-order entries and
strips unknown top-level keys. Raises ``ValueError`` on anything it cannot
repair. The input is never modified.
"""

from __future__ import annotations

import copy
import math
from typing import Any

MAX_STRING = 1000
MAX_MEMO = 2000
MAX_ID_LENGTH = 128
MAX_THEMES = 100
MAX_BACKBONES = 200
MAX_RIBS = 5000
MAX_RELEASES = 100
MAX_SPRINTS = 200
MAX_ALLOCATIONS = 100
MAX_PROGRESS = 10000
MAX_SIZE_MAPPING = 20
MAX_SIZE_LABEL = 20

KNOWN_DOCUMENT_FIELDS: frozenset[str] = frozenset(
    {
        "id",
        "name",
        "description",
        "createdAt",
        "updatedAt",
        "schemaVersion",
        "sizeMapping",
        "releases",
        "sprints",
        "sprintCadenceWeeks",
        "themes",
        "releaseCardOrder",
        "sizingCardOrder",
    }
)


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)


def is_valid_id(value: Any) -> bool:
    """Non-empty, at most MAX_ID_LENGTH chars, and usable as a file name stem."""
    return (
        isinstance(value, str)
        and 0 < len(value) <= MAX_ID_LENGTH
        and "/" not in value
        and "\\" not in value
        and not value.startswith(".")
    )


def _is_valid_string(value: Any, max_len: int = MAX_STRING) -> bool:
    return isinstance(value, str) and 0 < len(value) <= max_len


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _check_optional_string(node: dict[str, Any], key: str, label: str, max_len: int = MAX_STRING) -> None:
    value = node.get(key)
    if value is not None:
        _require(isinstance(value, str) and len(value) <= max_len, f"{label} must be a string (max {max_len} chars)")


def _validate_ordered(items: list[dict[str, Any]], kind: str) -> set[str]:
    ids: set[str] = set()
    for item in items:
        _require(isinstance(item, dict), f"{kind} entries must be objects")
        _require(is_valid_id(item.get("id")), f"{kind} id must be a valid string")
        _require(_is_valid_string(item.get("name")), f"{kind} name must be a non-empty string")
        if item.get("order") is not None:
            _require(_is_number(item["order"]), f"{kind} order must be a number")
        ids.add(item["id"])
    return ids


def _validate_rib(rib: dict[str, Any], size_labels: set[str] | None) -> None:
    _require(isinstance(rib, dict), "Rib items must be objects")
    _require(is_valid_id(rib.get("id")), "Rib item id must be a valid string")
    label = rib.get("name") or rib["id"]
    _check_optional_string(rib, "name", "Rib item name")
    _check_optional_string(rib, "description", "Rib item description", MAX_MEMO)

    size = rib.get("size")
    if size is not None and not isinstance(size, str):
        rib["size"] = None
    elif size and size_labels is not None and size not in size_labels:
        rib["size"] = None
    if rib.get("category") is not None:
        _require(rib["category"] in ("core", "non-core"), f"Rib category must be 'core' or 'non-core' on {label!r}")

    allocations = rib.get("releaseAllocations")
    if allocations is not None:
        _require(isinstance(allocations, list), f"releaseAllocations must be a list on {label!r}")
        _require(len(allocations) <= MAX_ALLOCATIONS, f"Too many allocations on rib {label!r}")
        for alloc in allocations:
            _require(isinstance(alloc, dict), "Allocations must be objects")
            _require(is_valid_id(alloc.get("releaseId")), "Allocation releaseId must be a valid string")
            if alloc.get("percentage") is not None:
                _require(_is_number(alloc["percentage"]), "Allocation percentage must be a number")
                alloc["percentage"] = _clamp(alloc["percentage"], 0, 100)
            _check_optional_string(alloc, "memo", "Allocation memo", MAX_MEMO)

    history = rib.get("progressHistory")
    if history is not None:
        _require(isinstance(history, list), f"progressHistory must be a list on {label!r}")
        _require(len(history) <= MAX_PROGRESS, f"Too many progress entries on rib {label!r}")
        for entry in history:
            _require(isinstance(entry, dict), "Progress entries must be objects")
            _require(is_valid_id(entry.get("sprintId")), "Progress sprintId must be a valid string")
            if entry.get("releaseId") is not None:
                _require(is_valid_id(entry["releaseId"]), "Progress releaseId must be a valid string")
            if entry.get("percentComplete") is not None:
                _require(_is_number(entry["percentComplete"]), "Progress percentComplete must be a number")
                entry["percentComplete"] = _clamp(entry["percentComplete"], 0, 100)
            _check_optional_string(entry, "comment", "Progress comment", MAX_MEMO)


def _optional_list(data: dict[str, Any], key: str, label: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    _require(isinstance(value, list), f"{label} must be a list")
    return value


def _clean_card_order(value: Any) -> dict[str, list[str]]:
    if not isinstance(value, dict):
        return {}
    return {
        lane: [i for i in ids if is_valid_id(i)]
        for lane, ids in value.items()
        if isinstance(lane, str) and isinstance(ids, list)
    }


def validate_document(data: Any) -> dict[str, Any]:
    """Validate and sanitize a parsed document. Returns a cleaned copy."""
    _require(isinstance(data, dict), "Document must be a JSON object")
    data = copy.deepcopy(data)

    _require(is_valid_id(data.get("id")), f"Document id must be a non-empty string (max {MAX_ID_LENGTH} chars, no slashes or leading dot)")
    _require(_is_valid_string(data.get("name")), f"Document name must be a non-empty string (max {MAX_STRING} chars)")
    _require(isinstance(data.get("themes"), list), "Document themes must be a list")

    releases = _optional_list(data, "releases", "Document releases")
    _require(len(releases) <= MAX_RELEASES, f"Too many releases (max {MAX_RELEASES})")
    _validate_ordered(releases, "Release")

    sprints = _optional_list(data, "sprints", "Document sprints")
    _require(len(sprints) <= MAX_SPRINTS, f"Too many sprints (max {MAX_SPRINTS})")
    _validate_ordered(sprints, "Sprint")

    size_labels: set[str] | None = None
    if data.get("sizeMapping") is not None:
        size_mapping = _optional_list(data, "sizeMapping", "Document sizeMapping")
        _require(len(size_mapping) <= MAX_SIZE_MAPPING, f"Too many size mappings (max {MAX_SIZE_MAPPING})")
        for mapping in size_mapping:
            _require(isinstance(mapping, dict), "Size mappings must be objects")
            _require(
                _is_valid_string(mapping.get("label"), MAX_SIZE_LABEL),
                f"Size mapping label must be a string (max {MAX_SIZE_LABEL} chars)",
            )
            _require(
                _is_number(mapping.get("points")) and mapping["points"] >= 0,
                "Size mapping points must be a non-negative number",
            )
        size_labels = {m["label"] for m in size_mapping}

    themes: list[Any] = data["themes"]
    _require(len(themes) <= MAX_THEMES, f"Too many themes (max {MAX_THEMES})")
    total_ribs = 0
    for theme in themes:
        _require(isinstance(theme, dict), "Themes must be objects")
        _require(is_valid_id(theme.get("id")), "Theme id must be a valid string")
        _check_optional_string(theme, "name", "Theme name")
        backbones = theme.get("backboneItems")
        _require(isinstance(backbones, list), "Theme backboneItems must be a list")
        _require(
            len(backbones) <= MAX_BACKBONES,
            f"Too many backbones in theme {theme.get('name') or theme['id']!r} (max {MAX_BACKBONES})",
        )
        for backbone in backbones:
            _require(isinstance(backbone, dict), "Backbone items must be objects")
            _require(is_valid_id(backbone.get("id")), "Backbone id must be a valid string")
            _check_optional_string(backbone, "name", "Backbone name")
            ribs = backbone.get("ribItems")
            _require(isinstance(ribs, list), "Backbone ribItems must be a list")
            for rib in ribs:
                total_ribs += 1
                _require(total_ribs <= MAX_RIBS, f"Too many rib items (max {MAX_RIBS})")
                _validate_rib(rib, size_labels)

    data["releaseCardOrder"] = _clean_card_order(data.get("releaseCardOrder"))
    data["sizingCardOrder"] = _clean_card_order(data.get("sizingCardOrder"))

    cadence = data.get("sprintCadenceWeeks")
    if cadence is not None:
        _require(_is_number(cadence) and cadence > 0, "sprintCadenceWeeks must be a positive number")

    for key in list(data):
        if key not in KNOWN_DOCUMENT_FIELDS:
            del data[key]
    return data
