"""Tests for import validation of raw document data."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from storymap.models import Document
from storymap.validation import MAX_ID_LENGTH, MAX_THEMES, validate_document


@pytest.fixture
def data(doc: Document) -> dict[str, Any]:
    return dict(doc.to_dict())


def _rib(data: dict[str, Any]) -> dict[str, Any]:
    return data["themes"][0]["backboneItems"][0]["ribItems"][0]


class TestAccepts:
    def test_valid_document_passes_through(self, data: dict[str, Any]) -> None:
        assert validate_document(data) == data

    def test_does_not_mutate_input(self, data: dict[str, Any]) -> None:
        _rib(data)["releaseAllocations"][0]["percentage"] = 150
        data["junk"] = True
        before = copy.deepcopy(data)
        validate_document(data)
        assert data == before

    def test_minimal(self) -> None:
        result = validate_document({"id": "d", "name": "Minimal", "themes": []})
        assert result["releaseCardOrder"] == {}
        assert result["sizingCardOrder"] == {}


class TestSanitizes:
    def test_clamps_percentages(self, data: dict[str, Any]) -> None:
        _rib(data)["releaseAllocations"][0]["percentage"] = 150
        _rib(data)["progressHistory"][0]["percentComplete"] = -5
        result = validate_document(data)
        assert _rib(result)["releaseAllocations"][0]["percentage"] == 100
        assert _rib(result)["progressHistory"][0]["percentComplete"] == 0

    def test_clears_unknown_size(self, data: dict[str, Any]) -> None:
        _rib(data)["size"] = "GIGANTIC"
        assert _rib(validate_document(data))["size"] is None

    def test_strips_unknown_top_level_keys(self, data: dict[str, Any]) -> None:
        data["_exportedBy"] = "someone"
        assert "_exportedBy" not in validate_document(data)

    def test_drops_invalid_card_order_entries(self, data: dict[str, Any]) -> None:
        data["releaseCardOrder"] = {"rel-1": ["r1", 7, "", "a/b"], "rel-2": "not a list"}
        data["sizingCardOrder"] = "garbage"
        result = validate_document(data)
        assert result["releaseCardOrder"] == {"rel-1": ["r1"]}
        assert result["sizingCardOrder"] == {}


class TestRejects:
    @pytest.mark.parametrize(
        "bad_id",
        ["", "a/b", "a\\b", ".hidden", "x" * (MAX_ID_LENGTH + 1), 42, None],
    )
    def test_bad_document_id(self, data: dict[str, Any], bad_id: Any) -> None:
        data["id"] = bad_id
        with pytest.raises(ValueError, match="Document id"):
            validate_document(data)

    def test_not_an_object(self) -> None:
        with pytest.raises(ValueError, match="JSON object"):
            validate_document(["not", "a", "dict"])

    def test_missing_themes(self, data: dict[str, Any]) -> None:
        del data["themes"]
        with pytest.raises(ValueError, match="themes"):
            validate_document(data)

    def test_name_too_long(self, data: dict[str, Any]) -> None:
        data["name"] = "n" * 1001
        with pytest.raises(ValueError, match="name"):
            validate_document(data)

    def test_too_many_themes(self, data: dict[str, Any]) -> None:
        data["themes"] = [{"id": f"t{i}", "backboneItems": []} for i in range(MAX_THEMES + 1)]
        with pytest.raises(ValueError, match="Too many themes"):
            validate_document(data)

    def test_backbone_without_ribs_list(self, data: dict[str, Any]) -> None:
        data["themes"][0]["backboneItems"][0]["ribItems"] = None
        with pytest.raises(ValueError, match="ribItems"):
            validate_document(data)

    def test_bad_category(self, data: dict[str, Any]) -> None:
        _rib(data)["category"] = "optional"
        with pytest.raises(ValueError, match="category"):
            validate_document(data)

    def test_non_numeric_percentage(self, data: dict[str, Any]) -> None:
        _rib(data)["releaseAllocations"][0]["percentage"] = "sixty"
        with pytest.raises(ValueError, match="percentage"):
            validate_document(data)

    def test_bad_cadence(self, data: dict[str, Any]) -> None:
        data["sprintCadenceWeeks"] = 0
        with pytest.raises(ValueError, match="sprintCadenceWeeks"):
            validate_document(data)

    def test_release_without_name(self, data: dict[str, Any]) -> None:
        data["releases"][0]["name"] = ""
        with pytest.raises(ValueError, match="Release name"):
            validate_document(data)


class TestCollectionShapes:
    @pytest.mark.parametrize("key", ["releases", "sprints", "sizeMapping"])
    def test_non_list_collection_rejected(self, data: dict[str, Any], key: str) -> None:
        data[key] = "abc"
        with pytest.raises(ValueError, match=f"{key} must be a list"):
            validate_document(data)

    @pytest.mark.parametrize("key", ["releases", "sprints", "sizeMapping"])
    def test_null_collection_allowed(self, data: dict[str, Any], key: str) -> None:
        data[key] = None
        validate_document(data)

    def test_non_string_size_cleared(self, data: dict[str, Any]) -> None:
        _rib(data)["size"] = ["M"]
        assert _rib(validate_document(data))["size"] is None
