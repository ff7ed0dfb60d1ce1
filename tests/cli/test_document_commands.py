"""CLI tests for project and document commands (init, create, list, show, export, import, duplicate)."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from storymap.cli import cli
from storymap.config import STORYMAP_DIR_NAME, read_config


class TestInit:
    def test_creates_storymap_dir(self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert (tmp_path / STORYMAP_DIR_NAME).is_dir()
        assert read_config(tmp_path / STORYMAP_DIR_NAME)["mode"] == "local"

    def test_synchronized_requires_url(
        self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["init", "--mode", "synchronized"])
        assert result.exit_code == 1
        assert not (tmp_path / STORYMAP_DIR_NAME).exists()

    def test_synchronized_with_url(
        self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["init", "--mode", "synchronized", "--remote-url", "http://maps.test"])
        assert result.exit_code == 0
        config = read_config(tmp_path / STORYMAP_DIR_NAME)
        assert config["remote_url"] == "http://maps.test"

    def test_already_exists(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "already exists" in result.output

    def test_commands_outside_project(
        self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["list"])
        assert result.exit_code == 1
        assert "storymap init" in result.output


class TestCreateAndList:
    def test_create(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        result = runner.invoke(cli, ["create", "Checkout", "-d", "Payments work"])
        assert result.exit_code == 0
        assert result.output.startswith("Created ")
        document_id = result.output.split(":")[0].replace("Created ", "").strip()
        assert (root / STORYMAP_DIR_NAME / "documents" / f"{document_id}.json").exists()

    def test_list(self, cli_in_project: tuple[CliRunner, Path], invoke_json: Callable[..., dict]) -> None:
        runner, _ = cli_in_project
        created = invoke_json("create", "Roadmap")
        result = runner.invoke(cli, ["list", "--json"])
        assert result.exit_code == 0
        entries = json.loads(result.output)
        assert [e["id"] for e in entries] == [created["id"]]

    def test_list_empty(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["list"])
        assert "No documents." in result.output


class TestShow:
    def test_outline(self, cli_in_project: tuple[CliRunner, Path], populated: dict[str, str]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["show", populated["doc"]])
        assert result.exit_code == 0
        assert "Shop" in result.output
        assert "New Theme" in result.output
        assert "New Rib Item" in result.output
        assert "Release 1" in result.output
        assert "Sprint 1" in result.output

    def test_json(self, cli_in_project: tuple[CliRunner, Path], populated: dict[str, str]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["show", populated["doc"], "--json"])
        data = json.loads(result.output)
        assert data["themes"][0]["id"] == populated["theme"]
        assert [r["id"] for r in data["releases"]] == [populated["rel1"], populated["rel2"]]

    def test_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["show", "ghost"])
        assert result.exit_code == 1
        assert "Not found" in result.output

    def test_invalid_id(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["show", "../etc"])
        assert result.exit_code == 1
        assert "Invalid document id" in result.output


class TestExportImport:
    def test_export_to_file_and_reimport_as_copy(
        self, cli_in_project: tuple[CliRunner, Path], populated: dict[str, str], invoke_json: Callable[..., dict]
    ) -> None:
        runner, root = cli_in_project
        out = root / "export.json"
        result = runner.invoke(cli, ["export", populated["doc"], "-o", str(out)])
        assert result.exit_code == 0
        assert json.loads(out.read_text())["id"] == populated["doc"]

        result = runner.invoke(cli, ["import", str(out)])
        assert result.exit_code == 1
        assert "already exists" in result.output

        imported = invoke_json("import", str(out), "--as-copy")
        assert imported["id"] != populated["doc"]
        assert imported["name"] == "Shop (Copy)"

    def test_export_to_stdout(self, cli_in_project: tuple[CliRunner, Path], populated: dict[str, str]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["export", populated["doc"]])
        assert json.loads(result.output)["name"] == "Shop"

    def test_import_new_document(self, cli_in_project: tuple[CliRunner, Path], invoke_json: Callable[..., dict]) -> None:
        runner, root = cli_in_project
        path = root / "incoming.json"
        path.write_text(json.dumps({"id": "incoming", "name": "Incoming", "themes": []}))
        assert invoke_json("import", str(path)) == {"id": "incoming", "name": "Incoming"}
        assert runner.invoke(cli, ["show", "incoming"]).exit_code == 0

    def test_import_invalid(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        path = root / "bad.json"
        path.write_text(json.dumps({"id": "a/b", "name": "Bad", "themes": []}))
        result = runner.invoke(cli, ["import", str(path)])
        assert result.exit_code == 1
        assert "Document id" in result.output


class TestDuplicate:
    def test_duplicate(
        self, cli_in_project: tuple[CliRunner, Path], populated: dict[str, str], invoke_json: Callable[..., dict]
    ) -> None:
        runner, _ = cli_in_project
        copy = invoke_json("duplicate", populated["doc"])
        assert copy["name"] == "Shop (Copy)"
        shown = json.loads(runner.invoke(cli, ["show", copy["id"], "--json"]).output)
        assert shown["themes"][0]["id"] != populated["theme"]
