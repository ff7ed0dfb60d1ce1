"""Fixtures for CLI tests."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from storymap.cli import cli


@pytest.fixture
def cli_in_project(
    tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
) -> Generator[tuple[CliRunner, Path], None, None]:
    """Initialize a storymap project in tmp_path and return (runner, project_root)."""
    monkeypatch.chdir(tmp_path)
    result = cli_runner.invoke(cli, ["init"])
    assert result.exit_code == 0
    yield cli_runner, tmp_path
    logger = logging.getLogger("storymap")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def invoke_json(cli_in_project: tuple[CliRunner, Path]) -> Callable[..., dict]:
    """Run a command with --json and return the parsed output."""
    runner, _ = cli_in_project

    def run(*args: str) -> dict:
        result = runner.invoke(cli, [*args, "--json"])
        assert result.exit_code == 0, result.output
        return json.loads(result.output)

    return run


@pytest.fixture
def populated(invoke_json: Callable[..., dict]) -> dict[str, str]:
    """A document with one theme/backbone/rib, two releases and one sprint."""
    ids = {"doc": invoke_json("create", "Shop")["id"]}
    ids["theme"] = invoke_json("add-theme", ids["doc"])["id"]
    ids["backbone"] = invoke_json("add-backbone", ids["doc"], ids["theme"])["id"]
    ids["rib"] = invoke_json("add-rib", ids["doc"], ids["theme"], ids["backbone"])["id"]
    ids["rel1"] = invoke_json("add-release", ids["doc"])["id"]
    ids["rel2"] = invoke_json("add-release", ids["doc"])["id"]
    ids["sprint"] = invoke_json("add-sprint", ids["doc"])["id"]
    return ids
