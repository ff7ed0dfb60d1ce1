"""Convention-based project discovery and configuration.

Each project has a ``.storymap/`` directory containing ``config.json``
(storage mode, remote URL, save delay) and a ``documents/`` directory with one
JSON file per document.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from storymap.types.core import ProjectConfig

logger = logging.getLogger(__name__)

STORYMAP_DIR_NAME = ".storymap"
CONFIG_FILENAME = "config.json"
DOCUMENTS_DIRNAME = "documents"
INDEX_FILENAME = "index.json"

VALID_MODES: frozenset[str] = frozenset({"local", "synchronized"})

DEFAULT_SAVE_DELAY_MS = 500
DEFAULT_POLL_INTERVAL = 2.0


def find_storymap_root(start: Path | None = None) -> Path:
    """Return the nearest .storymap/ directory at or above *start* (default cwd).

    Raises FileNotFoundError when no ancestor has one.
    """
    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        if (directory / STORYMAP_DIR_NAME).is_dir():
            return directory / STORYMAP_DIR_NAME
    msg = f"No {STORYMAP_DIR_NAME}/ directory in {origin} or its parents"
    raise FileNotFoundError(msg)


def read_config(storymap_dir: Path) -> ProjectConfig:
    """Read .storymap/config.json. Returns defaults if missing or corrupt."""
    defaults = ProjectConfig(mode="local", save_delay_ms=DEFAULT_SAVE_DELAY_MS, poll_interval=DEFAULT_POLL_INTERVAL)
    config_path = storymap_dir / CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        loaded: ProjectConfig = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults
    if not isinstance(loaded, dict):
        logger.warning("Ignoring non-object config in %s", config_path)
        return defaults
    return {**defaults, **loaded}


def write_config(storymap_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    write_atomic(storymap_dir / CONFIG_FILENAME, json.dumps(config, indent=2, sort_keys=True) + "\n")


def get_mode(storymap_dir: Path) -> str:
    """Return the storage mode for a project. Defaults to 'local'."""
    config = read_config(storymap_dir)
    mode: str = config.get("mode", "local")
    if mode not in VALID_MODES:
        logger.warning("Unknown mode '%s' in config, falling back to 'local'", mode)
        return "local"
    if mode == "synchronized" and not config.get("remote_url"):
        logger.warning("Mode 'synchronized' needs remote_url, falling back to 'local'")
        return "local"
    return mode


def save_delay_seconds(config: ProjectConfig) -> float:
    delay_ms = config.get("save_delay_ms", DEFAULT_SAVE_DELAY_MS)
    if not isinstance(delay_ms, int | float) or delay_ms < 0:
        logger.warning("Invalid save_delay_ms %r, using %d", delay_ms, DEFAULT_SAVE_DELAY_MS)
        delay_ms = DEFAULT_SAVE_DELAY_MS
    return delay_ms / 1000


def write_atomic(path: Path, content: str) -> None:
    """Replace *path* with *content* in one step.

    The temp file name carries the pid so a CLI process and a polling thread
    in another process never share one.
    """
    staging = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        staging.write_text(content, encoding="utf-8")
        os.replace(staging, path)
    except BaseException:
        with contextlib.suppress(OSError):
            staging.unlink()
        raise
