"""JSONL logging for storymap.

Writes one JSON object per line to .storymap/storymap.log, rotated at 5MB
with 3 backups. Store operations are recorded with ``timed_operation`` so
each line carries the operation name, document id and elapsed time.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILENAME = "storymap.log"
_LOGGER_NAME = "storymap"
_ROTATE_AT_BYTES = 5 * 1024 * 1024
_KEEP_ROTATED = 3
_EXTRA_FIELDS = ("op", "document_id", "duration_ms", "error")
_configure_lock = threading.Lock()


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update({name: getattr(record, name) for name in _EXTRA_FIELDS if hasattr(record, name)})
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str)


def setup_logging(storymap_dir: Path, level: int = logging.INFO) -> logging.Logger:
    """Attach the rotating JSONL handler to the ``storymap`` logger.

    Safe to call repeatedly: a handler already writing to the same file is
    reused, and one pointing elsewhere is closed and replaced.
    """
    root = logging.getLogger(_LOGGER_NAME)
    log_file = os.path.abspath(str(storymap_dir / LOG_FILENAME))

    with _configure_lock:
        stale = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        if any(h.baseFilename == log_file for h in stale):
            return root
        for old in stale:
            root.removeHandler(old)
            old.close()

        file_handler = RotatingFileHandler(log_file, maxBytes=_ROTATE_AT_BYTES, backupCount=_KEEP_ROTATED)
        file_handler.setFormatter(_JsonFormatter())
        root.addHandler(file_handler)
        root.setLevel(level)
    return root


@contextmanager
def timed_operation(logger: logging.Logger, op: str, document_id: str) -> Iterator[None]:
    """Log one line for *op* on *document_id* when the block ends.

    A block that raises is logged at WARNING with the error text, and the
    exception propagates.
    """
    start = time.monotonic()
    try:
        yield
    except Exception as e:
        elapsed = round((time.monotonic() - start) * 1000, 1)
        logger.warning(
            "%s %s failed",
            op,
            document_id,
            extra={"op": op, "document_id": document_id, "duration_ms": elapsed, "error": str(e)},
        )
        raise
    elapsed = round((time.monotonic() - start) * 1000, 1)
    logger.info("%s %s", op, document_id, extra={"op": op, "document_id": document_id, "duration_ms": elapsed})
