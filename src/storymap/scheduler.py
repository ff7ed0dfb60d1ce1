"""Debounced persistence.

Bursts of mutations are coalesced into one save after a quiet period. The
save always writes the latest scheduled document, not the one that armed the
timer. ``flush()`` drains a pending save synchronously for shutdown paths.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from storymap.models import Document

logger = logging.getLogger(__name__)

SAVE_DELAY_SECONDS = 0.5


class Cancelable(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Cancelable]


def daemon_timer(delay: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    return timer


class DebouncedSaver:
    """Coalesce ``schedule()`` calls into a single ``save`` per quiet interval.

    Saves never overlap: the timer thread and ``flush()`` both hold the save
    lock across ``save``, so documents reach storage in the order they were
    taken and ``flush()`` returns only after any in-flight save has finished.
    Lock order is save lock, then state lock.
    """

    def __init__(
        self,
        save: Callable[[Document], None],
        *,
        delay: float = SAVE_DELAY_SECONDS,
        timer_factory: TimerFactory = daemon_timer,
    ) -> None:
        self._save = save
        self.delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()
        self._timer: Cancelable | None = None
        self._pending: Document | None = None

    @property
    def pending(self) -> Document | None:
        return self._pending

    def schedule(self, document: Document) -> None:
        """Replace any armed timer with a new one that will save *document*."""
        with self._lock:
            self._pending = document
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.delay, self._fire)
            self._timer = timer
            timer.start()

    def _take_pending(self) -> Document | None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            document = self._pending
            self._pending = None
            return document

    def _fire(self) -> None:
        with self._save_lock:
            document = self._take_pending()
            if document is not None:
                self._save(document)

    def flush(self) -> bool:
        """Save a pending document now, bypassing the timer. Returns True if one was saved.

        Blocks until a save already running on the timer thread completes.
        """
        with self._save_lock:
            document = self._take_pending()
            if document is None:
                return False
            logger.debug("Flushing pending save for document %s", document.id)
            self._save(document)
            return True

    def cancel(self) -> None:
        """Drop any pending save without writing it."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None
