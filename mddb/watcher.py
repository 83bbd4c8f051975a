"""
File system watcher for revalidation.

Editors tend to write a file several times per save; events are collected
per path and handed to the callback only once the path has been quiet for
the debounce window.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

RELEVANT_EXTENSIONS = {".md"}


class DocumentEventHandler(FileSystemEventHandler):
    """
    Collects changed Markdown paths and flushes them in debounced batches.

    Behavior:
    - Only ``.md`` files outside hidden directories are tracked
    - Repeated events for one path collapse into a single entry
    - The callback receives the sorted list of paths that settled
    """

    def __init__(
        self,
        root: Path,
        on_change: Callable[[list[Path]], None],
        debounce_ms: int = 300,
    ):
        super().__init__()
        self.root = root
        self.on_change = on_change
        self.debounce_seconds = debounce_ms / 1000.0

        # path -> time of the most recent event
        self.pending: dict[Path, float] = {}

    def _is_relevant(self, path: str) -> bool:
        p = Path(path)
        if p.suffix.lower() not in RELEVANT_EXTENSIONS:
            return False
        try:
            parts = p.relative_to(self.root).parts
        except ValueError:
            parts = p.parts
        return not any(part.startswith(".") for part in parts)

    def _touch(self, path: str) -> None:
        if self._is_relevant(path):
            self.pending[Path(path)] = time.monotonic()

    def flush_pending(self, now: float | None = None) -> list[Path]:
        """Emit the paths whose debounce window has passed."""
        now = time.monotonic() if now is None else now
        ready = sorted(p for p, ts in self.pending.items() if now - ts >= self.debounce_seconds)
        for path in ready:
            del self.pending[path]
        if ready:
            logger.debug("Flushing %d changed path(s)", len(ready))
            self.on_change(ready)
        return ready

    def on_created(self, event: FileCreatedEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_modified(self, event: FileModifiedEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        self._touch(event.src_path)
        self._touch(event.dest_path)


def watch_directory(
    root: Path,
    on_change: Callable[[list[Path]], None],
    debounce_ms: int = 300,
    recursive: bool = True,
) -> tuple[Observer, DocumentEventHandler]:
    """
    Start watching ``root``.

    Returns:
        The started observer and its handler; stop the observer when done
    """
    handler = DocumentEventHandler(root, on_change, debounce_ms)
    observer = Observer()
    observer.schedule(handler, str(root), recursive=recursive)
    observer.start()
    return observer, handler


def run_watch_loop(
    root: Path,
    on_change: Callable[[list[Path]], None],
    debounce_ms: int = 300,
) -> None:
    """
    Block on the observer, flushing settled paths, until Ctrl+C.
    """
    observer, handler = watch_directory(root, on_change, debounce_ms)
    interval = min(0.5, max(handler.debounce_seconds / 2, 0.05))
    try:
        while True:
            time.sleep(interval)
            handler.flush_pending()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
