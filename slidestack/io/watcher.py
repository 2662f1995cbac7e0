"""Filesystem watcher that reports changes in the browsed folder."""

import dataclasses
import enum
import logging
import os
import queue
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from slidestack.io.favourites import FAVOURITES_DB

log = logging.getLogger(__name__)


class FileChange(enum.Enum):
    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"


@dataclasses.dataclass(frozen=True)
class FileEvent:
    kind: FileChange
    path: Path


def _is_ignored(path: str) -> bool:
    name = Path(path).name
    # Our own database writes would otherwise report themselves
    return name.endswith(".tmp") or name.startswith(FAVOURITES_DB)


class ImageDirectoryEventHandler(FileSystemEventHandler):
    """Turns watchdog events into ``FileEvent``s on a queue.

    Runs on the observer thread; the queue is the only shared state.
    """
    def __init__(self, events: "queue.Queue[FileEvent]"):
        super().__init__()
        self.events = events

    def _put(self, kind: FileChange, path) -> None:
        path = os.fsdecode(path)
        if _is_ignored(path):
            return
        log.debug("Detected filesystem change: %s %s", kind.value, path)
        self.events.put(FileEvent(kind, Path(path)))

    def on_created(self, event):
        if not event.is_directory:
            self._put(FileChange.CREATED, event.src_path)

    def on_deleted(self, event):
        if not event.is_directory:
            self._put(FileChange.DELETED, event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self._put(FileChange.MODIFIED, event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self._put(FileChange.DELETED, event.src_path)
            self._put(FileChange.CREATED, event.dest_path)


class Watcher:
    """Manages the filesystem observer."""
    def __init__(self, directory: Path, recursive: bool = False):
        self.observer: Optional[Observer] = None
        self.events: "queue.Queue[FileEvent]" = queue.Queue()
        self.event_handler = ImageDirectoryEventHandler(self.events)
        self.directory = Path(directory)
        self.recursive = recursive

    def start(self):
        """Starts watching the directory."""
        if not self.directory.is_dir():
            log.warning(f"Cannot watch non-existent directory: {self.directory}")
            return

        if self.observer and self.observer.is_alive():
            return # Already running

        # Create a new observer instance every time, as it cannot be restarted
        self.observer = Observer()
        self.observer.schedule(self.event_handler, str(self.directory), recursive=self.recursive)
        self.observer.start()
        log.info(f"Started watching directory: {self.directory}")

    def stop(self):
        """Stops watching the directory."""
        if self.observer and self.observer.is_alive():
            self.observer.stop()
            self.observer.join()
            log.info("Stopped watching directory.")
            self.observer = None # Clear instance after stopping

    def is_alive(self) -> bool:
        """Checks if the watcher thread is alive."""
        return bool(self.observer and self.observer.is_alive())

    def drain(self):
        """Yields the events queued since the last call, without blocking."""
        while True:
            try:
                yield self.events.get_nowait()
            except queue.Empty:
                return
