"""Main application controller for SlideStack."""

import argparse
import dataclasses
import logging
import random
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

from slidestack.config import config
from slidestack.logging_setup import setup_logging
from slidestack.models import DecodedImage, DecodeResult, FrameSource
from slidestack.imaging.cache import DecodeCache
from slidestack.io.collector import read_playlist, supported_extensions
from slidestack.io.favourites import FavouritesStore, StoreError, StoreState
from slidestack.io.watcher import FileChange, FileEvent, Watcher
from slidestack.scrubber import Scrubber

log = logging.getLogger(__name__)

RECYCLE_BIN_NAME = "image recycle bin"


@dataclasses.dataclass
class DeletedImage:
    original: Path
    trashed: Path
    index: int
    was_favourite: bool = False


def _unique_destination(directory: Path, name: str) -> Path:
    dest = directory / name
    stem, suffix = Path(name).stem, Path(name).suffix
    n = 1
    while dest.exists():
        dest = directory / f"{stem} ({n}){suffix}"
        n += 1
    return dest


class SessionController:
    """Owns the scrubber, decode cache and favourites store of one open
    folder, and reacts to decode results and filesystem events.

    Single-threaded: decode results and watcher events must be handed to it
    from the thread that drives navigation.
    """

    def __init__(
        self,
        cache_size: Optional[int] = None,
        wrap: Optional[bool] = None,
        recursive: Optional[bool] = None,
        randomize: Optional[bool] = None,
        every_n: Optional[int] = None,
        watch: Optional[bool] = None,
        rng: Optional[random.Random] = None,
        slideshow_delay: Optional[float] = None,
        clock=time.monotonic,
    ):
        if cache_size is None:
            cache_size = config.getint('core', 'cache_size', 20)
        self.wrap = config.getboolean('core', 'wrap_folder', True) if wrap is None else wrap
        self.recursive = config.getboolean('core', 'recursive', True) if recursive is None else recursive
        self.randomize = config.getboolean('core', 'randomize', False) if randomize is None else randomize
        self.every_n = config.getint('core', 'add_fav_every_n', 0) if every_n is None else every_n
        self.watch = config.getboolean('watcher', 'enabled', True) if watch is None else watch
        self.rng = rng
        if slideshow_delay is None:
            slideshow_delay = config.getfloat('core', 'slideshow_delay', 3.0)
        self.slideshow_delay = max(slideshow_delay, 0.0)
        self.clock = clock
        self.status_message: str = ""

        if self.every_n < 0:
            log.warning("Ignoring negative add_fav_every_n %d", self.every_n)
            self.update_status_message(f"Invalid favourite interval {self.every_n}, favourites not interleaved")
            self.every_n = 0

        # -- Backend Components --
        self.scrubber = Scrubber(wrap=self.wrap)
        self.image_cache = DecodeCache(cache_size)
        self.store: Optional[FavouritesStore] = None
        self.watcher: Optional[Watcher] = None

        self.folder: Optional[Path] = None
        self.current_path: Optional[Path] = None
        self.current_image: Optional[DecodedImage] = None

        # -- Delete/Undo State --
        self.delete_history: List[DeletedImage] = []

        # -- Slideshow State --
        self.slideshow_active = False
        self.slideshow_started: float = 0.0

    # --- Opening ---

    def open_path(self, path: Path) -> Optional[Path]:
        """Opens a folder, a file inside a folder, or a ``.txt`` playlist."""
        path = Path(path).absolute()
        self._close_folder()

        if path.is_file() and path.suffix.lower() == ".txt":
            self.folder = path.parent
            self.store = FavouritesStore(self.folder)
            try:
                entries = read_playlist(path)
            except OSError:
                log.exception("Failed to read playlist %s", path)
                entries = []
            self.scrubber = Scrubber.from_entries(entries, wrap=self.wrap)
            self.scrubber.favourites = self._load_favourites()
        else:
            self.folder = path if path.is_dir() else path.parent
            self.store = FavouritesStore(self.folder)
            self.scrubber = Scrubber.from_folder(
                path,
                favourites=self._load_favourites(),
                randomize=self.randomize,
                recursive=self.recursive,
                every_n=self.every_n,
                wrap=self.wrap,
                skip_dirs={RECYCLE_BIN_NAME},
                rng=self.rng,
            )
        self.scrubber.randomize = self.randomize
        self.scrubber.rng = self.rng

        if self.scrubber:
            self.update_status_message(
                f"files: {len(self.scrubber)}, favourites: {len(self.scrubber.favourites)}"
            )
        else:
            self.update_status_message(f"No supported image files in {self.folder}")

        if self.watch:
            self.watcher = Watcher(self.folder, recursive=self.recursive)
            self.watcher.start()
        return self._show(self.scrubber.current())

    def _load_favourites(self) -> set:
        if not FavouritesStore.exists_for(self.folder):
            return set()
        try:
            return self.store.get_all()
        except StoreError:
            log.exception("Failed to load favourites for %s", self.folder)
            return set()

    def _close_folder(self):
        if self.watcher:
            self.watcher.stop()
            self.watcher = None
        if self.store and self.store.state is not StoreState.CLOSED:
            self.store.close()
        self.store = None
        self.delete_history = []

    # --- Navigation ---

    def _show(self, path: Optional[Path]) -> Optional[Path]:
        self.current_path = path
        self.current_image = self.image_cache.get(path) if path is not None else None
        return path

    def next_image(self) -> Optional[Path]:
        return self._show(self.scrubber.next())

    def prev_image(self) -> Optional[Path]:
        return self._show(self.scrubber.prev())

    def jump_to_image(self, index: int) -> Optional[Path]:
        """Jump to a specific image by index (0-based). Invalid indexes keep
        the current image."""
        if not 0 <= index < len(self.scrubber):
            self.update_status_message("Invalid image number")
        return self._show(self.scrubber.goto(index))

    # --- Slideshow ---

    def toggle_slideshow(self) -> bool:
        self.slideshow_active = not self.slideshow_active
        self.slideshow_started = self.clock()
        self.update_status_message("Slideshow on" if self.slideshow_active else "Slideshow off")
        return self.slideshow_active

    def tick(self, now: Optional[float] = None) -> Optional[Path]:
        """Advances the slideshow once the delay has passed.

        Waits while the current image is still being decoded, so a slow
        decode never gets skipped. Returns the new path, or None if the
        slideshow did not move.
        """
        if not self.slideshow_active or self.needs_decode():
            return None
        now = self.clock() if now is None else now
        if now - self.slideshow_started < self.slideshow_delay:
            return None
        self.slideshow_started = now
        return self.next_image()

    def cached_image(self, path: Path) -> Optional[DecodedImage]:
        return self.image_cache.get(path)

    def needs_decode(self) -> bool:
        """True when the current image has to be requested from the decoder."""
        return self.current_path is not None and self.current_image is None

    # --- Decoding ---

    def on_image_decoded(self, result: DecodeResult) -> bool:
        """Accepts a decode result for the current image.

        Results for any other path arrived too late and are dropped. Only
        still images are cached; animation frames are shown but not kept.
        """
        if result.path != self.current_path:
            log.debug("Discarding stale decode result for %s", result.path)
            return False
        if result.source is FrameSource.STILL:
            self.image_cache.insert(result.path, result.image)
        self.current_image = result.image
        return True

    # --- Favourites ---

    def is_current_favourite(self) -> bool:
        return self.scrubber.is_favourite(self.current_path)

    def toggle_favourite(self) -> bool:
        """Toggles the current image's favourite flag and saves it.

        The in-memory set is updated even if the database cannot be written,
        so browsing keeps working without persistence.
        """
        path = self.current_path
        if path is None:
            self.update_status_message("No image to favourite.")
            return False

        is_favourite = self.scrubber.toggle_favourite(path)
        if self.folder is None or not path.is_relative_to(self.folder):
            log.warning("%s is outside %s, favourite not saved", path, self.folder)
        else:
            try:
                if is_favourite:
                    self.store.insert(path)
                else:
                    self.store.delete(path)
            except StoreError as e:
                log.error("Failed to save favourite for %s: %s", path, e)
                self.update_status_message(f"Could not save favourite: {e}")
                return is_favourite

        self.update_status_message("Added to favourites" if is_favourite else "Removed from favourites")
        log.info("Toggled favourite to %s for %s", is_favourite, path)
        return is_favourite

    def reorder(self) -> Optional[Path]:
        """Re-interleaves favourites and stays on the same image if possible."""
        previous = self.scrubber.current()
        self.scrubber.rebuild(self.every_n)
        if previous is not None:
            self.scrubber.seek(previous)
        return self._show(self.scrubber.current())

    # --- Delete/Undo ---

    def delete_current_image(self) -> bool:
        """Moves the current image to the folder's recycle bin."""
        path = self.current_path
        if path is None or self.folder is None:
            self.update_status_message("No image to delete.")
            return False

        recycle_bin_dir = self.folder / RECYCLE_BIN_NAME
        index = self.scrubber.index
        try:
            recycle_bin_dir.mkdir(parents=True, exist_ok=True)
            dest = _unique_destination(recycle_bin_dir, path.name)
            path.rename(dest)
        except OSError as e:
            self.update_status_message(f"Delete failed: {e}")
            log.exception("Failed to delete image")
            return False

        log.info("Moved %s to recycle bin", path)
        self.delete_history.append(DeletedImage(
            original=path, trashed=dest, index=index, was_favourite=self.scrubber.is_favourite(path)
        ))
        self._forget(path)
        self.update_status_message(f"Deleted: {path.name}")
        return True

    def undo_delete(self) -> Optional[Path]:
        """Restores the last deleted image to its old place in the sequence."""
        if not self.delete_history:
            self.update_status_message("Nothing to undo.")
            return None

        item = self.delete_history.pop()
        try:
            item.trashed.rename(item.original)
        except OSError as e:
            self.update_status_message(f"Undo failed: {e}")
            log.exception("Failed to restore image")
            # Put it back in history if it failed
            self.delete_history.append(item)
            return None

        log.info("Restored %s from recycle bin", item.original)
        self.scrubber.insert(item.index, item.original)
        self.scrubber.seek(item.original)
        if item.was_favourite:
            self.scrubber.favourites.add(item.original)
        self.update_status_message(f"Restored: {item.original.name}")
        return self._show(self.scrubber.current())

    def _forget(self, path: Path):
        was_current = path == self.current_path
        self.scrubber.remove(path)
        # The store row stays; get_all skips files that no longer exist
        self.scrubber.favourites.discard(path)
        self.image_cache.pop(path, None)
        if was_current:
            self._show(self.scrubber.current())

    # --- Filesystem events ---

    def process_file_events(self) -> int:
        """Applies the changes the watcher queued since the last call."""
        if not self.watcher:
            return 0
        count = 0
        for event in self.watcher.drain():
            self.handle_file_event(event)
            count += 1
        return count

    def handle_file_event(self, event: FileEvent):
        path = event.path
        if self.folder is None or not path.is_relative_to(self.folder):
            return
        if RECYCLE_BIN_NAME in path.relative_to(self.folder).parts:
            return

        if event.kind is FileChange.DELETED:
            if path in self.scrubber.entries:
                log.info("%s was removed from disk", path)
                self._forget(path)
        elif event.kind is FileChange.MODIFIED:
            if path in self.image_cache or path == self.current_path:
                # Cached pixels no longer match the file
                self.image_cache.clear()
                if path == self.current_path:
                    self.current_image = None
        elif event.kind is FileChange.CREATED:
            if path.suffix.lower() in supported_extensions() and path not in self.scrubber.entries:
                log.info("New image %s appended to sequence", path)
                self.scrubber.insert(len(self.scrubber), path)
                if self.current_path is None:
                    self._show(self.scrubber.current())

    # --- Status ---

    def status(self) -> Dict:
        return {
            "files": len(self.scrubber),
            "favourites": len(self.scrubber.favourites),
            "index": self.scrubber.index,
            "current": self.current_path,
            "is_favourite": self.is_current_favourite(),
            "cache_hits": self.image_cache.hits,
            "cache_misses": self.image_cache.misses,
        }

    def update_status_message(self, message: str):
        self.status_message = message
        log.info(message)

    def shutdown(self):
        log.info("Session shutting down.")
        self._close_folder()


def main(
    image_dir: str = "",
    debug: bool = False,
    randomize: Optional[bool] = None,
    recursive: Optional[bool] = None,
    every_n: Optional[int] = None,
    list_entries: bool = False,
) -> int:
    """SlideStack entry point: opens a folder and prints what it found."""
    setup_logging(debug)
    log.info("Starting SlideStack")

    if not image_dir:
        image_dir = config.get('core', 'default_directory')
        if not image_dir:
            log.error("No image directory provided and no default directory set.")
            print("No image directory given.", file=sys.stderr)
            return 1

    path = Path(image_dir)
    if not path.exists():
        log.error("Path not found: %s", path)
        print(f"Path not found: {path}", file=sys.stderr)
        return 1

    session = SessionController(randomize=randomize, recursive=recursive, every_n=every_n, watch=False)
    try:
        session.open_path(path)
        print(session.status_message)
        if list_entries:
            for i, entry in enumerate(session.scrubber.entries):
                marker = "*" if session.scrubber.is_favourite(entry) else " "
                print(f"{i:5d} {marker} {entry}")
    finally:
        session.shutdown()
    return 0 if session.scrubber else 1

def non_negative_int(value: str) -> int:
    """argparse type for counts where 0 means off."""
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not a whole number")
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {n}")
    return n

def cli():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="SlideStack - browse a folder of images with persistent favourites")
    parser.add_argument("image_dir", nargs="?", default="", help="Folder, image or .txt playlist to open")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--random", dest="randomize", action="store_true", default=None, help="Shuffle instead of natural order")
    parser.add_argument("--flat", dest="recursive", action="store_false", default=None, help="Only list the folder itself, not subfolders")
    parser.add_argument("--every-n", type=non_negative_int, default=None, help="Insert a favourite after every N images (0 disables)")
    parser.add_argument("--list", dest="list_entries", action="store_true", help="Print the ordered sequence")
    args = parser.parse_args()
    sys.exit(main(
        image_dir=args.image_dir,
        debug=args.debug,
        randomize=args.randomize,
        recursive=args.recursive,
        every_n=args.every_n,
        list_entries=args.list_entries,
    ))

if __name__ == "__main__":
    cli()
