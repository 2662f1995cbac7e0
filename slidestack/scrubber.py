"""Ordered image sequence with a navigation cursor."""

import logging
import random
from pathlib import Path
from typing import Iterable, List, Optional, Set

from slidestack.io.collector import find_images
from slidestack.ordering import interleave, order_entries

log = logging.getLogger(__name__)


class Scrubber:
    """Owns the list of images to cycle through and the current position.

    Every method is safe on an empty sequence and returns ``None`` as the
    current entry in that case.
    """

    def __init__(
        self,
        entries: Optional[List[Path]] = None,
        favourites: Optional[Set[Path]] = None,
        wrap: bool = True,
        randomize: bool = False,
        rng: Optional[random.Random] = None,
    ):
        self.entries: List[Path] = list(entries or [])
        self.favourites: Set[Path] = set(favourites or ())
        self.index: int = 0
        self.wrap = wrap
        self.randomize = randomize
        self.rng = rng
        # Entries came from a folder in natural order, so rebuild can re-sort
        self.natural_order = False

    @classmethod
    def from_folder(
        cls,
        path: Path,
        favourites: Optional[Set[Path]] = None,
        randomize: bool = False,
        recursive: bool = False,
        every_n: Optional[int] = None,
        wrap: bool = True,
        extensions: Optional[Iterable[str]] = None,
        skip_dirs: Iterable[str] = (),
        rng: Optional[random.Random] = None,
    ) -> "Scrubber":
        """Builds a scrubber for the folder containing ``path``.

        When ``path`` is a file the cursor starts on it.
        """
        path = Path(path)
        favourites = set(favourites or ())
        entries = order_entries(
            find_images(path, recursive, extensions, skip_dirs), randomize, rng
        )
        scrubber = cls(entries, favourites, wrap=wrap, randomize=randomize, rng=rng)
        scrubber.natural_order = not randomize
        if every_n:
            scrubber.entries = interleave(entries, scrubber._ordered_favourites(), every_n)
        if path.is_file():
            scrubber.seek(path)
        log.debug("number of files: %d", len(scrubber.entries))
        return scrubber

    @classmethod
    def from_entries(cls, entries: Iterable[Path], wrap: bool = True) -> "Scrubber":
        """Builds a scrubber over an explicit list, e.g. a playlist."""
        return cls(list(dict.fromkeys(entries)), wrap=wrap)

    def __len__(self) -> int:
        return len(self.entries)

    def current(self) -> Optional[Path]:
        if not self.entries:
            return None
        return self.entries[self.index]

    def next(self) -> Optional[Path]:
        self.index += 1
        if self.index >= len(self.entries):
            self.index = 0 if self.wrap else max(len(self.entries) - 1, 0)
        return self.current()

    def prev(self) -> Optional[Path]:
        if self.index == 0:
            if self.wrap:
                self.index = max(len(self.entries) - 1, 0)
        else:
            self.index -= 1
        return self.current()

    def goto(self, index: int) -> Optional[Path]:
        """Moves the cursor to ``index``.

        An out of range index is a no-op: the cursor stays where it is and
        the current entry is returned. No error is raised.
        """
        if 0 <= index < len(self.entries):
            self.index = index
        else:
            log.warning("Ignoring jump to invalid index %d (have %d entries)", index, len(self.entries))
        return self.current()

    def seek(self, path: Path) -> bool:
        """Moves the cursor onto ``path`` if it is in the sequence."""
        try:
            self.index = self.entries.index(Path(path))
        except ValueError:
            return False
        return True

    def remove(self, path: Path) -> bool:
        """Drops ``path`` from the sequence; absent paths are a no-op."""
        path = Path(path)
        try:
            position = self.entries.index(path)
        except ValueError:
            log.debug("Not removing %s, not in sequence", path)
            return False
        del self.entries[position]
        if position <= self.index:
            self.index = max(self.index - 1, 0)
        return True

    def insert(self, index: int, path: Path) -> bool:
        """Puts ``path`` back at ``index`` (clamped), keeping the cursor on
        the entry it pointed at."""
        path = Path(path)
        if path in self.entries:
            return False
        was_empty = not self.entries
        index = min(max(index, 0), len(self.entries))
        self.entries.insert(index, path)
        if not was_empty and index <= self.index:
            self.index += 1
        return True

    def is_favourite(self, path: Optional[Path]) -> bool:
        return path is not None and Path(path) in self.favourites

    def toggle_favourite(self, path: Path) -> bool:
        """Flips favourite membership. Does not reorder the sequence."""
        path = Path(path)
        if path in self.favourites:
            self.favourites.discard(path)
            return False
        self.favourites.add(path)
        return True

    def rebuild(self, every_n: Optional[int]) -> None:
        """Re-interleaves the current favourites into the sequence.

        A folder opened in natural order is re-sorted first, so an image that
        stopped being a favourite drops back to its natural slot. Shuffled
        sequences and explicit lists keep the relative order of their other
        entries, and an un-favourited image stays where it was spliced in.

        The cursor index is kept as is (only clamped), so it may now point at
        a different entry. Callers that want to stay on the same image should
        ``seek`` the previously current path afterwards.
        """
        main = self.entries
        if self.natural_order and not self.randomize:
            main = order_entries(main, randomize=False)
        self.entries = interleave(main, self._ordered_favourites(), every_n)
        if self.index >= len(self.entries):
            self.index = max(len(self.entries) - 1, 0)

    def _ordered_favourites(self) -> List[Path]:
        present = [p for p in self.entries if p in self.favourites]
        return order_entries(present, self.randomize, self.rng)
