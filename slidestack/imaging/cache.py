"""Bounded cache of decoded images, evicting the oldest insert first."""

import itertools
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from cachetools import Cache

log = logging.getLogger(__name__)


class DecodeCache(Cache):
    """Maps an image path to its decoded image, holding at most ``capacity``
    entries.

    Each entry remembers when it was inserted. Inserting a path again resets
    that stamp, but reading it does not: a frequently viewed image that is
    never re-decoded can be evicted before a newer one.
    """

    def __init__(
        self,
        capacity: int,
        timer: Callable[[], float] = time.monotonic,
        on_evict: Optional[Callable[[Path], None]] = None,
    ):
        # Every entry counts as 1 towards maxsize
        super().__init__(maxsize=capacity)
        self.timer = timer
        self.on_evict = on_evict
        self.hits = 0
        self.misses = 0
        self._created: Dict[Any, Tuple[float, int]] = {}
        self._sequence = itertools.count()
        log.info("Initialized decode cache with capacity for %d images.", capacity)

    @property
    def capacity(self) -> int:
        return self.maxsize

    def __setitem__(self, key, value):
        # The parent evicts through popitem() until the new item fits
        super().__setitem__(key, value)
        self._created[key] = (self.timer(), next(self._sequence))
        log.debug("Cached '%s'. %d/%d entries", key, len(self), self.maxsize)

    def __delitem__(self, key):
        super().__delitem__(key)
        self._created.pop(key, None)

    def popitem(self):
        """Evicts the entry with the oldest creation stamp."""
        if not self._created:
            raise KeyError(f"{type(self).__name__} is empty")
        key = min(self._created, key=self._created.__getitem__)
        value = self.pop(key)
        log.debug("Evicted '%s' to make room. %d/%d entries", key, len(self), self.maxsize)

        if self.on_evict:
            self.on_evict(key)

        return key, value

    def get(self, key, default=None):
        """Returns the stored image itself, counting hits and misses."""
        key = Path(key)
        if key in self:
            self.hits += 1
            return self[key]
        self.misses += 1
        return default

    def insert(self, path: Path, image) -> None:
        """Stores ``image`` for ``path`` with a fresh creation stamp."""
        if self.maxsize <= 0:
            log.debug("Decode cache disabled, not caching '%s'", path)
            return
        self[Path(path)] = image

    def clear(self):
        """Drops every entry, e.g. after a file changed on disk."""
        count = len(self)
        for key in list(self.keys()):
            del self[key]
        log.info("Cleared decode cache (%d entries).", count)
