"""Sorting, shuffling and favourite interleaving for image sequences."""

import logging
import random
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

log = logging.getLogger(__name__)

_DIGITS = re.compile(r"(\d+)")


def natural_sort_key(path: Path) -> Tuple[list, str]:
    """Sort key that orders ``img2.png`` before ``img10.png``.

    The file name is split into alternating text and digit runs. Digit runs
    compare by value (leading zeros ignored), text runs case-insensitively.
    The raw name breaks ties so the order is total.
    """
    name = Path(path).name
    # split() with a group puts the digit runs at the odd positions
    parts = [int(c) if i % 2 else c.casefold() for i, c in enumerate(_DIGITS.split(name))]
    return parts, name


def order_entries(
    entries: Sequence[Path],
    randomize: bool,
    rng: Optional[random.Random] = None,
) -> List[Path]:
    """Returns a new list, shuffled or in natural order."""
    ordered = list(entries)
    if randomize:
        (rng or random).shuffle(ordered)
    else:
        ordered.sort(key=natural_sort_key)
    return ordered


def interleave(
    main: Sequence[Path],
    favourites: Sequence[Path],
    every_n: Optional[int],
) -> List[Path]:
    """Moves favourites out of ``main`` and splices one back after every
    ``every_n`` other items.

    Favourites keep the order they are given in. Those not present in
    ``main`` are dropped, and any left over once ``main`` runs out are
    appended. ``every_n`` of None or 0 returns ``main`` unchanged.
    """
    if every_n is None or every_n == 0:
        return list(main)
    if every_n < 0:
        raise ValueError(f"every_n must be positive, got {every_n}")

    present = set(main)
    placed = [f for f in dict.fromkeys(favourites) if f in present]
    fav_set = set(placed)

    result: List[Path] = []
    fav_i = 0
    count = 0
    for element in main:
        if element in fav_set:
            continue
        result.append(element)
        count += 1
        if fav_i < len(placed) and count % every_n == 0:
            result.append(placed[fav_i])
            fav_i += 1

    result.extend(placed[fav_i:])
    log.debug("Interleaved %d favourites every %d entries", len(placed), every_n)
    return result
