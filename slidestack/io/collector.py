"""Scans directories and playlists for images the viewer can show."""

import functools
import logging
import os
import time
from pathlib import Path
from typing import Iterable, List, Optional, FrozenSet

from PIL import Image

from slidestack.ordering import order_entries

log = logging.getLogger(__name__)

# Formats Pillow can open that make sense to browse as still images.
# Document and container formats (PDF, ICNS, MPO sidecars...) are left out.
STILL_EXTENSIONS = {
    ".bmp", ".dds", ".gif", ".ico", ".jpeg", ".jpg", ".jpe", ".jfif",
    ".png", ".apng", ".ppm", ".pgm", ".pbm", ".pnm", ".qoi", ".tga",
    ".tif", ".tiff", ".webp", ".psd", ".hdr", ".exr", ".avif",
}


@functools.lru_cache(maxsize=1)
def supported_extensions() -> FrozenSet[str]:
    """Returns the lower-cased suffixes Pillow has a decoder for."""
    registered = {ext.lower() for ext in Image.registered_extensions()}
    return frozenset(registered & STILL_EXTENSIONS)


def _is_supported(path: Path, extensions: FrozenSet[str]) -> bool:
    return path.suffix.lower() in extensions


def collect_paths(
    root: Path,
    recursive: bool = False,
    extensions: Optional[Iterable[str]] = None,
    skip_dirs: Iterable[str] = (),
) -> List[Path]:
    """Lists supported files under ``root``.

    If ``root`` is a file its parent directory is scanned. Raises ``OSError``
    when ``root`` itself cannot be read; unreadable subdirectories of a
    recursive walk are logged and skipped.
    """
    root = Path(root)
    if root.is_file():
        root = root.parent
    allowed = frozenset(e.lower() for e in extensions) if extensions is not None else supported_extensions()
    skipped = set(skip_dirs)
    paths: List[Path] = []

    if not recursive:
        with os.scandir(root) as it:
            for entry in it:
                if entry.is_file():
                    p = Path(entry.path)
                    if _is_supported(p, allowed):
                        paths.append(p)
        return paths

    def _on_error(err: OSError):
        if Path(err.filename) == root:
            raise err
        log.warning("Skipping unreadable directory %s: %s", err.filename, err.strerror)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = [d for d in dirnames if d not in skipped]
        for name in filenames:
            p = Path(dirpath) / name
            if _is_supported(p, allowed):
                paths.append(p)
    return paths


def find_images(
    root: Path,
    recursive: bool = False,
    extensions: Optional[Iterable[str]] = None,
    skip_dirs: Iterable[str] = (),
) -> List[Path]:
    """Like ``collect_paths`` but a read failure yields an empty list."""
    t_start = time.perf_counter()
    log.info("Scanning directory for images: %s (recursive=%s)", root, recursive)
    try:
        paths = collect_paths(root, recursive, extensions, skip_dirs)
    except OSError:
        log.exception("Error scanning directory %s", root)
        return []

    elapsed = time.perf_counter() - t_start
    if log.isEnabledFor(logging.DEBUG):
        log.info("Found %d image files in %.3fs", len(paths), elapsed)
    else:
        log.info("Found %d image files.", len(paths))
    return paths


def read_playlist(playlist: Path) -> List[Path]:
    """Reads a text file with one image path per line.

    Relative lines are resolved against the playlist's folder. Files are not
    checked for existence here.
    """
    playlist = Path(playlist)
    base = playlist.parent
    entries: List[Path] = []
    with playlist.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            p = Path(line)
            entries.append(p if p.is_absolute() else base / p)
    log.info("Read %d entries from playlist %s", len(entries), playlist)
    return entries


def find_first_image(folder: Path) -> Path:
    """Returns the first image of ``folder`` in natural order."""
    folder = Path(folder)
    if not folder.is_dir():
        raise NotADirectoryError(f"{folder} is not a folder")
    entries = order_entries(collect_paths(folder), randomize=False)
    if not entries:
        raise FileNotFoundError(f"{folder} does not have any supported images in it")
    return entries[0]
