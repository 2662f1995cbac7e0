"""Tests for directory scanning and playlists."""

import os
import sys
from pathlib import Path

import pytest

from slidestack.io.collector import (
    collect_paths,
    find_first_image,
    find_images,
    read_playlist,
    supported_extensions,
)

@pytest.fixture
def mock_image_dir(tmp_path: Path):
    """Creates a temporary directory tree with mock image files."""
    (tmp_path / "IMG_0002.JPG").touch()
    (tmp_path / "IMG_0001.png").touch()
    (tmp_path / "readme.txt").touch()
    (tmp_path / "trip").mkdir()
    (tmp_path / "trip" / "beach.bmp").touch()
    (tmp_path / "trip" / "deep").mkdir()
    (tmp_path / "trip" / "deep" / "rock.gif").touch()
    (tmp_path / "bin").mkdir()
    (tmp_path / "bin" / "deleted.png").touch()
    return tmp_path

def names(paths):
    return sorted(p.name for p in paths)

def test_supported_extensions_are_lower_case():
    exts = supported_extensions()
    assert {".png", ".jpg", ".jpeg", ".gif"} <= exts
    assert all(e == e.lower() for e in exts)
    assert ".txt" not in exts

def test_collect_flat(mock_image_dir: Path):
    paths = collect_paths(mock_image_dir, recursive=False)
    assert names(paths) == ["IMG_0001.png", "IMG_0002.JPG"]
    assert all(p.parent == mock_image_dir for p in paths)

def test_collect_recursive(mock_image_dir: Path):
    paths = collect_paths(mock_image_dir, recursive=True)
    assert names(paths) == ["IMG_0001.png", "IMG_0002.JPG", "beach.bmp", "deleted.png", "rock.gif"]

def test_collect_recursive_skips_dirs(mock_image_dir: Path):
    paths = collect_paths(mock_image_dir, recursive=True, skip_dirs={"bin"})
    assert "deleted.png" not in names(paths)

def test_collect_file_uses_parent(mock_image_dir: Path):
    paths = collect_paths(mock_image_dir / "IMG_0001.png")
    assert names(paths) == ["IMG_0001.png", "IMG_0002.JPG"]

def test_collect_custom_extensions(mock_image_dir: Path):
    paths = collect_paths(mock_image_dir, recursive=True, extensions={".GIF"})
    assert names(paths) == ["rock.gif"]

def test_collect_missing_dir_raises(tmp_path: Path):
    with pytest.raises(OSError):
        collect_paths(tmp_path / "nope")
    with pytest.raises(OSError):
        collect_paths(tmp_path / "nope", recursive=True)

def test_find_images_missing_dir_is_empty(tmp_path: Path):
    assert find_images(tmp_path / "nope", recursive=True) == []

@pytest.mark.skipif(sys.platform == "win32" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
def test_unreadable_subdir_is_skipped(mock_image_dir: Path):
    locked = mock_image_dir / "trip" / "deep"
    locked.chmod(0)
    try:
        paths = collect_paths(mock_image_dir, recursive=True)
    finally:
        locked.chmod(0o755)
    assert "rock.gif" not in names(paths)
    assert "beach.bmp" in names(paths)

def test_read_playlist(tmp_path: Path):
    absolute = tmp_path / "elsewhere" / "x.png"
    playlist = tmp_path / "list.txt"
    playlist.write_text(f"a.png\n\n  sub/b.jpg  \n{absolute}\n", encoding="utf-8")
    assert read_playlist(playlist) == [tmp_path / "a.png", tmp_path / "sub" / "b.jpg", absolute]

def test_find_first_image(mock_image_dir: Path):
    assert find_first_image(mock_image_dir) == mock_image_dir / "IMG_0001.png"

def test_find_first_image_errors(tmp_path: Path):
    with pytest.raises(NotADirectoryError):
        find_first_image(tmp_path / "missing")
    with pytest.raises(FileNotFoundError):
        find_first_image(tmp_path)
