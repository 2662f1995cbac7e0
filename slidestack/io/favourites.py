"""Per-folder SQLite record of favourite images."""

import enum
import logging
import sqlite3
from pathlib import Path
from typing import Optional, Set

log = logging.getLogger(__name__)

FAVOURITES_DB = "favourites.db"
# Filenames are not expected to contain a tab, so it is safe as a separator
# on every platform.
RECORD_SEPARATOR = "\t"


class PathError(ValueError):
    """Raised when a path cannot be expressed relative to the store's folder."""


class StoreError(RuntimeError):
    """Raised when the favourites database cannot be used."""


class StoreState(enum.Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


def encode_record(root: Path, path: Path) -> str:
    """Encodes ``path`` as its components below ``root`` joined by a tab."""
    try:
        parts = Path(path).relative_to(root).parts
    except ValueError as e:
        raise PathError(f"{path} is not inside {root}") from e
    if not parts:
        raise PathError(f"{path} is the favourites folder itself")
    return RECORD_SEPARATOR.join(parts)


def decode_record(root: Path, record: str) -> Path:
    """Rebuilds the absolute path of a stored record."""
    return Path(root).joinpath(*record.split(RECORD_SEPARATOR))


def get_db_file(folder: Path) -> Path:
    return Path(folder) / FAVOURITES_DB


class FavouritesStore:
    """Favourites of one folder, kept in ``<folder>/favourites.db``.

    The database is opened lazily on the first write (or an explicit
    ``open()``). After ``close()`` the instance is unusable and every call
    raises ``StoreError``.
    """

    def __init__(self, folder: Path):
        self.folder = Path(folder)
        self.db_path = get_db_file(self.folder)
        self.conn: Optional[sqlite3.Connection] = None
        self.state = StoreState.UNOPENED

    @staticmethod
    def exists_for(folder: Path) -> bool:
        return get_db_file(folder).exists()

    def open(self) -> None:
        if self.state is StoreState.CLOSED:
            raise StoreError(f"Favourites store for {self.folder} is closed")
        if self.state is StoreState.OPEN:
            return
        log.debug("Opening favourites database %s", self.db_path)
        try:
            self.conn = sqlite3.connect(str(self.db_path))
            self.conn.execute(
                "CREATE TABLE IF NOT EXISTS favourites (path TEXT PRIMARY KEY)"
            )
            self.conn.commit()
        except sqlite3.Error as e:
            if self.conn:
                self.conn.close()
                self.conn = None
            raise StoreError(f"Cannot open favourites database {self.db_path}: {e}") from e
        self.state = StoreState.OPEN

    def _connection(self) -> sqlite3.Connection:
        if self.state is not StoreState.OPEN:
            self.open()
        return self.conn

    def insert(self, path: Path) -> None:
        record = encode_record(self.folder, path)
        log.debug("Insert %r into favourites", record)
        conn = self._connection()
        try:
            conn.execute("INSERT OR IGNORE INTO favourites (path) VALUES (?)", (record,))
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot save favourite {path}: {e}") from e

    def delete(self, path: Path) -> None:
        record = encode_record(self.folder, path)
        log.debug("Delete %r from favourites", record)
        conn = self._connection()
        try:
            conn.execute("DELETE FROM favourites WHERE path = ?", (record,))
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot delete favourite {path}: {e}") from e

    def get_all(self) -> Set[Path]:
        """Returns every stored favourite whose file still exists.

        Rows for missing files are skipped but left in the table, so a file
        that comes back is a favourite again.
        """
        if self.state is StoreState.CLOSED:
            raise StoreError(f"Favourites store for {self.folder} is closed")
        if self.state is StoreState.UNOPENED and not self.db_path.exists():
            return set()
        conn = self._connection()
        try:
            rows = conn.execute("SELECT path FROM favourites").fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot read favourites: {e}") from e

        favourites = {decode_record(self.folder, row[0]) for row in rows}
        existing = {p for p in favourites if p.exists()}
        if len(existing) != len(favourites):
            log.info("Ignoring %d favourites whose files are gone", len(favourites) - len(existing))
        return existing

    def close(self) -> None:
        if self.state is StoreState.CLOSED:
            raise StoreError(f"Favourites store for {self.folder} is already closed")
        if self.conn is not None:
            log.debug("Closing favourites database %s", self.db_path)
            self.conn.close()
            self.conn = None
        self.state = StoreState.CLOSED
