from __future__ import annotations

import enum
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from .errors import StorageError

SCHEMA = """
CREATE TABLE IF NOT EXISTS paths (
  id INTEGER PRIMARY KEY,
  name TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS tags (
  id INTEGER PRIMARY KEY,
  name TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS entries (
  id INTEGER PRIMARY KEY,
  type INTEGER NOT NULL,
  source TEXT NOT NULL DEFAULT '',
  path INTEGER NOT NULL REFERENCES paths(id),
  slug TEXT NOT NULL DEFAULT '',
  file TEXT NOT NULL,
  title TEXT,
  created TEXT NOT NULL,
  updated TEXT,
  UNIQUE(path, slug, file)
);

CREATE TABLE IF NOT EXISTS tagged_entries (
  tag INTEGER NOT NULL REFERENCES tags(id),
  entry INTEGER NOT NULL REFERENCES entries(id),
  PRIMARY KEY(tag, entry)
);
"""

ENTRY_COLUMNS = """
  e.id, e.type, e.source, p.name AS path, e.slug, e.file, e.title,
  e.created, e.updated, coalesce(e.updated, e.created) AS date
"""


class EntryType(enum.IntEnum):
    STATIC = 0
    PAGE = 1
    ENTRY = 2
    SOURCE = 3
    FILE = 4
    LISTING = 5
    HOME = 6
    FEED = 7


@dataclass
class Entry:
    """One produced output file and where it came from.

    ``update`` marks a write over an output that already existed on disk; it
    decides whether a fresh row also gets an ``updated`` timestamp.
    """

    type: EntryType
    path: int
    file: str
    datetime: str
    source: str = ""
    slug: Optional[str] = None
    title: Optional[str] = None
    update: bool = False


class Cache:
    """Build record kept in SQLite between runs.

    Every storage failure raises :class:`StorageError`; nothing here tries to
    recover, the caller is expected to abort the build.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.created = False
        self._conn: Optional[sqlite3.Connection] = None
        self.open()

    def __enter__(self) -> "Cache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def open(self) -> None:
        exists = self.path.exists()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path, isolation_level=None)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            self.close()
            raise StorageError(f"open {self.path}: {exc}") from exc
        self.created = not exists

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
        self._conn = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError(f"cache {self.path} is closed")
        return self._conn

    def _execute(self, what: str, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self.connection.execute(sql, params)
        except sqlite3.Error as exc:
            raise StorageError(f"{what}: {exc}") from exc

    def _rows(self, what: str, sql: str, params: tuple = ()) -> Iterator[sqlite3.Row]:
        cursor = self._execute(what, sql, params)
        try:
            for row in cursor:
                yield row
        except sqlite3.Error as exc:
            raise StorageError(f"{what}: {exc}") from exc
        finally:
            cursor.close()

    def _get_id(self, table: str, name: str) -> int:
        self._execute(f"{table}(insert)", f"INSERT OR IGNORE INTO {table}(name) VALUES (?)", (name,))
        row = self._execute(f"{table}(select)", f"SELECT id FROM {table} WHERE name = ?", (name,)).fetchone()
        if row is None:
            raise StorageError(f"{table}(select): no id for {name!r}")
        return row[0]

    def path_id(self, name: str) -> int:
        return self._get_id("paths", name)

    def tag_id(self, name: str) -> int:
        return self._get_id("tags", name)

    def add_entry(self, entry: Entry) -> int:
        slug = entry.slug or ""
        updated = entry.datetime if entry.update else None
        self._execute(
            "add_entry(upsert)",
            """
            INSERT INTO entries(type, source, path, slug, file, title, created, updated)
              VALUES (?1, ?2, ?3, ?4, ?5, ?6, ?7, ?8)
            ON CONFLICT(path, slug, file) DO UPDATE
              SET type = ?1, source = ?2, title = ?6, updated = ?7
            """,
            (int(entry.type), entry.source, entry.path, slug, entry.file, entry.title, entry.datetime, updated),
        )
        row = self._execute(
            "add_entry(select)",
            "SELECT id FROM entries WHERE path = ? AND slug = ? AND file = ?",
            (entry.path, slug, entry.file),
        ).fetchone()
        if row is None:
            raise StorageError(f"add_entry(select): no row for {entry.file!r}")
        return row[0]

    def add_tag(self, entry_id: int, tag: str) -> None:
        self._execute(
            "add_tag",
            "INSERT OR IGNORE INTO tagged_entries(tag, entry) VALUES (?, ?)",
            (self.tag_id(tag), entry_id),
        )

    def most_recent_entries(self, limit: int, kind: EntryType = EntryType.ENTRY) -> Iterator[sqlite3.Row]:
        return self._rows(
            "most_recent_entries",
            f"""
            SELECT {ENTRY_COLUMNS}
              FROM entries e JOIN paths p ON p.id = e.path
             WHERE e.type = ?
             ORDER BY coalesce(e.updated, e.created) DESC, e.id DESC
             LIMIT ?
            """,
            (int(kind), limit),
        )

    def subpaths(self, path_id: int) -> Iterator[sqlite3.Row]:
        """Direct children of a path, by name descending."""
        return self._rows(
            "subpaths",
            """
            SELECT c.id, c.name
              FROM paths c, paths p
             WHERE p.id = ?1
               AND substr(c.name, 1, length(p.name) + 1) = p.name || '/'
               AND instr(substr(c.name, length(p.name) + 2), '/') = 0
               AND length(c.name) > length(p.name) + 1
             ORDER BY c.name DESC
            """,
            (path_id,),
        )

    def entries_under_path(self, path_id: int, kind: EntryType = EntryType.ENTRY) -> Iterator[sqlite3.Row]:
        return self._rows(
            "entries_under_path",
            f"""
            SELECT {ENTRY_COLUMNS}
              FROM entries e JOIN paths p ON p.id = e.path
             WHERE e.path = ? AND e.type = ?
             ORDER BY e.created DESC, e.id DESC
            """,
            (path_id, int(kind)),
        )

    def entries_for_tag(self, tag_id: int, kind: EntryType = EntryType.ENTRY) -> Iterator[sqlite3.Row]:
        return self._rows(
            "entries_for_tag",
            f"""
            SELECT {ENTRY_COLUMNS}
              FROM entries e
              JOIN paths p ON p.id = e.path
              JOIN tagged_entries t ON t.entry = e.id
             WHERE t.tag = ? AND e.type = ?
             ORDER BY e.created DESC, e.id DESC
            """,
            (tag_id, int(kind)),
        )

    def all_tags(self) -> Iterator[sqlite3.Row]:
        return self._rows("all_tags", "SELECT id, name FROM tags ORDER BY name ASC")

    def entry_tags(self, entry_id: int) -> Iterator[sqlite3.Row]:
        return self._rows(
            "entry_tags",
            """
            SELECT t.id, t.name
              FROM tags t JOIN tagged_entries te ON te.tag = t.id
             WHERE te.entry = ?
             ORDER BY t.name ASC
            """,
            (entry_id,),
        )

    def counts(self) -> dict[str, int]:
        result = {}
        for table in ("paths", "tags", "entries", "tagged_entries"):
            row = self._execute(f"counts({table})", f"SELECT count(*) FROM {table}").fetchone()
            result[table] = row[0]
        return result
