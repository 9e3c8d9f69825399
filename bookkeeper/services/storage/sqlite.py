"""
SQLite Storage Implementation

DESIGN DECISION: SQLite is the durable backend because:
1. No server to run - a single file next to the app
2. Atomic writes per statement
3. Prefix listing is a simple indexed range query

Everything is stored in one two-column table. The store follows the
abstract interface, so business logic never sees SQL.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from bookkeeper.services.storage.interface import KeyValueStore, StorageError


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


class SqliteKeyValueStore(KeyValueStore):
    """Key-value store persisted in a single SQLite table."""

    def __init__(self, path: Path):
        self._path = Path(path)
        _ensure_directory(self._path)
        self.initialize()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on error, always close."""
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the table if it does not already exist."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def get(self, key: str) -> Optional[str]:
        try:
            with self._transaction() as conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read '{key}': {e}") from e
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with self._transaction() as conn:
                conn.execute(
                    "INSERT INTO kv (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, value),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write '{key}': {e}") from e

    def delete(self, key: str) -> bool:
        try:
            with self._transaction() as conn:
                cursor = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete '{key}': {e}") from e
        return cursor.rowcount > 0

    def list_keys(self, prefix: str = "") -> list[str]:
        # LIKE would treat '_' in our key prefixes as a wildcard
        try:
            with self._transaction() as conn:
                rows = conn.execute(
                    "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
                    (len(prefix), prefix),
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list keys: {e}") from e
        return [row["key"] for row in rows]
