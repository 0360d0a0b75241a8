from __future__ import annotations

import asyncio
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from .base import StorageIOError

PREFERENCES_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS preferences (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def _open_preferences(db_path: Path) -> Iterator[sqlite3.Connection]:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(db_path)
    connection.row_factory = sqlite3.Row
    try:
        connection.execute("PRAGMA journal_mode = WAL;")
        connection.execute("PRAGMA synchronous = NORMAL;")
        connection.executescript(PREFERENCES_TABLE_SCHEMA)
        yield connection
    finally:
        connection.close()


class SqlitePreferencesStore:
    """Single-value-per-key string store backed by one SQLite table.

    Each ``set`` is one upsert committed in its own transaction, so readers
    observe either the previous value or the new one.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def initialize(self) -> None:
        try:
            with _open_preferences(self._db_path):
                return
        except (sqlite3.Error, OSError) as exc:
            raise StorageIOError(f"Unable to open preferences database: {self._db_path}") from exc

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._set, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    async def keys(self) -> list[str]:
        return await asyncio.to_thread(self._keys)

    def _get(self, key: str) -> str | None:
        try:
            with _open_preferences(self._db_path) as connection:
                row = connection.execute(
                    "SELECT value FROM preferences WHERE key = ?",
                    (key,),
                ).fetchone()
        except (sqlite3.Error, OSError) as exc:
            raise StorageIOError(f"Unable to read preference '{key}'") from exc

        if row is None:
            return None
        return str(row["value"])

    def _set(self, key: str, value: str) -> None:
        try:
            with _open_preferences(self._db_path) as connection:
                connection.execute(
                    """
                    INSERT INTO preferences (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value=excluded.value,
                        updated_at=excluded.updated_at
                    """,
                    (key, value, _utc_now().isoformat()),
                )
                connection.commit()
        except (sqlite3.Error, OSError) as exc:
            raise StorageIOError(f"Unable to write preference '{key}'") from exc

    def _remove(self, key: str) -> None:
        try:
            with _open_preferences(self._db_path) as connection:
                connection.execute("DELETE FROM preferences WHERE key = ?", (key,))
                connection.commit()
        except (sqlite3.Error, OSError) as exc:
            raise StorageIOError(f"Unable to remove preference '{key}'") from exc

    def _keys(self) -> list[str]:
        try:
            with _open_preferences(self._db_path) as connection:
                rows = connection.execute("SELECT key FROM preferences ORDER BY key ASC").fetchall()
        except (sqlite3.Error, OSError) as exc:
            raise StorageIOError("Unable to list preference keys") from exc
        return [str(row["key"]) for row in rows]
