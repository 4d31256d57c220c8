"""Key/value stores backing the persisted translation cache tiers.

`SessionStore` lives as long as the process and stands in for session-scoped storage.
`SQLiteStore` keeps entries on disk across runs.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = [
    "KeyValueStore",
    "SQLiteStore",
    "SessionStore",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class StorageError(Exception):
    """A persisted store could not complete an operation."""


class StorageWriteError(StorageError):
    """Writing to a persisted store failed, e.g. the quota is exhausted."""


class StorageReadError(StorageError):
    """Reading from a persisted store failed."""


class KeyValueStore(ABC):
    """String key/value store with enumerable keys.

    Implementations may raise StorageError subclasses from any method; callers are expected
    to degrade gracefully.
    """

    name: str = "store"

    async def component_load(self) -> None:
        """Open the underlying storage. Stores without resources do nothing."""

    async def component_teardown(self) -> None:
        """Release the underlying storage. Stores without resources do nothing."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one.

        Raises:
            StorageWriteError: If the value could not be stored.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def keys(self) -> list[str]:
        raise NotImplementedError


class SessionStore(KeyValueStore):
    """Process-scoped store with an optional entry quota.

    Attributes:
        quota (int): Maximum number of entries. 0 means unlimited.
    """

    name = "session"

    def __init__(self, quota: int = 0) -> None:
        self.quota: int = quota
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.quota > 0 and key not in self._data and len(self._data) >= self.quota:
            msg: str = f"Session store quota exceeded ({self.quota} entries)"
            raise StorageWriteError(msg)
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._data)


class SQLiteStore(KeyValueStore):
    """Durable store in a single SQLite table using WAL journaling."""

    name = "local"

    def __init__(self, db_path: str | Path) -> None:
        """Initialize the store.

        Args:
            db_path (str | Path): Database file. ":memory:" keeps the data in memory.
        """
        self._db_path: str = str(db_path)
        self._db_conn: sqlite3.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._db_conn is not None

    async def component_load(self) -> None:
        """Open the database and create the table.

        Raises:
            StorageError: If the database cannot be opened.
        """
        if self._db_conn is not None:
            return
        try:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._db_conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._db_conn.execute("PRAGMA journal_mode=WAL")
            self._db_conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            self._db_conn.commit()
            logger.info("Durable cache store opened: %s", self._db_path)
        except (sqlite3.Error, OSError) as err:
            self._db_conn = None
            msg: str = f"Cannot open cache database '{self._db_path}': {err}"
            raise StorageError(msg) from err

    async def component_teardown(self) -> None:
        if self._db_conn is None:
            return
        try:
            self._db_conn.close()
            logger.info("Durable cache store closed")
        except sqlite3.Error as err:
            logger.error("Error closing cache database: %s", err)
        finally:
            self._db_conn = None

    def _connection(self, error_type: type[StorageError]) -> sqlite3.Connection:
        if self._db_conn is None:
            msg = "Durable cache store is not open"
            raise error_type(msg)
        return self._db_conn

    async def get(self, key: str) -> str | None:
        conn: sqlite3.Connection = self._connection(StorageReadError)
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as err:
            msg: str = f"Read failed: {err}"
            raise StorageReadError(msg) from err
        return None if row is None else row[0]

    async def set(self, key: str, value: str) -> None:
        conn: sqlite3.Connection = self._connection(StorageWriteError)
        try:
            conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            conn.commit()
        except sqlite3.Error as err:
            msg: str = f"Write failed: {err}"
            raise StorageWriteError(msg) from err

    async def delete(self, key: str) -> None:
        conn: sqlite3.Connection = self._connection(StorageWriteError)
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as err:
            msg: str = f"Delete failed: {err}"
            raise StorageWriteError(msg) from err

    async def keys(self) -> list[str]:
        conn: sqlite3.Connection = self._connection(StorageReadError)
        try:
            rows = conn.execute("SELECT key FROM kv_store").fetchall()
        except sqlite3.Error as err:
            msg: str = f"Key listing failed: {err}"
            raise StorageReadError(msg) from err
        return [row[0] for row in rows]
