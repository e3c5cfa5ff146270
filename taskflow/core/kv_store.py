"""Device key/value persistence for the local store."""

import asyncio
import logging
import threading
from pathlib import Path
from typing import Protocol

import aiosqlite

from taskflow.core.config import settings
from taskflow.core.errors import StorageFailureError


logger = logging.getLogger(__name__)

IN_MEMORY_PATH = ":memory:"


class KeyValueStore(Protocol):
    """Minimal string key/value contract the local adapter builds on."""

    async def get(self, key: str) -> str | None:
        """Return the stored value or None."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    async def remove(self, key: str) -> None:
        """Delete ``key`` if present."""
        ...

    async def close(self) -> None:
        """Release underlying resources."""
        ...


class InMemoryKeyValueStore:
    """Thread-safe in-memory key/value store."""

    def __init__(self) -> None:
        """Initialize in-memory store."""
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> str | None:
        """Get value for key.

        Args:
            key: Storage key

        Returns:
            Stored value or None if not found
        """
        with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        """Set value for key.

        Args:
            key: Storage key
            value: Serialized value
        """
        with self._lock:
            self._data[key] = value
            logger.debug("Stored key: %s (%d bytes)", key, len(value))

    async def remove(self, key: str) -> None:
        """Remove key if present.

        Args:
            key: Storage key
        """
        with self._lock:
            self._data.pop(key, None)
            logger.debug("Removed key: %s", key)

    async def close(self) -> None:
        """Close store (no-op for in-memory store)."""
        logger.info("In-memory key/value store closed")


class SQLiteKeyValueStore:
    """Durable key/value store backed by a single SQLite table."""

    def __init__(self, db_path: str | Path) -> None:
        """Initialize store; the connection opens lazily on first use."""
        self._path = Path(db_path).resolve()
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create the connection and make sure the table exists."""
        if self._conn is not None:
            return self._conn

        async with self._lock:
            # Double-check after acquiring lock
            if self._conn is not None:
                return self._conn

            self._path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self._path))
            await conn.execute("PRAGMA journal_mode = WAL")
            await conn.execute("CREATE TABLE IF NOT EXISTS kv_store (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
            await conn.commit()
            self._conn = conn

            logger.info("Opened SQLite key/value store", extra={"db_path": str(self._path)})
            return conn

    async def get(self, key: str) -> str | None:
        """Fetch the value stored under ``key``."""
        try:
            conn = await self._get_connection()
            cursor = await conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cursor.fetchone()
            return row[0] if row else None
        except (aiosqlite.Error, OSError) as e:
            logger.error("kv_get_failed", extra={"key": key, "error": str(e)})
            msg = f"Failed to read {key} from local store: {e}"
            raise StorageFailureError(msg) from e

    async def set(self, key: str, value: str) -> None:
        """Insert or replace the value stored under ``key``."""
        try:
            conn = await self._get_connection()
            await conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            await conn.commit()
            logger.debug("Stored key: %s (%d bytes)", key, len(value))
        except (aiosqlite.Error, OSError) as e:
            logger.error("kv_set_failed", extra={"key": key, "error": str(e)})
            msg = f"Failed to write {key} to local store: {e}"
            raise StorageFailureError(msg) from e

    async def remove(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""
        try:
            conn = await self._get_connection()
            await conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await conn.commit()
            logger.debug("Removed key: %s", key)
        except (aiosqlite.Error, OSError) as e:
            logger.error("kv_remove_failed", extra={"key": key, "error": str(e)})
            msg = f"Failed to remove {key} from local store: {e}"
            raise StorageFailureError(msg) from e

    async def close(self) -> None:
        """Close the SQLite connection if open."""
        if self._conn is None:
            return
        try:
            await self._conn.close()
            logger.info("Closed SQLite key/value store", extra={"db_path": str(self._path)})
        except aiosqlite.Error as e:
            logger.warning("Error closing SQLite key/value store", extra={"error": str(e)})
        finally:
            self._conn = None


def create_kv_store(db_path: str | None = None) -> KeyValueStore:
    """Build the configured key/value store (``:memory:`` selects the in-process store)."""
    path = db_path or settings.sqlite_db_path
    if path == IN_MEMORY_PATH:
        return InMemoryKeyValueStore()
    return SQLiteKeyValueStore(path)
