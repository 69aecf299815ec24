"""Key-value storage backends for the catalog.

The catalog persists a single JSON document under one key, so every backend
only needs ``get``, ``set`` and ``remove``.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Dict, Optional, Protocol

from catalog.config import Settings, settings as default_settings
from catalog.errors import StorageError

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Dictionary backed storage for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SqliteStorage:
    """Stores values in a ``kv_store`` table of an SQLite database file.

    A connection is opened per operation; the table is created on first use.
    """

    def __init__(self, db_file: str) -> None:
        self.db_file = db_file
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_file)
        conn.row_factory = sqlite3.Row
        if not self._initialized:
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.commit()
            except sqlite3.Error:
                conn.close()
                raise
            self._initialized = True
        return conn

    def get(self, key: str) -> Optional[str]:
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise StorageError(f"Could not open {self.db_file}: {e}") from e
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else None
        except sqlite3.Error as e:
            raise StorageError(f"Could not read {key!r} from {self.db_file}: {e}") from e
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise StorageError(f"Could not open {self.db_file}: {e}") from e
        try:
            conn.execute(
                "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP",
                (key, value),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Could not write {key!r} to {self.db_file}: {e}") from e
        finally:
            conn.close()

    def remove(self, key: str) -> None:
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise StorageError(f"Could not open {self.db_file}: {e}") from e
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Could not remove {key!r} from {self.db_file}: {e}") from e
        finally:
            conn.close()


def get_storage(config: Optional[Settings] = None) -> Storage:
    """Build the storage backend selected by the settings."""
    config = config or default_settings
    backend = config.storage_backend.lower()
    if backend == "memory":
        logger.info("Using in-memory storage; nothing will survive this process")
        return MemoryStorage()
    if backend == "sqlite":
        return SqliteStorage(config.db_file)
    raise ValueError(f"Unknown storage backend: {config.storage_backend}")
