"""
Durable key-value storage backends for the state store.

Backends raise StorageUnavailableError when storage cannot be reached and
QuotaExceededError when a write does not fit. Callers that must never fail
wrap a backend in SafeStorage.
"""
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Optional

from src.shared.errors import QuotaExceededError, StorageUnavailableError


class KeyValueStorage:
    """Contract for text key-value storage."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix, sorted."""
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    """
    In-process storage.

    Args:
        quota_bytes: Maximum total size of stored values (None = unlimited)
        disabled: Simulate storage switched off by the environment
    """

    def __init__(self, quota_bytes: Optional[int] = None, disabled: bool = False):
        self.data: dict[str, str] = {}
        self.quota_bytes = quota_bytes
        self.disabled = disabled

    def _check_available(self):
        if self.disabled:
            raise StorageUnavailableError("Storage is disabled")

    def get(self, key: str) -> Optional[str]:
        self._check_available()
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check_available()
        if self.quota_bytes is not None:
            used = sum(len(v.encode("utf-8")) for k, v in self.data.items() if k != key)
            if used + len(value.encode("utf-8")) > self.quota_bytes:
                raise QuotaExceededError(f"Writing '{key}' exceeds quota of {self.quota_bytes} bytes")
        self.data[key] = value

    def remove(self, key: str) -> None:
        self._check_available()
        self.data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        self._check_available()
        return sorted(k for k in self.data if k.startswith(prefix))


class SqliteStorage(KeyValueStorage):
    """Key-value storage in a single SQLite table."""

    def __init__(self, db_path: Path):
        """
        Initialize storage.

        Args:
            db_path: Path to the SQLite file (parent directories are created)

        Raises:
            StorageUnavailableError: If the database cannot be created or opened
        """
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_schema()
        except (OSError, sqlite3.Error) as e:
            raise StorageUnavailableError(f"Cannot open {self.db_path}: {e}") from e

    def _init_schema(self):
        """Initialize kv_store table."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Cannot read '{key}': {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        now = datetime.now(UTC).isoformat()
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                    (key, value, now),
                )
                conn.commit()
        except sqlite3.Error as e:
            if _is_full_error(e):
                raise QuotaExceededError(f"Cannot write '{key}': {e}") from e
            raise StorageUnavailableError(f"Cannot write '{key}': {e}") from e

    def remove(self, key: str) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Cannot remove '{key}': {e}") from e

    def keys(self, prefix: str = "") -> list[str]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key ASC",
                    (len(prefix), prefix),
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Cannot list keys: {e}") from e
        return [r[0] for r in rows]


def _is_full_error(error: sqlite3.Error) -> bool:
    if getattr(error, "sqlite_errorcode", None) == sqlite3.SQLITE_FULL:
        return True
    return "full" in str(error).lower()
