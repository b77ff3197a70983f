"""SQLite-backed key-value store for credential records."""

from __future__ import annotations

import sqlite3
import time
from contextlib import closing
from pathlib import Path
from typing import Callable, Optional, Protocol


class CredentialStoreError(Exception):
    """Raised when the durable store cannot be read or written."""


class CredentialStore(Protocol):
    """Durable byte store keyed by fixed record identifiers."""

    def read(self, key: str) -> Optional[bytes]:
        ...

    def write(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        ...


class TokenCipher(Protocol):
    def encrypt(self, plaintext: bytes) -> bytes:
        ...

    def decrypt(self, ciphertext: bytes) -> bytes:
        ...


class SQLiteKVStore:
    """Simple key-value store with per-record expiry, enforced on read."""

    def __init__(
        self, db_path: str, *, clock: Callable[[], float] = time.time
    ) -> None:
        self._db_path = Path(db_path)
        self._clock = clock
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_records (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    expires_at REAL
                )
                """
            )

    def write(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl is not None else None
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    """
                    INSERT INTO kv_records (key, value, expires_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        expires_at = excluded.expires_at
                    """,
                    (key, value, expires_at),
                )
        except sqlite3.Error as exc:
            raise CredentialStoreError(f"Failed to write {key}: {exc}") from exc

    def read(self, key: str) -> Optional[bytes]:
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    "SELECT value, expires_at FROM kv_records WHERE key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise CredentialStoreError(f"Failed to read {key}: {exc}") from exc
        if not row:
            return None
        if row["expires_at"] is not None and row["expires_at"] <= self._clock():
            return None
        return bytes(row["value"])


class EncryptedKVStore:
    """Wrap another store so values are encrypted at rest."""

    def __init__(self, inner: CredentialStore, cipher: TokenCipher) -> None:
        self._inner = inner
        self._cipher = cipher

    def read(self, key: str) -> Optional[bytes]:
        value = self._inner.read(key)
        if value is None:
            return None
        return self._cipher.decrypt(value)

    def write(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        self._inner.write(key, self._cipher.encrypt(value), ttl)


__all__ = [
    "CredentialStore",
    "CredentialStoreError",
    "EncryptedKVStore",
    "SQLiteKVStore",
    "TokenCipher",
]
