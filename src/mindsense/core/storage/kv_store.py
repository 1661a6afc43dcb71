"""Key-value persistence for app state.

The account and bootstrap services talk to a narrow ``KeyValueStore``
protocol. ``SQLiteKeyValueStore`` is the on-disk implementation (values
optionally Fernet-encrypted); ``InMemoryKeyValueStore`` backs tests.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from mindsense.core.storage.database import StateDatabase
from mindsense.core.storage.encryption import FieldEncryptor

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Load/save/remove of JSON-serializable values by string key."""

    def load(self, key: str, default: Any = None) -> Any:
        ...

    def save(self, key: str, value: Any) -> None:
        ...

    def remove(self, key: str) -> None:
        ...

    def contains(self, key: str) -> bool:
        ...

    def keys(self, prefix: str = "") -> list[str]:
        ...

    def clear(self) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store. Values are round-tripped through JSON on save."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def load(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def save(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, separators=(",", ":"))

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def contains(self, key: str) -> bool:
        return key in self._data

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    def clear(self) -> None:
        self._data.clear()


class SQLiteKeyValueStore:
    """SQLite-backed store over the ``kv_entries`` table.

    When an encryptor is supplied every value is stored as a Fernet token;
    otherwise as plain JSON.

    Usage::

        db = StateDatabase(":memory:")
        db.initialize()
        store = SQLiteKeyValueStore(db, FieldEncryptor(key))
        store.save("mindsense.scenario", "balanced_day")
    """

    def __init__(self, database: StateDatabase, encryptor: FieldEncryptor | None = None) -> None:
        self._db = database
        self._enc = encryptor

    @property
    def encrypted(self) -> bool:
        return self._enc is not None

    def load(self, key: str, default: Any = None) -> Any:
        row = self._db.connection.execute(
            "SELECT value_json, encrypted FROM kv_entries WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return default
        if row["encrypted"]:
            if self._enc is None:
                logger.warning("Encrypted value for %s cannot be read without a key", key)
                return default
            return self._enc.decrypt(row["value_json"])
        return json.loads(row["value_json"])

    def save(self, key: str, value: Any) -> None:
        if self._enc is not None:
            payload, encrypted = self._enc.encrypt(value), 1
        else:
            payload, encrypted = json.dumps(value, separators=(",", ":")), 0

        conn = self._db.connection
        conn.execute(
            """INSERT INTO kv_entries (key, value_json, encrypted, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET
                   value_json = excluded.value_json,
                   encrypted = excluded.encrypted,
                   updated_at = excluded.updated_at""",
            (key, payload, encrypted, datetime.now(timezone.utc).isoformat()),
        )
        conn.commit()

    def remove(self, key: str) -> None:
        conn = self._db.connection
        conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
        conn.commit()

    def contains(self, key: str) -> bool:
        row = self._db.connection.execute(
            "SELECT 1 FROM kv_entries WHERE key = ?", (key,)
        ).fetchone()
        return row is not None

    def keys(self, prefix: str = "") -> list[str]:
        rows = self._db.connection.execute(
            "SELECT key FROM kv_entries WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        ).fetchall()
        return [row["key"] for row in rows]

    def clear(self) -> None:
        conn = self._db.connection
        count = conn.execute("DELETE FROM kv_entries").rowcount
        conn.commit()
        logger.info("Cleared %d stored entries", count)
