"""Tests for the key-value stores (SQLite and in-memory)."""

from __future__ import annotations

import pytest

from mindsense.core.storage.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    SQLiteKeyValueStore,
)


@pytest.fixture(params=["memory", "sqlite_plain", "sqlite_encrypted"])
def store(request, state_db, field_encryptor):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    if request.param == "sqlite_plain":
        return SQLiteKeyValueStore(state_db)
    return SQLiteKeyValueStore(state_db, field_encryptor)


class TestProtocol:
    def test_implementations_satisfy_protocol(self, store):
        assert isinstance(store, KeyValueStore)


class TestBasicOperations:
    def test_missing_key_returns_default(self, store):
        assert store.load("nope") is None
        assert store.load("nope", 5) == 5

    def test_save_and_load(self, store):
        store.save("demo.metrics.v1", {"load": 50, "readiness": 74, "consistency": 78})
        assert store.load("demo.metrics.v1") == {"load": 50, "readiness": 74, "consistency": 78}

    def test_save_overwrites(self, store):
        store.save("demo.day.v1", 7)
        store.save("demo.day.v1", 8)
        assert store.load("demo.day.v1") == 8

    def test_false_value_is_stored(self, store):
        store.save("intro.seen.v1", False)
        assert store.contains("intro.seen.v1")
        assert store.load("intro.seen.v1", True) is False

    def test_remove(self, store):
        store.save("a", 1)
        store.remove("a")
        assert not store.contains("a")
        store.remove("a")

    def test_keys_with_prefix(self, store):
        store.save("onboarding.progress.b@x.io", {})
        store.save("onboarding.progress.a@x.io", {})
        store.save("demo.day.v1", 3)
        assert store.keys("onboarding.progress.") == [
            "onboarding.progress.a@x.io",
            "onboarding.progress.b@x.io",
        ]
        assert len(store.keys()) == 3

    def test_clear(self, store):
        store.save("a", 1)
        store.save("b", 2)
        store.clear()
        assert store.keys() == []


class TestEncryptionAtRest:
    def test_encrypted_value_not_plaintext(self, state_db, field_encryptor):
        store = SQLiteKeyValueStore(state_db, field_encryptor)
        store.save("auth.session.email.v2", "user@example.com")
        row = state_db.connection.execute(
            "SELECT value_json, encrypted FROM kv_entries WHERE key = ?",
            ("auth.session.email.v2",),
        ).fetchone()
        assert row["encrypted"] == 1
        assert "user@example.com" not in row["value_json"]
        assert store.encrypted

    def test_plain_store_writes_json(self, state_db):
        store = SQLiteKeyValueStore(state_db)
        store.save("demo.scenario.v1", "balanced_day")
        row = state_db.connection.execute(
            "SELECT value_json, encrypted FROM kv_entries WHERE key = ?",
            ("demo.scenario.v1",),
        ).fetchone()
        assert row["encrypted"] == 0
        assert row["value_json"] == '"balanced_day"'

    def test_encrypted_value_unreadable_without_key(self, state_db, field_encryptor):
        SQLiteKeyValueStore(state_db, field_encryptor).save("secret", {"x": 1})
        assert SQLiteKeyValueStore(state_db).load("secret", "fallback") == "fallback"
