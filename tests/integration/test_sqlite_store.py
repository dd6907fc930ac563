"""
Integration tests for the SQLite replica and checkpoint stores.
"""

import sqlite3
from datetime import timedelta
from pathlib import Path

import pytest

from replisync.core.errors import StorageError
from replisync.storage.sqlite import open_stores

pytestmark = pytest.mark.integration


def insert_raw_row(
    db_path: Path, table: str, record_id: str, updated_at: str, version: int = 1
) -> None:
    """Write a row directly, bypassing the store's encoding."""
    conn = sqlite3.connect(db_path)
    try:
        with conn:
            conn.execute(
                f"INSERT INTO {table}(id, name, quantity, updated_at, deleted_at, version) "
                "VALUES(?, 'Raw', 1, ?, NULL, ?)",
                (record_id, updated_at, version),
            )
    finally:
        conn.close()


@pytest.fixture
def stores(temp_dir: Path):
    replica, checkpoints = open_stores(temp_dir / "nested" / "sync.sqlite")
    replica.ensure_table("local_items")
    return replica, checkpoints


class TestSchema:
    """Tests for schema provisioning."""

    def test_creates_database_and_indexes(self, temp_dir: Path, stores) -> None:
        replica, _ = stores
        replica.ensure_table("local_items")  # idempotent

        conn = sqlite3.connect(temp_dir / "nested" / "sync.sqlite")
        try:
            names = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type IN ('table', 'index')")
            }
            journal_mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        finally:
            conn.close()

        assert {"sync_state", "local_items", "idx_local_items_updated", "idx_local_items_deleted"} <= names
        assert journal_mode == "wal"

    def test_rejects_unsafe_table_names(self, stores) -> None:
        replica, _ = stores
        with pytest.raises(StorageError):
            replica.ensure_table("items; DROP TABLE sync_state")

    def test_missing_table_is_storage_error(self, stores) -> None:
        replica, _ = stores
        with pytest.raises(StorageError) as exc_info:
            replica.get_by_id("never_created", "x")
        assert exc_info.value.operation == "get_by_id"


class TestReplicaStore:
    """Tests for SQLiteReplicaStore reads and writes."""

    def test_upsert_and_get(self, stores, make_record, t0) -> None:
        replica, _ = stores
        record = make_record("x", name="Pears", quantity=3)
        replica.upsert("local_items", record)
        assert replica.get_by_id("local_items", "x") == record

        replaced = record.soft_deleted(t0 + timedelta(seconds=5))
        replica.upsert("local_items", replaced)
        assert replica.get_by_id("local_items", "x") == replaced
        assert len(replica.list_records("local_items")) == 1

    def test_get_missing(self, stores) -> None:
        replica, _ = stores
        assert replica.get_by_id("local_items", "nope") is None

    def test_changed_since(self, stores, make_record, t0) -> None:
        replica, _ = stores
        replica.upsert("local_items", make_record("old", at=t0 - timedelta(seconds=5)))
        replica.upsert("local_items", make_record("new", at=t0 + timedelta(seconds=5)))
        # Tombstone whose deleted_at is after the checkpoint but updated_at is not.
        replica.upsert(
            "local_items",
            make_record("gone", at=t0 - timedelta(seconds=5), deleted_at=t0 + timedelta(seconds=1)),
        )
        replica.upsert("local_items", make_record("edge", at=t0))

        assert [r.id for r in replica.get_changed_since("local_items", None)] == [
            "edge",
            "gone",
            "new",
            "old",
        ]
        assert [r.id for r in replica.get_changed_since("local_items", t0)] == ["gone", "new"]

    def test_changed_since_other_timestamp_renderings(self, temp_dir: Path, stores, t0) -> None:
        replica, _ = stores
        # Rows written by another tool: millisecond precision with a Z suffix.
        insert_raw_row(temp_dir / "nested" / "sync.sqlite", "local_items", "same", "2024-05-01T12:00:00.000Z")
        insert_raw_row(temp_dir / "nested" / "sync.sqlite", "local_items", "later", "2024-05-01T12:00:00.500Z")
        insert_raw_row(temp_dir / "nested" / "sync.sqlite", "local_items", "earlier", "2024-05-01T11:59:59.999Z")

        assert [r.id for r in replica.get_changed_since("local_items", t0)] == ["later"]

    def test_malformed_row_is_storage_error(self, temp_dir: Path, stores) -> None:
        replica, _ = stores
        insert_raw_row(temp_dir / "nested" / "sync.sqlite", "local_items", "bad", "not-a-date")

        with pytest.raises(StorageError) as exc_info:
            replica.list_records("local_items")
        assert exc_info.value.operation == "decode"
        assert exc_info.value.table == "local_items"

        with pytest.raises(StorageError):
            replica.get_by_id("local_items", "bad")

    def test_list_live_only(self, stores, make_record, t0) -> None:
        replica, _ = stores
        replica.upsert("local_items", make_record("a"))
        replica.upsert("local_items", make_record("b", deleted_at=t0))
        assert [r.id for r in replica.list_records("local_items", include_deleted=False)] == ["a"]

    def test_hard_delete(self, stores, make_record) -> None:
        replica, _ = stores
        replica.upsert("local_items", make_record("a"))
        assert replica.hard_delete("local_items", "a") is True
        assert replica.hard_delete("local_items", "a") is False


class TestCheckpointStore:
    """Tests for SQLiteCheckpointStore."""

    def test_absent_before_first_pass(self, stores) -> None:
        _, checkpoints = stores
        assert checkpoints.get_last_sync_at("items") is None
        assert checkpoints.list_checkpoints() == {}

    def test_upsert_overwrites(self, stores, t0) -> None:
        _, checkpoints = stores
        checkpoints.set_last_sync_at("items", t0)
        checkpoints.set_last_sync_at("items", t0 + timedelta(hours=1))
        checkpoints.set_last_sync_at("other", t0)

        assert checkpoints.get_last_sync_at("items") == t0 + timedelta(hours=1)
        assert checkpoints.list_checkpoints() == {"items": t0 + timedelta(hours=1), "other": t0}
