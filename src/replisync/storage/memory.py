"""
In-memory replica and checkpoint stores.

Thread-safe dict-backed stores, mainly for tests and dry runs. ``fail_on``
lets callers inject storage failures for a given operation, table and id.
"""

from __future__ import annotations

import threading
from datetime import datetime

from replisync.core.errors import StorageError
from replisync.core.models import Record
from replisync.storage.base import CheckpointStore, ReplicaStore


class MemoryReplicaStore(ReplicaStore):
    """Replica tables held in process memory."""

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Record]] = {}
        self._lock = threading.Lock()
        self._failures: set[tuple[str, str, str | None]] = set()
        self.writes: list[tuple[str, Record]] = []

    @property
    def name(self) -> str:
        return "memory"

    def fail_on(self, operation: str, table: str, record_id: str | None = None) -> None:
        """Make ``operation`` on ``table`` (optionally for one id) raise StorageError."""
        self._failures.add((operation, table, record_id))

    def clear_failures(self) -> None:
        self._failures.clear()

    def _maybe_fail(self, operation: str, table: str, record_id: str | None = None) -> None:
        if (operation, table, None) in self._failures or (
            record_id is not None and (operation, table, record_id) in self._failures
        ):
            raise StorageError("injected failure", table=table, operation=operation)

    def _table(self, table: str) -> dict[str, Record]:
        try:
            return self._tables[table]
        except KeyError:
            raise StorageError("no such table", table=table, operation="lookup") from None

    def ensure_table(self, table: str) -> None:
        self._maybe_fail("ensure_table", table)
        with self._lock:
            self._tables.setdefault(table, {})

    def get_changed_since(self, table: str, since: datetime | None) -> list[Record]:
        self._maybe_fail("get_changed_since", table)
        with self._lock:
            records = list(self._table(table).values())
        if since is not None:
            records = [
                r
                for r in records
                if r.updated_at > since or (r.deleted_at is not None and r.deleted_at > since)
            ]
        return sorted(records, key=lambda r: r.id)

    def get_by_id(self, table: str, record_id: str) -> Record | None:
        self._maybe_fail("get_by_id", table, record_id)
        with self._lock:
            return self._table(table).get(record_id)

    def list_records(self, table: str, include_deleted: bool = True) -> list[Record]:
        with self._lock:
            records = list(self._table(table).values())
        if not include_deleted:
            records = [r for r in records if r.deleted_at is None]
        return sorted(records, key=lambda r: r.id)

    def upsert(self, table: str, record: Record) -> None:
        self._maybe_fail("upsert", table, record.id)
        with self._lock:
            self._table(table)[record.id] = record
            self.writes.append((table, record))

    def hard_delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            return self._table(table).pop(record_id, None) is not None


class MemoryCheckpointStore(CheckpointStore):
    """Checkpoints held in process memory."""

    def __init__(self) -> None:
        self._checkpoints: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def get_last_sync_at(self, collection: str) -> datetime | None:
        with self._lock:
            return self._checkpoints.get(collection)

    def set_last_sync_at(self, collection: str, timestamp: datetime) -> None:
        with self._lock:
            self._checkpoints[collection] = timestamp

    def list_checkpoints(self) -> dict[str, datetime]:
        with self._lock:
            return dict(sorted(self._checkpoints.items()))
