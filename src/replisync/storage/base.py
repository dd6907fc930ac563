"""
Replisync Storage Base.

Defines the abstract interfaces the sync core consumes from each replica
and from the checkpoint store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from replisync.core.models import Record


class ReplicaStore(ABC):
    """Abstract base class for a store holding replica tables of records."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Store name for logs (e.g., 'sqlite', 'memory')."""

    # ==================== Schema ====================

    @abstractmethod
    def ensure_table(self, table: str) -> None:
        """Create the table and its updated_at/deleted_at lookups if absent."""

    # ==================== Reads ====================

    @abstractmethod
    def get_changed_since(self, table: str, since: datetime | None) -> list[Record]:
        """
        Records changed after ``since``.

        With no checkpoint every record is returned. Otherwise a record is
        returned if its updated_at, or its deleted_at when present, is
        strictly after ``since``. The comparison is on instants, not on the
        stored text. A row that cannot be decoded raises StorageError.
        """

    @abstractmethod
    def get_by_id(self, table: str, record_id: str) -> Record | None:
        """Current record for an id, or None if the table has no such row."""

    @abstractmethod
    def list_records(self, table: str, include_deleted: bool = True) -> list[Record]:
        """All records in a table, ordered by id."""

    # ==================== Writes ====================

    @abstractmethod
    def upsert(self, table: str, record: Record) -> None:
        """Replace or insert the full row keyed by the record id."""

    @abstractmethod
    def hard_delete(self, table: str, record_id: str) -> bool:
        """
        Physically remove a row.
        Returns True if a row was removed. Never called by the sync core.
        """


class CheckpointStore(ABC):
    """Abstract base class for the durable per-collection checkpoint map."""

    @abstractmethod
    def get_last_sync_at(self, collection: str) -> datetime | None:
        """Timestamp of the last successful pass, or None before the first."""

    @abstractmethod
    def set_last_sync_at(self, collection: str, timestamp: datetime) -> None:
        """Upsert the checkpoint for a collection."""

    @abstractmethod
    def list_checkpoints(self) -> dict[str, datetime]:
        """All stored checkpoints keyed by collection name."""
