"""
Replisync data models.

Defines records, sync directions, conflict policies, and pass results.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp in the fixed-width form stored by replicas."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class Direction(Enum):
    """Which replica(s) a pass may write to."""

    LOCAL_TO_CLOUD = "l2c"
    CLOUD_TO_LOCAL = "c2l"
    BOTH = "both"
    OVERWRITE_LOCAL = "overwrite_local"
    OVERWRITE_CLOUD = "overwrite_cloud"


class ConflictPolicy(Enum):
    """Rule for picking a winner between two concurrently changed records."""

    LATEST_WINS = "latest_wins"
    PREFER_LOCAL = "prefer_local"
    PREFER_CLOUD = "prefer_cloud"


class Side(Enum):
    """One of the two replicas of a collection."""

    LOCAL = "local"
    CLOUD = "cloud"


@dataclass(frozen=True)
class Record:
    """A versioned record held by one replica."""

    id: str
    name: str
    quantity: int
    updated_at: datetime
    version: int = 1
    deleted_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.version < 1:
            raise ValueError(f"Record version must be >= 1, got {self.version}")

    @property
    def is_tombstone(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def create(cls, name: str, quantity: int, now: datetime | None = None) -> Record:
        """Create a first-version record with a fresh id."""
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            quantity=quantity,
            updated_at=now or utc_now(),
            version=1,
        )

    def with_quantity(self, quantity: int, now: datetime | None = None) -> Record:
        """Next version of this record with a new quantity."""
        return replace(
            self,
            quantity=quantity,
            updated_at=now or utc_now(),
            version=self.version + 1,
        )

    def soft_deleted(self, now: datetime | None = None) -> Record:
        """Next version of this record marked as a tombstone."""
        now = now or utc_now()
        return replace(self, deleted_at=now, updated_at=now, version=self.version + 1)

    def to_row(self) -> dict[str, Any]:
        """Convert to the storage boundary shape."""
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "updated_at": format_timestamp(self.updated_at),
            "deleted_at": format_timestamp(self.deleted_at) if self.deleted_at else None,
            "version": self.version,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Record:
        """Build a record from the storage boundary shape."""
        deleted_at = row.get("deleted_at")
        return cls(
            id=str(row["id"]),
            name=row["name"],
            quantity=int(row["quantity"]),
            updated_at=parse_timestamp(row["updated_at"]),
            deleted_at=parse_timestamp(deleted_at) if deleted_at else None,
            version=int(row["version"]),
        )


@dataclass
class PassResult:
    """Outcome of one sync pass over a collection."""

    collection: str
    direction: Direction
    conflict_policy: ConflictPolicy
    started_at: datetime
    ended_at: datetime | None = None
    checkpoint: datetime | None = None
    checkpoint_written: datetime | None = None
    local_changes: int = 0
    cloud_changes: int = 0
    ids_processed: int = 0
    local_writes: int = 0
    cloud_writes: int = 0
    conflicts: int = 0

    @property
    def writes(self) -> int:
        return self.local_writes + self.cloud_writes

    @property
    def duration_seconds(self) -> float | None:
        if self.ended_at:
            return (self.ended_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self.collection,
            "direction": self.direction.value,
            "conflict_policy": self.conflict_policy.value,
            "started_at": format_timestamp(self.started_at),
            "ended_at": format_timestamp(self.ended_at) if self.ended_at else None,
            "checkpoint": format_timestamp(self.checkpoint) if self.checkpoint else None,
            "checkpoint_written": (
                format_timestamp(self.checkpoint_written) if self.checkpoint_written else None
            ),
            "summary": {
                "local_changes": self.local_changes,
                "cloud_changes": self.cloud_changes,
                "ids_processed": self.ids_processed,
                "local_writes": self.local_writes,
                "cloud_writes": self.cloud_writes,
                "conflicts": self.conflicts,
            },
        }


@dataclass
class CollectionRunReport:
    """Per-collection entry of a multi-collection run."""

    collection: str
    success: bool
    result: PassResult | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self.collection,
            "success": self.success,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }
