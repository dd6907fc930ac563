"""
Replisync storage backends.

Provides the replica and checkpoint store interfaces and their SQLite and
in-memory implementations.
"""

from replisync.storage.base import CheckpointStore, ReplicaStore
from replisync.storage.memory import MemoryCheckpointStore, MemoryReplicaStore
from replisync.storage.sqlite import (
    SQLiteCheckpointStore,
    SQLiteDatabase,
    SQLiteReplicaStore,
    open_stores,
)

__all__ = [
    "CheckpointStore",
    "ReplicaStore",
    "MemoryCheckpointStore",
    "MemoryReplicaStore",
    "SQLiteCheckpointStore",
    "SQLiteDatabase",
    "SQLiteReplicaStore",
    "open_stores",
]
