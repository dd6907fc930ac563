"""
Conflict resolution between two concurrently changed versions of a record.

Both functions are pure so they can be tested without a storage backend.
"""

from __future__ import annotations

from typing import assert_never

from replisync.core.models import ConflictPolicy, Record


def pick_winner(local: Record, cloud: Record, policy: ConflictPolicy) -> Record:
    """
    Pick the winning record of a two-sided conflict.

    ``latest_wins`` compares updated_at, then version, then prefers the
    lexicographically smaller id, so the outcome never depends on which
    side is passed first when the records differ.
    """
    if policy is ConflictPolicy.PREFER_LOCAL:
        return local
    if policy is ConflictPolicy.PREFER_CLOUD:
        return cloud
    if policy is ConflictPolicy.LATEST_WINS:
        if local.updated_at != cloud.updated_at:
            return local if local.updated_at > cloud.updated_at else cloud
        if local.version != cloud.version:
            return local if local.version > cloud.version else cloud
        return local if local.id <= cloud.id else cloud
    assert_never(policy)


def is_deleted(record: Record | None) -> bool:
    """True iff the record exists and is a tombstone."""
    return record is not None and record.deleted_at is not None
