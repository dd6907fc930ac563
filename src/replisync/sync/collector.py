"""
Change collection against a checkpoint.
"""

from __future__ import annotations

from datetime import datetime

from replisync.core.logging import get_logger
from replisync.core.models import Record
from replisync.storage.base import ReplicaStore

logger = get_logger(__name__)


def collect_changes(store: ReplicaStore, table: str, since: datetime | None) -> list[Record]:
    """
    Records of ``table`` changed after ``since``.

    Without a checkpoint the whole table is the baseline. Tombstones whose
    deleted_at is after the checkpoint are included even if updated_at is not.
    """
    records = store.get_changed_since(table, since)
    logger.debug(
        "Collected changes",
        store=store.name,
        table=table,
        since=since.isoformat() if since else None,
        count=len(records),
    )
    return records
