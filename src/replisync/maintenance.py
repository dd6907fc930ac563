"""
Replica maintenance operations.

Direct edits made outside of sync passes: quantity updates, soft deletes,
hard purges, and demo seeding. Edits follow the record write rules (version
bump, updated_at set to the write time) so the next pass picks them up.
"""

from __future__ import annotations

from datetime import datetime

from replisync.core.errors import RecordNotFoundError
from replisync.core.logging import get_logger
from replisync.core.models import Record
from replisync.storage.base import ReplicaStore

logger = get_logger(__name__)


def _require(store: ReplicaStore, table: str, record_id: str) -> Record:
    record = store.get_by_id(table, record_id)
    if record is None:
        raise RecordNotFoundError(table, record_id)
    return record


def update_quantity(
    store: ReplicaStore,
    table: str,
    record_id: str,
    quantity: int,
    now: datetime | None = None,
) -> Record:
    """Set a record's quantity as a new version."""
    record = _require(store, table, record_id).with_quantity(quantity, now)
    store.upsert(table, record)
    logger.info("Updated quantity", table=table, record_id=record_id, quantity=quantity)
    return record


def soft_delete(
    store: ReplicaStore,
    table: str,
    record_id: str,
    now: datetime | None = None,
) -> Record:
    """Turn a record into a tombstone as a new version."""
    record = _require(store, table, record_id).soft_deleted(now)
    store.upsert(table, record)
    logger.info("Soft-deleted record", table=table, record_id=record_id)
    return record


def purge(store: ReplicaStore, table: str, record_id: str) -> None:
    """Physically remove a record from one replica."""
    if not store.hard_delete(table, record_id):
        raise RecordNotFoundError(table, record_id)
    logger.info("Purged record", table=table, record_id=record_id)


def seed_demo_data(
    store: ReplicaStore,
    local_table: str = "local_items",
    cloud_table: str = "cloud_items",
    now: datetime | None = None,
) -> dict[str, list[Record]]:
    """Create two records on the local side and one on the cloud side."""
    store.ensure_table(local_table)
    store.ensure_table(cloud_table)

    local = [Record.create("Apples", 5, now), Record.create("Bananas", 12, now)]
    cloud = [Record.create("Carrots", 9, now)]
    for record in local:
        store.upsert(local_table, record)
    for record in cloud:
        store.upsert(cloud_table, record)

    logger.info(
        "Seeded demo data",
        local=[r.name for r in local],
        cloud=[r.name for r in cloud],
    )
    return {"local": local, "cloud": cloud}
