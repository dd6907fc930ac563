"""
Tests for replisync.maintenance module.
"""

from datetime import timedelta

import pytest

from replisync.core.errors import RecordNotFoundError
from replisync.maintenance import purge, seed_demo_data, soft_delete, update_quantity


class TestEdits:
    """Tests for direct replica edits."""

    def test_update_quantity(self, replica_store, make_record, t0) -> None:
        replica_store.upsert("local_items", make_record("x", quantity=1, version=2))
        later = t0 + timedelta(minutes=1)

        record = update_quantity(replica_store, "local_items", "x", 42, now=later)

        assert record.quantity == 42
        assert record.version == 3
        assert replica_store.get_by_id("local_items", "x") == record
        assert replica_store.get_by_id("local_items", "x").updated_at == later

    def test_soft_delete(self, replica_store, make_record, t0) -> None:
        replica_store.upsert("cloud_items", make_record("x"))
        later = t0 + timedelta(minutes=1)

        record = soft_delete(replica_store, "cloud_items", "x", now=later)

        assert record.deleted_at == later
        assert replica_store.get_by_id("cloud_items", "x").version == 2

    def test_unknown_id(self, replica_store) -> None:
        with pytest.raises(RecordNotFoundError):
            update_quantity(replica_store, "local_items", "missing", 1)
        with pytest.raises(RecordNotFoundError):
            soft_delete(replica_store, "local_items", "missing")
        with pytest.raises(RecordNotFoundError):
            purge(replica_store, "local_items", "missing")

    def test_purge(self, replica_store, make_record) -> None:
        replica_store.upsert("local_items", make_record("x"))
        purge(replica_store, "local_items", "x")
        assert replica_store.get_by_id("local_items", "x") is None


class TestSeed:
    """Tests for demo seeding."""

    def test_seed_demo_data(self, replica_store) -> None:
        seeded = seed_demo_data(replica_store, "local_demo", "cloud_demo")

        local = replica_store.list_records("local_demo")
        cloud = replica_store.list_records("cloud_demo")
        assert sorted(r.name for r in local) == ["Apples", "Bananas"]
        assert [r.name for r in cloud] == ["Carrots"]
        assert [r.quantity for r in seeded["cloud"]] == [9]
        assert all(r.version == 1 for r in local + cloud)
