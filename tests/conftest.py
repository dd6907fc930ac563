"""
Pytest configuration and fixtures for Replisync tests.
"""

import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from replisync.core.config import CollectionConfig  # noqa: E402
from replisync.core.models import ConflictPolicy, Direction, Record  # noqa: E402
from replisync.storage.memory import MemoryCheckpointStore, MemoryReplicaStore  # noqa: E402

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Deterministic clock; returns the same instant until advanced."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


def _make_record(
    record_id: str,
    name: str = "Apples",
    quantity: int = 1,
    at: datetime = T0,
    version: int = 1,
    deleted_at: datetime | None = None,
) -> Record:
    return Record(
        id=record_id,
        name=name,
        quantity=quantity,
        updated_at=at,
        version=version,
        deleted_at=deleted_at,
    )


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def make_record():
    """Factory for records with defaults anchored at T0."""
    return _make_record


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(T0 + timedelta(minutes=10))


@pytest.fixture
def replica_store() -> MemoryReplicaStore:
    store = MemoryReplicaStore()
    store.ensure_table("local_items")
    store.ensure_table("cloud_items")
    return store


@pytest.fixture
def checkpoint_store() -> MemoryCheckpointStore:
    return MemoryCheckpointStore()


@pytest.fixture
def make_collection():
    """Factory for an ``items`` collection with a given direction and policy."""

    def _make(
        direction: Direction = Direction.BOTH,
        policy: ConflictPolicy = ConflictPolicy.LATEST_WINS,
        name: str = "items",
        local_table: str = "local_items",
        cloud_table: str = "cloud_items",
    ) -> CollectionConfig:
        return CollectionConfig(
            name=name,
            local_table=local_table,
            cloud_table=cloud_table,
            direction=direction,
            conflict_policy=policy,
        )

    return _make


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
