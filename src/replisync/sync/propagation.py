"""
Per-record propagation between the two replicas of a collection.

``plan_step`` is the decision table: given the current record on each side,
which sides changed since the checkpoint, and the collection's direction and
policy, it returns the writes to perform. ``propagate`` applies them.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import assert_never

from replisync.core.logging import get_logger
from replisync.core.models import ConflictPolicy, Direction, Record, Side, utc_now
from replisync.storage.base import ReplicaStore
from replisync.sync.resolver import is_deleted, pick_winner

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReplicaPair:
    """The two tables a collection synchronizes, possibly in different stores."""

    local_store: ReplicaStore
    local_table: str
    cloud_store: ReplicaStore
    cloud_table: str

    def fetch(self, side: Side, record_id: str) -> Record | None:
        if side is Side.LOCAL:
            return self.local_store.get_by_id(self.local_table, record_id)
        return self.cloud_store.get_by_id(self.cloud_table, record_id)

    def write(self, side: Side, record: Record) -> None:
        if side is Side.LOCAL:
            self.local_store.upsert(self.local_table, record)
        else:
            self.cloud_store.upsert(self.cloud_table, record)


@dataclass(frozen=True)
class PropagationStep:
    """Inputs for one changed id."""

    record_id: str
    local: Record | None
    cloud: Record | None
    local_changed: bool
    cloud_changed: bool


@dataclass
class StepPlan:
    """Writes decided for one id."""

    record_id: str
    action: str
    writes: list[tuple[Side, Record]] = field(default_factory=list)
    conflict: bool = False

    @property
    def is_noop(self) -> bool:
        return not self.writes


def _copy(step: PropagationStep, source: Side) -> StepPlan:
    record = step.local if source is Side.LOCAL else step.cloud
    assert record is not None
    target = Side.CLOUD if source is Side.LOCAL else Side.LOCAL
    return StepPlan(
        record_id=step.record_id,
        action=f"copy_{source.value}_to_{target.value}",
        writes=[(target, record)],
    )


def _noop(step: PropagationStep, reason: str) -> StepPlan:
    return StepPlan(record_id=step.record_id, action=f"noop:{reason}")


def _one_way(step: PropagationStep, source: Side) -> StepPlan:
    record = step.local if source is Side.LOCAL else step.cloud
    changed = step.local_changed if source is Side.LOCAL else step.cloud_changed
    if record is None:
        return _noop(step, f"{source.value}_absent")
    if not changed:
        # Unchanged source never overwrites the target, even if they differ.
        return _noop(step, f"{source.value}_unchanged")
    return _copy(step, source)


def _overwrite(step: PropagationStep, authority: Side) -> StepPlan:
    record = step.local if authority is Side.LOCAL else step.cloud
    if record is None:
        return _noop(step, f"{authority.value}_absent")
    return _copy(step, authority)


def _both_ways(
    step: PropagationStep,
    policy: ConflictPolicy,
    now: datetime,
) -> StepPlan:
    local, cloud = step.local, step.cloud
    if local is None and cloud is None:
        return _noop(step, "absent")
    if cloud is None:
        return _copy(step, Side.LOCAL)
    if local is None:
        return _copy(step, Side.CLOUD)

    if step.local_changed and not step.cloud_changed:
        return _copy(step, Side.LOCAL)
    if step.cloud_changed and not step.local_changed:
        return _copy(step, Side.CLOUD)
    if not step.local_changed and not step.cloud_changed:
        return _noop(step, "unchanged")
    if local == cloud:
        # A merge from an earlier pass lands after that pass's checkpoint.
        return _noop(step, "in_sync")

    winner = pick_winner(local, cloud, policy)
    if is_deleted(winner):
        return StepPlan(
            record_id=step.record_id,
            action="conflict_tombstone",
            writes=[(Side.LOCAL, winner), (Side.CLOUD, winner)],
            conflict=True,
        )

    # Both sides must land on the same version, past either input.
    merged = replace(
        winner,
        version=max(local.version, cloud.version) + 1,
        updated_at=now,
    )
    return StepPlan(
        record_id=step.record_id,
        action="conflict_merge",
        writes=[(Side.LOCAL, merged), (Side.CLOUD, merged)],
        conflict=True,
    )


def plan_step(
    step: PropagationStep,
    direction: Direction,
    policy: ConflictPolicy,
    now: datetime,
) -> StepPlan:
    """Decide which replica(s) to write for one changed id."""
    if direction is Direction.LOCAL_TO_CLOUD:
        return _one_way(step, Side.LOCAL)
    if direction is Direction.CLOUD_TO_LOCAL:
        return _one_way(step, Side.CLOUD)
    if direction is Direction.OVERWRITE_LOCAL:
        return _overwrite(step, Side.CLOUD)
    if direction is Direction.OVERWRITE_CLOUD:
        return _overwrite(step, Side.LOCAL)
    if direction is Direction.BOTH:
        return _both_ways(step, policy, now)
    assert_never(direction)


def propagate(
    replicas: ReplicaPair,
    step: PropagationStep,
    direction: Direction,
    policy: ConflictPolicy,
    clock: Callable[[], datetime] = utc_now,
) -> StepPlan:
    """
    Plan and apply the writes for one changed id.

    Writes happen in plan order and are not transacted across replicas.
    Storage errors propagate to the caller.
    """
    plan = plan_step(step, direction, policy, clock())
    for side, record in plan.writes:
        replicas.write(side, record)

    if plan.conflict:
        logger.info(
            "Resolved conflict",
            record_id=step.record_id,
            action=plan.action,
            policy=policy.value,
        )
    else:
        logger.debug("Propagated record", record_id=step.record_id, action=plan.action)
    return plan
