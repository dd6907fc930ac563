"""
Replisync pass orchestration.

Runs checkpointed sync passes for configured collections. A pass collects
changes from both replicas, propagates each changed id, and advances the
collection checkpoint only when every id succeeded.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from replisync.core.config import CollectionConfig
from replisync.core.errors import ReplisyncError
from replisync.core.logging import OperationLogger, get_logger
from replisync.core.models import CollectionRunReport, PassResult, Side, utc_now
from replisync.storage.base import CheckpointStore, ReplicaStore
from replisync.sync.collector import collect_changes
from replisync.sync.propagation import PropagationStep, ReplicaPair, propagate

logger = get_logger(__name__)


class SyncOrchestrator:
    """
    Runs sync passes for a set of collections.

    The orchestrator holds no lock: callers must not run two passes for the
    same collection at once.
    """

    def __init__(
        self,
        collections: Iterable[CollectionConfig],
        local_store: ReplicaStore,
        checkpoints: CheckpointStore,
        cloud_store: ReplicaStore | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.collections = list(collections)
        self.local_store = local_store
        self.cloud_store = cloud_store or local_store
        self.checkpoints = checkpoints
        self.clock = clock

    def replicas_for(self, collection: CollectionConfig) -> ReplicaPair:
        return ReplicaPair(
            local_store=self.local_store,
            local_table=collection.local_table,
            cloud_store=self.cloud_store,
            cloud_table=collection.cloud_table,
        )

    def run_pass(self, collection: CollectionConfig) -> PassResult:
        """
        Run one sync pass for a collection.

        The checkpoint is set to the pass start time, and only if every
        changed id propagated without error. Errors are re-raised.
        """
        started_at = self.clock()
        replicas = self.replicas_for(collection)
        result = PassResult(
            collection=collection.name,
            direction=collection.direction,
            conflict_policy=collection.conflict_policy,
            started_at=started_at,
        )

        with OperationLogger(
            "sync pass",
            logger,
            collection=collection.name,
            direction=collection.direction.value,
            policy=collection.conflict_policy.value,
        ) as op:
            replicas.local_store.ensure_table(replicas.local_table)
            replicas.cloud_store.ensure_table(replicas.cloud_table)

            since = self.checkpoints.get_last_sync_at(collection.name)
            result.checkpoint = since

            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="replisync") as executor:
                local_future = executor.submit(
                    collect_changes, replicas.local_store, replicas.local_table, since
                )
                cloud_future = executor.submit(
                    collect_changes, replicas.cloud_store, replicas.cloud_table, since
                )
                local_changes = local_future.result()
                cloud_changes = cloud_future.result()

                local_ids = {r.id for r in local_changes}
                cloud_ids = {r.id for r in cloud_changes}
                result.local_changes = len(local_ids)
                result.cloud_changes = len(cloud_ids)

                for record_id in sorted(local_ids | cloud_ids):
                    local_read = executor.submit(replicas.fetch, Side.LOCAL, record_id)
                    cloud_read = executor.submit(replicas.fetch, Side.CLOUD, record_id)
                    step = PropagationStep(
                        record_id=record_id,
                        local=local_read.result(),
                        cloud=cloud_read.result(),
                        local_changed=record_id in local_ids,
                        cloud_changed=record_id in cloud_ids,
                    )
                    plan = propagate(
                        replicas,
                        step,
                        collection.direction,
                        collection.conflict_policy,
                        clock=self.clock,
                    )
                    result.ids_processed += 1
                    result.conflicts += int(plan.conflict)
                    for side, _record in plan.writes:
                        if side is Side.LOCAL:
                            result.local_writes += 1
                        else:
                            result.cloud_writes += 1

            self.checkpoints.set_last_sync_at(collection.name, started_at)
            result.checkpoint_written = started_at
            result.ended_at = self.clock()
            op.update(
                ids=result.ids_processed,
                writes=result.writes,
                conflicts=result.conflicts,
            )

        return result

    def run_all(self, names: Iterable[str] | None = None) -> list[CollectionRunReport]:
        """
        Run one pass per collection, optionally restricted to ``names``.

        A failing collection is reported and does not stop the others.
        """
        selected = self.collections
        if names:
            wanted = set(names)
            selected = [c for c in self.collections if c.name in wanted]

        reports: list[CollectionRunReport] = []
        for collection in selected:
            try:
                result = self.run_pass(collection)
            except ReplisyncError as e:
                logger.error("Sync failed", collection=collection.name, error=str(e))
                reports.append(
                    CollectionRunReport(collection=collection.name, success=False, error=str(e))
                )
                continue
            reports.append(CollectionRunReport(collection=collection.name, success=True, result=result))
        return reports
