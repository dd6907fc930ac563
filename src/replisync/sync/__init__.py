"""
Replisync sync module.

Provides change collection, conflict resolution, per-record propagation,
and checkpointed pass orchestration.
"""

from replisync.sync.collector import collect_changes
from replisync.sync.orchestrator import SyncOrchestrator
from replisync.sync.propagation import (
    PropagationStep,
    ReplicaPair,
    StepPlan,
    plan_step,
    propagate,
)
from replisync.sync.resolver import is_deleted, pick_winner

__all__ = [
    "collect_changes",
    "SyncOrchestrator",
    "PropagationStep",
    "ReplicaPair",
    "StepPlan",
    "plan_step",
    "propagate",
    "is_deleted",
    "pick_winner",
]
