"""
Replisync - Checkpointed two-replica record synchronization.

Keeps a "local" and a "cloud" copy of named record collections convergent
through discrete, checkpointed sync passes with deterministic conflict
resolution.
"""

__version__ = "1.0.0"
__author__ = "Replisync Team"

from replisync.core.config import ReplisyncConfig
from replisync.sync.orchestrator import SyncOrchestrator

__all__ = ["ReplisyncConfig", "SyncOrchestrator", "__version__"]
