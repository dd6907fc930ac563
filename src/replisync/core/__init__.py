"""
Replisync Core - Shared models, configuration, errors, and logging.
"""

from replisync.core.config import CollectionConfig, ReplisyncConfig, load_config
from replisync.core.errors import (
    ConfigurationError,
    RecordNotFoundError,
    ReplisyncError,
    StorageError,
)
from replisync.core.logging import get_logger, setup_logging
from replisync.core.models import ConflictPolicy, Direction, PassResult, Record

__all__ = [
    "CollectionConfig",
    "ReplisyncConfig",
    "load_config",
    "ConfigurationError",
    "RecordNotFoundError",
    "ReplisyncError",
    "StorageError",
    "get_logger",
    "setup_logging",
    "ConflictPolicy",
    "Direction",
    "PassResult",
    "Record",
]
