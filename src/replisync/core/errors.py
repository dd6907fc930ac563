"""
Replisync error types.
"""

from __future__ import annotations


class ReplisyncError(Exception):
    """Base class for all Replisync errors."""


class ConfigurationError(ReplisyncError):
    """Raised when configuration is missing or invalid."""


class StorageError(ReplisyncError):
    """Raised when a replica or checkpoint read/write fails."""

    def __init__(
        self,
        message: str,
        table: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.table = table
        self.operation = operation

    def __str__(self) -> str:
        message = super().__str__()
        if self.operation and self.table:
            return f"{self.operation} on {self.table}: {message}"
        return message


class RecordNotFoundError(ReplisyncError):
    """Raised by maintenance helpers when a record id does not exist."""

    def __init__(self, table: str, record_id: str) -> None:
        super().__init__(f"No record {record_id} in {table}")
        self.table = table
        self.record_id = record_id
