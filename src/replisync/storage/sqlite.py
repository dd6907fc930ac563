"""
SQLite-backed replica and checkpoint stores.

Both replicas of a collection live as separate tables in one database file,
next to a ``sync_state`` table holding checkpoints. Every operation opens a
short-lived connection, so the stores can be shared across worker threads.
"""

from __future__ import annotations

import re
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from replisync.core.errors import StorageError
from replisync.core.logging import get_logger
from replisync.core.models import Record, format_timestamp, parse_timestamp
from replisync.storage.base import CheckpointStore, ReplicaStore

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

CHECKPOINT_TABLE = "sync_state"
BUSY_TIMEOUT_SECONDS = 30.0


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Row factory that returns rows as dictionaries."""
    fields = [column[0] for column in cursor.description]
    return dict(zip(fields, row))


def _check_table(table: str) -> str:
    # Table names are interpolated into SQL, parameters cannot bind them.
    if not _IDENTIFIER.match(table):
        raise StorageError(f"Invalid table name: {table!r}", table=table, operation="validate")
    return table


def _decode(table: str, row: dict[str, Any]) -> Record:
    """Build a record from a stored row, rejecting malformed values."""
    try:
        return Record.from_row(row)
    except (ValueError, KeyError, TypeError) as e:
        raise StorageError(
            f"Malformed row {row.get('id')!r}: {e}", table=table, operation="decode"
        ) from e


def _decode_timestamp(table: str, value: str) -> datetime:
    try:
        return parse_timestamp(value)
    except (ValueError, TypeError) as e:
        raise StorageError(f"Malformed timestamp {value!r}", table=table, operation="decode") from e


def _second_prefix(value: datetime) -> str:
    # "YYYY-MM-DDTHH:MM:SS", shared by every UTC ISO rendering of that second.
    return format_timestamp(value)[:19]


class SQLiteDatabase:
    """Connection factory for one SQLite database file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def initialize(self) -> None:
        """Create the database file, enable WAL, and provision ``sync_state``."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connect("initialize", CHECKPOINT_TABLE) as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {CHECKPOINT_TABLE} (
                    entity TEXT PRIMARY KEY,
                    last_sync_at TEXT NOT NULL
                )
                """
            )
        logger.debug("Database initialized", path=str(self.path))

    @contextmanager
    def connect(self, operation: str, table: str | None = None) -> Iterator[sqlite3.Connection]:
        """
        Open a connection that commits on success and rolls back on error.

        Any sqlite3 error is re-raised as StorageError.
        """
        try:
            conn = sqlite3.connect(str(self.path), timeout=BUSY_TIMEOUT_SECONDS)
        except sqlite3.Error as e:
            raise StorageError(str(e), table=table, operation=operation) from e

        conn.row_factory = dict_factory
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StorageError(str(e), table=table, operation=operation) from e
        finally:
            conn.close()


class SQLiteReplicaStore(ReplicaStore):
    """Replica tables stored in a SQLite database."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self.database = database

    @property
    def name(self) -> str:
        return "sqlite"

    def ensure_table(self, table: str) -> None:
        table = _check_table(table)
        with self.database.connect("ensure_table", table) as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    quantity INTEGER NOT NULL,
                    updated_at TEXT NOT NULL,
                    deleted_at TEXT,
                    version INTEGER NOT NULL
                )
                """
            )
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{table}_updated ON {table}(updated_at)")
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{table}_deleted ON {table}(deleted_at)")

    def get_changed_since(self, table: str, since: datetime | None) -> list[Record]:
        """
        Records changed after ``since``.

        Stored timestamps must be UTC ISO-8601 (``+00:00`` or ``Z``). SQL
        narrows rows to the checkpoint's second by string order, then the
        exact comparison is done on parsed datetimes, so rows written with a
        different fractional width or a ``Z`` suffix compare correctly.
        """
        table = _check_table(table)
        with self.database.connect("get_changed_since", table) as conn:
            if since is None:
                rows = conn.execute(f"SELECT * FROM {table} ORDER BY id").fetchall()
            else:
                prefix = _second_prefix(since)
                rows = conn.execute(
                    f"""
                    SELECT * FROM {table}
                    WHERE updated_at >= ? OR (deleted_at IS NOT NULL AND deleted_at >= ?)
                    ORDER BY id
                    """,
                    (prefix, prefix),
                ).fetchall()

        records = [_decode(table, row) for row in rows]
        if since is None:
            return records
        return [
            r
            for r in records
            if r.updated_at > since or (r.deleted_at is not None and r.deleted_at > since)
        ]

    def get_by_id(self, table: str, record_id: str) -> Record | None:
        table = _check_table(table)
        with self.database.connect("get_by_id", table) as conn:
            row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()
        return _decode(table, row) if row else None

    def list_records(self, table: str, include_deleted: bool = True) -> list[Record]:
        table = _check_table(table)
        query = f"SELECT * FROM {table}"
        if not include_deleted:
            query += " WHERE deleted_at IS NULL"
        with self.database.connect("list_records", table) as conn:
            rows = conn.execute(query + " ORDER BY id").fetchall()
        return [_decode(table, row) for row in rows]

    def upsert(self, table: str, record: Record) -> None:
        table = _check_table(table)
        row = record.to_row()
        with self.database.connect("upsert", table) as conn:
            conn.execute(
                f"""
                INSERT INTO {table}(id, name, quantity, updated_at, deleted_at, version)
                VALUES(:id, :name, :quantity, :updated_at, :deleted_at, :version)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    quantity = excluded.quantity,
                    updated_at = excluded.updated_at,
                    deleted_at = excluded.deleted_at,
                    version = excluded.version
                """,
                row,
            )

    def hard_delete(self, table: str, record_id: str) -> bool:
        table = _check_table(table)
        with self.database.connect("hard_delete", table) as conn:
            cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
        return cursor.rowcount > 0


class SQLiteCheckpointStore(CheckpointStore):
    """Checkpoints stored in the ``sync_state`` table."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self.database = database

    def get_last_sync_at(self, collection: str) -> datetime | None:
        with self.database.connect("get_last_sync_at", CHECKPOINT_TABLE) as conn:
            row = conn.execute(
                f"SELECT last_sync_at FROM {CHECKPOINT_TABLE} WHERE entity = ?",
                (collection,),
            ).fetchone()
        return _decode_timestamp(CHECKPOINT_TABLE, row["last_sync_at"]) if row else None

    def set_last_sync_at(self, collection: str, timestamp: datetime) -> None:
        with self.database.connect("set_last_sync_at", CHECKPOINT_TABLE) as conn:
            conn.execute(
                f"""
                INSERT INTO {CHECKPOINT_TABLE}(entity, last_sync_at) VALUES(?, ?)
                ON CONFLICT(entity) DO UPDATE SET last_sync_at = excluded.last_sync_at
                """,
                (collection, format_timestamp(timestamp)),
            )

    def list_checkpoints(self) -> dict[str, datetime]:
        with self.database.connect("list_checkpoints", CHECKPOINT_TABLE) as conn:
            rows = conn.execute(
                f"SELECT entity, last_sync_at FROM {CHECKPOINT_TABLE} ORDER BY entity"
            ).fetchall()
        return {row["entity"]: _decode_timestamp(CHECKPOINT_TABLE, row["last_sync_at"]) for row in rows}


def open_stores(database_file: Path | str) -> tuple[SQLiteReplicaStore, SQLiteCheckpointStore]:
    """Open (and provision) a database file, returning its replica and checkpoint stores."""
    database = SQLiteDatabase(database_file)
    database.initialize()
    return SQLiteReplicaStore(database), SQLiteCheckpointStore(database)
