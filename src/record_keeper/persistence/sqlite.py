"""SQLite record store with serialized async access using aiosqlite."""

import asyncio
import json
import logging
import os
import re
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

import aiosqlite

from record_keeper.errors import FetchError, StorageError
from record_keeper.models import Record
from record_keeper.persistence.base import RecordStore, run_to_completion

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_SYNCHRONOUS_MODES = frozenset({"OFF", "NORMAL", "FULL", "EXTRA"})


@dataclass
class SqliteRecordStoreConfig:
    """Configuration for SqliteRecordStore.

    Attributes:
        db_path: Path to the SQLite database file.
        table_name: Name of the table holding record rows.
        synchronous: SQLite ``synchronous`` pragma. ``FULL`` guarantees a
            committed write survives a crash or power loss.
    """

    db_path: Path
    table_name: str = field(default_factory=lambda: os.getenv("RECORD_KEEPER_TABLE", "records"))
    synchronous: str = "FULL"

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        if not _IDENTIFIER.match(self.table_name):
            raise ValueError(f"Invalid table name: {self.table_name!r}")
        self.synchronous = self.synchronous.upper()
        if self.synchronous not in _SYNCHRONOUS_MODES:
            raise ValueError(f"Invalid synchronous mode: {self.synchronous!r}")


class SqliteRecordStore(RecordStore):
    """Durable record store backed by a single aiosqlite connection.

    Every operation takes the store's lock before touching the connection, so
    at most one of cache, retrieve and delete runs against the database at a
    time. Waiters are served in arrival order. Writes run in an explicit
    transaction and return only after COMMIT. Each write runs in its own task,
    so cancelling the caller does not abandon it halfway: it still commits.

    Example:
        ```python
        async with SqliteRecordStore(SqliteRecordStoreConfig("records.db")) as store:
            await store.cache(Record.create("Alice"))
            records = await store.retrieve()
        ```
    """

    def __init__(self, config: SqliteRecordStoreConfig) -> None:
        """Initialize the SQLite record store.

        Args:
            config: Store configuration.
        """
        self._config = config
        self._db: aiosqlite.Connection | None = None
        self._closed = False
        self._lock = asyncio.Lock()

    @property
    def config(self) -> SqliteRecordStoreConfig:
        """Configuration this store was built with."""
        return self._config

    async def __aenter__(self) -> Self:
        """Enter async context manager and open the database.

        Returns:
            Self for context manager protocol.

        Raises:
            StorageError: If the database cannot be opened.
        """
        async with self._lock:
            self._ensure_usable()
            try:
                await self._connection()
            except sqlite3.Error as exc:
                raise StorageError(f"Failed to open {self._config.db_path}: {exc}") from exc
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager and close the database."""
        await self.close()

    def _ensure_usable(self) -> None:
        if self._closed:
            raise RuntimeError("Cannot use closed store")

    async def _connection(self) -> aiosqlite.Connection:
        """Return the open connection, opening it on first use. Lock must be held."""
        if self._db is None:
            await self._open()
        if self._db is None:
            raise RuntimeError("Database connection not open")
        return self._db

    async def _open(self) -> None:
        """Open the SQLite database connection."""
        db = await aiosqlite.connect(self._config.db_path, isolation_level=None)
        try:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA journal_mode = WAL")
            await db.execute(f"PRAGMA synchronous = {self._config.synchronous}")
            await self._ensure_schema(db)
        except BaseException:
            await db.close()
            raise
        self._db = db
        logger.debug(
            json.dumps(
                {
                    "event": "store_opened",
                    "store": "sqlite",
                    "path": str(self._config.db_path),
                }
            )
        )

    async def _ensure_schema(self, db: aiosqlite.Connection) -> None:
        """Create the record table if it doesn't exist."""
        await db.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._config.table_name} (
                id TEXT PRIMARY KEY NOT NULL,
                name TEXT NOT NULL
            )
            """
        )

    async def _rollback(self, db: aiosqlite.Connection) -> None:
        if db.in_transaction:
            await db.execute("ROLLBACK")

    async def cache(self, record: Record) -> None:
        """Insert a new row for ``record`` and commit it.

        Args:
            record: Record to persist. Its id must not already be stored.

        Raises:
            StorageError: If the insert or commit fails, including a duplicate id.
            RuntimeError: If the store has been closed.
        """
        await run_to_completion(self._cache(record))

    async def _cache(self, record: Record) -> None:
        async with self._lock:
            self._ensure_usable()
            try:
                db = await self._connection()
                await db.execute("BEGIN IMMEDIATE")
                try:
                    await db.execute(
                        f"INSERT INTO {self._config.table_name} (id, name) VALUES (:id, :name)",
                        record.to_row(),
                    )
                    await db.execute("COMMIT")
                except BaseException:
                    await self._rollback(db)
                    raise
            except sqlite3.Error as exc:
                logger.error(
                    json.dumps(
                        {
                            "event": "record_cache_failed",
                            "store": "sqlite",
                            "id": str(record.id),
                            "error": str(exc),
                        }
                    )
                )
                raise StorageError(f"Failed to cache record {record.id}: {exc}") from exc

        logger.info(json.dumps({"event": "record_cached", "store": "sqlite", "id": str(record.id)}))

    async def retrieve(self) -> list[Record]:
        """Return every persisted record.

        Rows come back in whatever order SQLite yields them.

        Returns:
            All stored records; an empty list when the table is empty.

        Raises:
            FetchError: If the query fails or a row cannot be decoded.
            RuntimeError: If the store has been closed.
        """
        async with self._lock:
            self._ensure_usable()
            try:
                db = await self._connection()
                async with db.execute(
                    f"SELECT id, name FROM {self._config.table_name}"
                ) as cursor:
                    rows = await cursor.fetchall()
                records = [Record.from_row(row) for row in rows]
            except (sqlite3.Error, ValueError) as exc:
                logger.error(
                    json.dumps(
                        {"event": "record_fetch_failed", "store": "sqlite", "error": str(exc)}
                    )
                )
                raise FetchError(f"Failed to retrieve records: {exc}") from exc

        logger.debug(
            json.dumps({"event": "records_retrieved", "store": "sqlite", "count": len(records)})
        )
        return records

    async def delete(self, record: Record) -> None:
        """Delete the row whose id equals ``record.id``.

        Deleting an id that is not stored succeeds without changing anything.

        Args:
            record: Record to remove. Only its id is consulted.

        Raises:
            StorageError: If the delete or commit fails.
            RuntimeError: If the store has been closed.
        """
        await run_to_completion(self._delete(record))

    async def _delete(self, record: Record) -> None:
        async with self._lock:
            self._ensure_usable()
            try:
                db = await self._connection()
                await db.execute("BEGIN IMMEDIATE")
                try:
                    cursor = await db.execute(
                        f"DELETE FROM {self._config.table_name} WHERE id = :id",
                        {"id": str(record.id)},
                    )
                    removed = cursor.rowcount
                    await cursor.close()
                    await db.execute("COMMIT")
                except BaseException:
                    await self._rollback(db)
                    raise
            except sqlite3.Error as exc:
                logger.error(
                    json.dumps(
                        {
                            "event": "record_delete_failed",
                            "store": "sqlite",
                            "id": str(record.id),
                            "error": str(exc),
                        }
                    )
                )
                raise StorageError(f"Failed to delete record {record.id}: {exc}") from exc

        logger.info(
            json.dumps(
                {
                    "event": "record_deleted",
                    "store": "sqlite",
                    "id": str(record.id),
                    "removed": removed,
                }
            )
        )

    async def close(self) -> None:
        """Close the store and release the database connection.

        Waits for any in-flight operation to finish. Safe to call more than once.
        """
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._db:
                await self._db.close()
                self._db = None
