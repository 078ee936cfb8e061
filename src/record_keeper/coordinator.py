"""Coordinator that keeps an in-memory record snapshot in step with a store."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable

from record_keeper.errors import FetchError, RecordStoreError
from record_keeper.models import Record
from record_keeper.persistence.base import RecordStore, run_to_completion

logger = logging.getLogger(__name__)

Subscriber = Callable[[tuple[Record, ...]], None]


class RecordListCoordinator:
    """View-model owning the record snapshot a presentation layer reads.

    The snapshot is only ever replaced wholesale by the result of a successful
    ``retrieve()``. Every mutation writes to the store first and then reloads,
    so after a successful operation the snapshot equals what is durably
    stored. A failed operation leaves the snapshot as it was.

    Operations are serialized: the write and reload of one operation never
    interleave with another operation on the same coordinator. A mutation runs
    in its own task, so cancelling the caller still lets the write and the
    reload that follows it finish.

    Args:
        store: Backend to read from and write to.

    Example:
        ```python
        coordinator = RecordListCoordinator(store)
        coordinator.subscribe(lambda records: render(records))

        await coordinator.load()
        await coordinator.add("Alice")
        await coordinator.delete_at(0)
        ```
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._records: tuple[Record, ...] = ()
        self._subscribers: list[Subscriber] = []
        self._last_error: RecordStoreError | None = None
        self._lock = asyncio.Lock()

    @property
    def records(self) -> tuple[Record, ...]:
        """Snapshot from the last successful reload."""
        return self._records

    @property
    def last_error(self) -> RecordStoreError | None:
        """Error from the most recent failed operation, if it has not since recovered."""
        return self._last_error

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback invoked with the new snapshot after every reload.

        Args:
            callback: Called with the snapshot tuple.

        Returns:
            A function that removes the callback again.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def load(self) -> tuple[Record, ...]:
        """Replace the snapshot with everything currently in the store.

        Returns:
            The new snapshot.

        Raises:
            FetchError: If the store cannot be queried. The snapshot is unchanged.
        """
        async with self._lock:
            return await self._reload_locked()

    async def add(self, name: str) -> Record:
        """Persist a new record named ``name`` and reload.

        Args:
            name: Name for the new record.

        Returns:
            The record that was stored.

        Raises:
            StorageError: If the write fails. Nothing is reloaded.
            FetchError: If the write succeeded but the reload failed.
        """
        record = Record.create(name)
        await run_to_completion(self._mutate_then_reload("add", self._store.cache, record))
        return record

    async def delete_at(self, index: int) -> Record:
        """Delete the record at ``index`` in the current snapshot and reload.

        The index is resolved against the snapshot at the time this call takes
        the coordinator's lock. Callers must not let another mutation run
        between choosing the index and calling this method.

        Args:
            index: Position in ``records``.

        Returns:
            The record that was deleted.

        Raises:
            IndexError: If ``index`` is outside the snapshot. The store is not touched.
            StorageError: If the delete fails. Nothing is reloaded.
            FetchError: If the delete succeeded but the reload failed.
        """
        return await run_to_completion(self._delete_at(index))

    async def _delete_at(self, index: int) -> Record:
        async with self._lock:
            if not 0 <= index < len(self._records):
                raise IndexError(
                    f"Record index {index} out of range for {len(self._records)} records"
                )
            record = self._records[index]
            await self._mutate_locked("delete", self._store.delete, record)
            await self._reload_locked()
        return record

    async def delete_record(self, record: Record) -> None:
        """Delete ``record`` by identity and reload.

        Unlike ``delete_at`` this does not depend on the snapshot's ordering.
        A record that is no longer stored is a no-op followed by a reload.

        Raises:
            StorageError: If the delete fails. Nothing is reloaded.
            FetchError: If the delete succeeded but the reload failed.
        """
        await run_to_completion(self._mutate_then_reload("delete", self._store.delete, record))

    async def _mutate_then_reload(
        self,
        operation: str,
        write: Callable[[Record], Awaitable[None]],
        record: Record,
    ) -> None:
        async with self._lock:
            await self._mutate_locked(operation, write, record)
            await self._reload_locked()

    async def _mutate_locked(
        self,
        operation: str,
        write: Callable[[Record], Awaitable[None]],
        record: Record,
    ) -> None:
        try:
            await write(record)
        except RecordStoreError as exc:
            self._last_error = exc
            logger.warning(
                json.dumps(
                    {
                        "event": "coordinator_write_failed",
                        "operation": operation,
                        "id": str(record.id),
                        "error": str(exc),
                    }
                )
            )
            raise

    async def _reload_locked(self) -> tuple[Record, ...]:
        try:
            records = tuple(await self._store.retrieve())
        except FetchError as exc:
            self._last_error = exc
            logger.warning(
                json.dumps(
                    {
                        "event": "coordinator_reload_failed",
                        "kept_count": len(self._records),
                        "error": str(exc),
                    }
                )
            )
            raise

        self._records = records
        self._last_error = None
        logger.debug(json.dumps({"event": "coordinator_reloaded", "count": len(records)}))
        self._publish()
        return records

    def _publish(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self._records)
            except Exception as exc:
                logger.error(f"Error in snapshot subscriber {callback!r}: {exc}")
