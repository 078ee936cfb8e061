"""Base protocols for persistence layer."""

import asyncio
from collections.abc import Coroutine
from typing import Any, Protocol, TypeVar

from record_keeper.models import Record

T = TypeVar("T")


class RecordStore(Protocol):
    """Protocol for durable record backends.

    Implementations serialize their own access to the backend: at most one
    operation runs against it at a time.
    """

    async def cache(self, record: Record) -> None:
        """Persist a new record durably. Raises StorageError on failure."""
        ...

    async def retrieve(self) -> list[Record]:
        """Return every persisted record, in no particular order. Raises FetchError."""
        ...

    async def delete(self, record: Record) -> None:
        """Remove the record with ``record.id``. A missing id is a no-op."""
        ...


_running: set["asyncio.Task[Any]"] = set()


def _task_done(task: "asyncio.Task[Any]") -> None:
    _running.discard(task)
    if not task.cancelled():
        task.exception()


async def run_to_completion(operation: Coroutine[Any, Any, T]) -> T:
    """Run ``operation`` in its own task that outlives a cancelled caller.

    Cancelling the awaiting caller raises CancelledError there, while the
    operation keeps running until it finishes and its effect persists.
    """
    task = asyncio.ensure_future(operation)
    _running.add(task)
    task.add_done_callback(_task_done)
    return await asyncio.shield(task)
