"""JSONL record store with fsync'd async writes."""

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Self

import aiofiles
import aiofiles.os

from record_keeper.errors import FetchError, StorageError
from record_keeper.models import Record
from record_keeper.persistence.base import RecordStore, run_to_completion

logger = logging.getLogger(__name__)

_DECODE_ERRORS = (ValueError, KeyError, TypeError)


@dataclass
class JsonlRecordStoreConfig:
    """Configuration for JsonlRecordStore.

    Attributes:
        file_path: Path to the JSONL file, one record per line.
    """

    file_path: Path

    def __post_init__(self) -> None:
        self.file_path = Path(self.file_path)


def _fsync_directory(directory: Path) -> None:
    """Flush a directory entry so a created or replaced file survives a crash."""
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


async def _missing_final_newline(path: Path) -> bool:
    """Whether a non-empty file ends without a line terminator."""
    async with aiofiles.open(path, mode="rb") as f:
        await f.seek(0, os.SEEK_END)
        size = await f.tell()
        if not size:
            return False
        await f.seek(size - 1)
        return await f.read(1) != b"\n"


async def _replace_contents(path: Path, records: list[Record]) -> None:
    """Atomically swap ``path`` for a file holding exactly ``records``."""
    tmp_path = path.with_name(path.name + ".tmp")
    replaced = False
    try:
        async with aiofiles.open(tmp_path, mode="w", encoding="utf-8", newline="\n") as f:
            for record in records:
                await f.write(json.dumps(record.to_row(), ensure_ascii=False) + "\n")
            await f.flush()
            os.fsync(f.fileno())
        await aiofiles.os.replace(tmp_path, path)
        replaced = True
        _fsync_directory(path.parent)
    finally:
        if not replaced and await aiofiles.os.path.exists(tmp_path):
            await aiofiles.os.remove(tmp_path)


class JsonlRecordStore(RecordStore):
    """Durable record store kept in a JSON Lines file.

    ``cache`` appends one line and fsyncs it. ``delete`` writes the surviving
    lines to a sibling temporary file, fsyncs it and atomically replaces the
    original, so a crash leaves either the old or the new file. A missing file
    is an empty store.

    All operations are serialized by the store's lock.

    Example:
        ```python
        async with JsonlRecordStore(JsonlRecordStoreConfig("records.jsonl")) as store:
            await store.cache(Record.create("Alice"))
        ```
    """

    def __init__(self, config: JsonlRecordStoreConfig) -> None:
        """Initialize the JSONL record store.

        Args:
            config: Store configuration.
        """
        self._config = config
        self._closed = False
        self._lock = asyncio.Lock()

    @property
    def config(self) -> JsonlRecordStoreConfig:
        """Configuration this store was built with."""
        return self._config

    async def __aenter__(self) -> Self:
        """Enter async context manager.

        Returns:
            Self for context manager protocol.
        """
        self._ensure_usable()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager and close the store."""
        await self.close()

    def _ensure_usable(self) -> None:
        if self._closed:
            raise RuntimeError("Cannot use closed store")

    async def _read_records(self) -> list[Record]:
        """Decode every line of the backing file. Lock must be held."""
        path = self._config.file_path
        if not await aiofiles.os.path.exists(path):
            return []

        async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
            content = await f.read()

        records = []
        for line_number, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                records.append(Record.from_row(json.loads(line)))
            except _DECODE_ERRORS as exc:
                raise ValueError(f"{path}:{line_number}: undecodable record ({exc})") from exc
        return records

    async def cache(self, record: Record) -> None:
        """Append a line for ``record`` and fsync it.

        Args:
            record: Record to persist. Its id must not already be stored.

        Raises:
            StorageError: If the file cannot be read or written, or the id is
                already stored.
            RuntimeError: If the store has been closed.
        """
        await run_to_completion(self._cache(record))

    async def _cache(self, record: Record) -> None:
        async with self._lock:
            self._ensure_usable()
            path = self._config.file_path
            try:
                existing = await self._read_records()
                if any(stored.id == record.id for stored in existing):
                    raise ValueError(f"record id {record.id} already stored")

                created = not await aiofiles.os.path.exists(path)
                line = json.dumps(record.to_row(), ensure_ascii=False) + "\n"
                if not created and await _missing_final_newline(path):
                    line = "\n" + line
                async with aiofiles.open(path, mode="a", encoding="utf-8", newline="\n") as f:
                    await f.write(line)
                    await f.flush()
                    os.fsync(f.fileno())
                if created:
                    _fsync_directory(path.parent)
            except (OSError, ValueError) as exc:
                logger.error(
                    json.dumps(
                        {
                            "event": "record_cache_failed",
                            "store": "jsonl",
                            "id": str(record.id),
                            "error": str(exc),
                        }
                    )
                )
                raise StorageError(f"Failed to cache record {record.id}: {exc}") from exc

        logger.info(json.dumps({"event": "record_cached", "store": "jsonl", "id": str(record.id)}))

    async def retrieve(self) -> list[Record]:
        """Return every persisted record, in file order.

        Returns:
            All stored records; an empty list when the file is missing or empty.

        Raises:
            FetchError: If the file cannot be read or a line cannot be decoded.
            RuntimeError: If the store has been closed.
        """
        async with self._lock:
            self._ensure_usable()
            try:
                records = await self._read_records()
            except (OSError, ValueError) as exc:
                logger.error(
                    json.dumps({"event": "record_fetch_failed", "store": "jsonl", "error": str(exc)})
                )
                raise FetchError(f"Failed to retrieve records: {exc}") from exc

        logger.debug(
            json.dumps({"event": "records_retrieved", "store": "jsonl", "count": len(records)})
        )
        return records

    async def delete(self, record: Record) -> None:
        """Remove the line whose id equals ``record.id``.

        Deleting an id that is not stored leaves the file untouched.

        Args:
            record: Record to remove. Only its id is consulted.

        Raises:
            StorageError: If the file cannot be read or rewritten.
            RuntimeError: If the store has been closed.
        """
        await run_to_completion(self._delete(record))

    async def _delete(self, record: Record) -> None:
        async with self._lock:
            self._ensure_usable()
            path = self._config.file_path
            try:
                records = await self._read_records()
                remaining = [stored for stored in records if stored.id != record.id]
                removed = len(records) - len(remaining)
                if removed:
                    await _replace_contents(path, remaining)
            except (OSError, ValueError) as exc:
                logger.error(
                    json.dumps(
                        {
                            "event": "record_delete_failed",
                            "store": "jsonl",
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
                    "store": "jsonl",
                    "id": str(record.id),
                    "removed": removed,
                }
            )
        )

    async def close(self) -> None:
        """Close the store. Safe to call more than once."""
        async with self._lock:
            self._closed = True
