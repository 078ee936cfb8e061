"""Pytest configuration and fixtures for record-keeper tests."""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

import pytest

from record_keeper.errors import FetchError, StorageError
from record_keeper.models import Record


class StoreSpy:
    """In-memory record store that records every call it receives.

    Each ``fail_*`` flag makes the matching operation raise the error a real
    store would raise, without changing the stored rows.
    """

    def __init__(self, records: list[Record] | None = None) -> None:
        self.rows: dict[uuid.UUID, Record] = {r.id: r for r in records or []}
        self.calls: list[str] = []
        self.fail_cache = False
        self.fail_retrieve = False
        self.fail_delete = False
        self.in_flight = 0
        self.peak_in_flight = 0

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        # Yield so overlapping callers would be observable.
        await asyncio.sleep(0)

    async def cache(self, record: Record) -> None:
        await self._enter("cache")
        try:
            if self.fail_cache:
                raise StorageError("cache failed")
            self.rows[record.id] = record
        finally:
            self.in_flight -= 1

    async def retrieve(self) -> list[Record]:
        await self._enter("retrieve")
        try:
            if self.fail_retrieve:
                raise FetchError("retrieve failed")
            return list(self.rows.values())
        finally:
            self.in_flight -= 1

    async def delete(self, record: Record) -> None:
        await self._enter("delete")
        try:
            if self.fail_delete:
                raise StorageError("delete failed")
            self.rows.pop(record.id, None)
        finally:
            self.in_flight -= 1


@pytest.fixture()
def store_spy() -> StoreSpy:
    """Provide an empty in-memory store spy."""
    return StoreSpy()


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Provide a path for a SQLite database that does not exist yet."""
    return tmp_path / "records.db"


@pytest.fixture()
def jsonl_path(tmp_path: Path) -> Path:
    """Provide a path for a JSONL file that does not exist yet."""
    return tmp_path / "records.jsonl"


@pytest.fixture(autouse=True)
def clear_store_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's environment from leaking into store settings."""
    for name in ("RECORD_KEEPER_BACKEND", "RECORD_KEEPER_PATH", "RECORD_KEEPER_TABLE"):
        monkeypatch.delenv(name, raising=False)
