"""Store selection and construction from settings or the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from record_keeper.persistence.jsonl import JsonlRecordStore, JsonlRecordStoreConfig
from record_keeper.persistence.sqlite import SqliteRecordStore, SqliteRecordStoreConfig

DEFAULT_PATHS = {
    "sqlite": Path("records.db"),
    "jsonl": Path("records.jsonl"),
}


@dataclass(frozen=True, slots=True)
class StoreSettings:
    """Which durable backend to use and where it lives.

    Attributes:
        backend: ``"sqlite"`` or ``"jsonl"`` (default: ``"sqlite"``).
        path: Backend file. Defaults to ``records.db`` or ``records.jsonl``.
    """

    backend: str = "sqlite"
    path: Path | None = None

    def __post_init__(self) -> None:
        if self.backend not in DEFAULT_PATHS:
            raise ValueError(
                f"Unknown backend {self.backend!r}; expected one of {sorted(DEFAULT_PATHS)}"
            )

    @property
    def resolved_path(self) -> Path:
        """Configured path, or the backend's default."""
        if self.path is not None:
            return Path(self.path)
        return DEFAULT_PATHS[self.backend]

    @classmethod
    def from_env(cls) -> StoreSettings:
        """Build settings from ``RECORD_KEEPER_BACKEND`` and ``RECORD_KEEPER_PATH``."""
        path = os.getenv("RECORD_KEEPER_PATH")
        return cls(
            backend=os.getenv("RECORD_KEEPER_BACKEND", "sqlite").lower(),
            path=Path(path) if path else None,
        )


def create_store(settings: StoreSettings) -> SqliteRecordStore | JsonlRecordStore:
    """Instantiate the store described by ``settings``.

    The returned store is not opened yet; use it as an async context manager.
    """
    if settings.backend == "jsonl":
        return JsonlRecordStore(JsonlRecordStoreConfig(file_path=settings.resolved_path))
    return SqliteRecordStore(SqliteRecordStoreConfig(db_path=settings.resolved_path))
