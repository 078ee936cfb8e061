"""Persistence and data storage module."""

from record_keeper.persistence.base import RecordStore
from record_keeper.persistence.jsonl import JsonlRecordStore, JsonlRecordStoreConfig
from record_keeper.persistence.sqlite import SqliteRecordStore, SqliteRecordStoreConfig

__all__ = [
    "JsonlRecordStore",
    "JsonlRecordStoreConfig",
    "RecordStore",
    "SqliteRecordStore",
    "SqliteRecordStoreConfig",
]
