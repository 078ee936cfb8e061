"""Record Keeper.

A local record manager: uniquely identified named records kept in a durable,
concurrency-serialized store, with a coordinator that keeps an in-memory
snapshot equal to what is stored after every change.
"""

from record_keeper.config import StoreSettings, create_store
from record_keeper.coordinator import RecordListCoordinator
from record_keeper.errors import FetchError, RecordStoreError, StorageError
from record_keeper.models import Record
from record_keeper.persistence import (
    JsonlRecordStore,
    JsonlRecordStoreConfig,
    RecordStore,
    SqliteRecordStore,
    SqliteRecordStoreConfig,
)

__version__ = "0.1.0"

__all__ = [
    "FetchError",
    "JsonlRecordStore",
    "JsonlRecordStoreConfig",
    "Record",
    "RecordListCoordinator",
    "RecordStore",
    "RecordStoreError",
    "SqliteRecordStore",
    "SqliteRecordStoreConfig",
    "StorageError",
    "StoreSettings",
    "create_store",
]
