"""Tests for package-level exports."""

from __future__ import annotations


class TestPackageExports:
    """Test cases for top-level package imports."""

    def test_import_record(self) -> None:
        """Record should be importable from record_keeper."""
        from record_keeper import Record

        assert Record is not None

    def test_import_coordinator(self) -> None:
        """RecordListCoordinator should be importable from record_keeper."""
        from record_keeper import RecordListCoordinator

        assert RecordListCoordinator is not None

    def test_import_errors(self) -> None:
        """Error types should be importable and share a base class."""
        from record_keeper import FetchError, RecordStoreError, StorageError

        assert issubclass(StorageError, RecordStoreError)
        assert issubclass(FetchError, RecordStoreError)
        assert not issubclass(StorageError, FetchError)

    def test_import_stores(self) -> None:
        """Store implementations should be importable from record_keeper."""
        from record_keeper import JsonlRecordStore, SqliteRecordStore

        assert SqliteRecordStore is not None
        assert JsonlRecordStore is not None

    def test_all_exports_match_declared(self) -> None:
        """All items in __all__ should be importable."""
        import record_keeper

        for name in record_keeper.__all__:
            assert hasattr(record_keeper, name), f"{name} not found in record_keeper"
