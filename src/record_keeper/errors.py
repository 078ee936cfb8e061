"""Error taxonomy for record stores."""


class RecordStoreError(Exception):
    """Base class for failures reported by a record store."""

    pass


class StorageError(RecordStoreError):
    """Raised when a write or commit against the backend fails."""

    pass


class FetchError(RecordStoreError):
    """Raised when querying the backend fails."""

    pass
