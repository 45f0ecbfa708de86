"""Services package."""

from infinance.services.storage import (
    BackupStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    LocalSnapshotStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    "BackupStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "LocalSnapshotStorage",
    "NotFoundError",
    "StorageError",
]
