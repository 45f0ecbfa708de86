"""
Storage Services Package

Provides the abstract ledger storage interface and its implementations:
a local JSON snapshot, an in-memory snapshot and a Google Sheets cloud store.
"""

from infinance.services.storage.interface import (
    BackupStorageInterface,
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from infinance.services.storage.snapshot_store import (
    InMemoryLedgerStorage,
    LocalSnapshotStorage,
    SnapshotStorage,
)
from infinance.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "BackupStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Snapshot implementations
    "InMemoryLedgerStorage",
    "LocalSnapshotStorage",
    "SnapshotStorage",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
