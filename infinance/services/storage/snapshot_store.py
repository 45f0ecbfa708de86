"""
Snapshot Storage Implementations

Backends that keep the whole ledger as one snapshot document:

- InMemoryLedgerStorage: a snapshot held in memory (tests, guest sessions)
- LocalSnapshotStorage: a JSON file on disk, rewritten on every change

DESIGN DECISION: A single-record change rewrites the whole snapshot.
Personal ledgers are small, and rewriting keeps the file a valid snapshot
at all times, so it can double as a backup.

TRADEOFFS:
- Cost grows with the ledger size (fine at personal-finance scale)
- No concurrent writers; one process owns the file
"""

import os
import tempfile
from abc import abstractmethod
from pathlib import Path
from typing import Optional, Union

from infinance.models.ledger import (
    Category,
    Investment,
    LedgerSnapshot,
    Theme,
    Transaction,
)
from infinance.models.validation import ImportReport
from infinance.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from infinance.validation.snapshot import SnapshotImporter, dumps


class SnapshotStorage(LedgerStorageInterface):
    """
    Implements every record operation on top of read/write of one snapshot.

    Subclasses only provide `_read` and `_write`.
    """

    @abstractmethod
    def _read(self) -> LedgerSnapshot:
        pass

    @abstractmethod
    def _write(self, snapshot: LedgerSnapshot) -> None:
        pass

    def _insert(self, collection: str, record) -> bool:
        snapshot = self._read()
        records = getattr(snapshot, collection)
        if any(existing.id == record.id for existing in records):
            raise DuplicateError(f"{collection}: id already exists: {record.id}")
        self._write(snapshot.model_copy(update={collection: [*records, record]}))
        return True

    def _replace(self, collection: str, record) -> bool:
        snapshot = self._read()
        records = getattr(snapshot, collection)
        if not any(existing.id == record.id for existing in records):
            raise NotFoundError(f"{collection}: not found: {record.id}")
        updated = [record if existing.id == record.id else existing for existing in records]
        self._write(snapshot.model_copy(update={collection: updated}))
        return True

    def _remove(self, collection: str, record_id: str) -> bool:
        snapshot = self._read()
        records = getattr(snapshot, collection)
        remaining = [existing for existing in records if existing.id != record_id]
        if len(remaining) == len(records):
            return False
        self._write(snapshot.model_copy(update={collection: remaining}))
        return True

    async def load_all(self) -> LedgerSnapshot:
        return self._read()

    async def save_snapshot(self, snapshot: LedgerSnapshot) -> bool:
        self._write(snapshot)
        return True

    async def save_transaction(self, transaction: Transaction) -> bool:
        return self._insert("transactions", transaction)

    async def update_transaction(self, transaction: Transaction) -> bool:
        return self._replace("transactions", transaction)

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self._remove("transactions", transaction_id)

    async def save_category(self, category: Category) -> bool:
        return self._insert("categories", category)

    async def update_category(self, category: Category) -> bool:
        return self._replace("categories", category)

    async def delete_category(self, category_id: str) -> bool:
        return self._remove("categories", category_id)

    async def save_investment(self, investment: Investment) -> bool:
        return self._insert("investments", investment)

    async def update_investment(self, investment: Investment) -> bool:
        return self._replace("investments", investment)

    async def delete_investment(self, investment_id: str) -> bool:
        return self._remove("investments", investment_id)


class InMemoryLedgerStorage(SnapshotStorage):
    """Snapshot held in memory. Nothing survives the process."""

    source_name = "memory"

    def __init__(self, snapshot: Optional[LedgerSnapshot] = None):
        self._snapshot = snapshot or LedgerSnapshot()

    def _read(self) -> LedgerSnapshot:
        return self._snapshot

    def _write(self, snapshot: LedgerSnapshot) -> None:
        self._snapshot = snapshot


class LocalSnapshotStorage(SnapshotStorage):
    """
    The ledger as a JSON snapshot file.

    A missing file is an empty ledger. A corrupt file is read field by field
    through SnapshotImporter; what could not be read is reported in
    `last_report` and replaced by defaults.
    """

    source_name = "local"

    def __init__(
        self,
        path: Union[str, Path],
        default_theme: Theme = Theme.LIGHT,
        importer: Optional[SnapshotImporter] = None,
    ):
        self._path = Path(path)
        self._default_theme = Theme(default_theme)
        self._importer = importer or SnapshotImporter(default_theme=self._default_theme)
        self.last_report: Optional[ImportReport] = None

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> LedgerSnapshot:
        if not self._path.exists():
            return LedgerSnapshot(theme=self._default_theme)
        try:
            raw = self._path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read snapshot {self._path}: {e}")
        self.last_report = self._importer.loads(raw)
        return self.last_report.snapshot

    def _write(self, snapshot: LedgerSnapshot) -> None:
        """Write to a temporary file next to the target, then swap it in."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.",
                dir=self._path.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(dumps(snapshot))
            os.replace(tmp_name, self._path)
        except OSError as e:
            raise StorageError(f"Failed to write snapshot {self._path}: {e}")
