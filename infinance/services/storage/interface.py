"""
Abstract Storage Interface

DESIGN DECISION: The ledger never talks to a storage backend directly.
Every backend implements this interface, which allows us to:
1. Keep a local-only ledger in a JSON snapshot file
2. Sync a signed-in user's ledger to a cloud document store
3. Use in-memory storage for testing

The interface is intentionally simple: load everything, write one record.
The ledger is small enough that every read is a full load, and every
derived value is recomputed from what was loaded.
"""

from abc import ABC, abstractmethod
from typing import Optional

from infinance.models.ledger import (
    Category,
    Investment,
    LedgerSnapshot,
    Transaction,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation (snapshot file, cloud store, etc.)
    must implement these methods.
    """

    # Used in log events to say where data came from
    source_name: str = "storage"

    @abstractmethod
    async def load_all(self) -> LedgerSnapshot:
        """
        Load the whole ledger.

        Returns:
            The snapshot; missing collections come back as their defaults

        Raises:
            StorageError: If the backend cannot be read at all
        """
        pass

    @abstractmethod
    async def save_snapshot(self, snapshot: LedgerSnapshot) -> bool:
        """
        Replace the whole ledger with `snapshot`.

        Used by imports. Returns True if saved successfully.
        """
        pass

    # -- transactions ---------------------------------------------------------

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> bool:
        """
        Persist a newly admitted transaction.

        Raises:
            DuplicateError: If a transaction with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> bool:
        """
        Replace an existing transaction (matched by id).

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction by id.

        Returns:
            True if deleted, False if there was nothing to delete
        """
        pass

    # -- categories -----------------------------------------------------------

    @abstractmethod
    async def save_category(self, category: Category) -> bool:
        pass

    @abstractmethod
    async def update_category(self, category: Category) -> bool:
        pass

    @abstractmethod
    async def delete_category(self, category_id: str) -> bool:
        pass

    # -- investments ----------------------------------------------------------

    @abstractmethod
    async def save_investment(self, investment: Investment) -> bool:
        pass

    @abstractmethod
    async def update_investment(self, investment: Investment) -> bool:
        pass

    @abstractmethod
    async def delete_investment(self, investment_id: str) -> bool:
        pass


class BackupStorageInterface(ABC):
    """
    Named, immutable copies of a whole snapshot.

    Only cloud backends keep backups.
    """

    @abstractmethod
    async def save_backup(self, name: str, snapshot: LedgerSnapshot) -> bool:
        pass

    @abstractmethod
    async def get_backup(self, name: str) -> Optional[LedgerSnapshot]:
        """The named backup, None if there is no such backup."""
        pass

    @abstractmethod
    async def list_backups(self) -> list[str]:
        """Backup names, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
