"""
Ledger Event Models

Every significant action on the ledger is described by a LedgerEvent and
written to the structured log. This gives:
1. Traceability when debugging a user's balance
2. A single place where log fields are named

DESIGN DECISION: Events are logged, never stored. The ledger keeps no
history of its own; the transaction list is the only record.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """Types of events we log."""
    # Transactions
    TRANSACTION_ADMITTED = "transaction_admitted"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_REJECTED = "transaction_rejected"
    TRANSACTION_DELETED = "transaction_deleted"

    # Goals
    GOAL_COMPLETED = "goal_completed"

    # Categories and goals
    CATEGORY_SAVED = "category_saved"
    CATEGORY_DELETED = "category_deleted"
    INVESTMENT_SAVED = "investment_saved"
    INVESTMENT_DELETED = "investment_deleted"

    # Snapshots
    SNAPSHOT_LOADED = "snapshot_loaded"
    SNAPSHOT_IMPORTED = "snapshot_imported"
    BACKUP_SAVED = "backup_saved"

    # Failures
    STORAGE_FAILED = "storage_failed"


class EventSeverity(str, Enum):
    """Severity level for ledger events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """A single ledger event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: LedgerEventType
    severity: EventSeverity = EventSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'category', 'investment')"
    )
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.transaction_admitted(txn_id, "expense", "42.00")
        event = LedgerEventBuilder.goal_completed(goal_id, "Car", "1000")
    """

    @staticmethod
    def transaction_admitted(
        transaction_id: str,
        transaction_type: str,
        value: str,
        updated: bool = False,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=(
                LedgerEventType.TRANSACTION_UPDATED
                if updated
                else LedgerEventType.TRANSACTION_ADMITTED
            ),
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction {'updated' if updated else 'added'}: {transaction_type} {value}",
            details={
                "type": transaction_type,
                "value": value,
            },
        )

    @staticmethod
    def transaction_rejected(
        transaction_type: str,
        value: str,
        available_balance: str,
        reason: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_REJECTED,
            severity=EventSeverity.WARNING,
            entity_type="transaction",
            description=f"Transaction rejected: {reason}",
            details={
                "type": transaction_type,
                "value": value,
                "available_balance": available_balance,
                "reason": reason,
            },
        )

    @staticmethod
    def transaction_deleted(transaction_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
        )

    @staticmethod
    def goal_completed(
        investment_id: str,
        goal_name: str,
        goal_value: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.GOAL_COMPLETED,
            entity_type="investment",
            entity_id=investment_id,
            description=f"Goal completed: {goal_name} ({goal_value})",
            details={
                "goal_name": goal_name,
                "goal_value": goal_value,
            },
        )

    @staticmethod
    def entity_saved(entity_type: str, entity_id: str, name: str) -> LedgerEvent:
        event_type = (
            LedgerEventType.CATEGORY_SAVED
            if entity_type == "category"
            else LedgerEventType.INVESTMENT_SAVED
        )
        return LedgerEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} saved: {name}",
        )

    @staticmethod
    def entity_deleted(entity_type: str, entity_id: str, referencing: int) -> LedgerEvent:
        event_type = (
            LedgerEventType.CATEGORY_DELETED
            if entity_type == "category"
            else LedgerEventType.INVESTMENT_DELETED
        )
        return LedgerEvent(
            event_type=event_type,
            severity=EventSeverity.WARNING if referencing else EventSeverity.INFO,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} deleted, {referencing} transactions keep its id",
            details={
                "dangling_references": referencing,
            },
        )

    @staticmethod
    def snapshot_loaded(
        source: str,
        transactions: int,
        issues: int,
        imported: bool = False,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=(
                LedgerEventType.SNAPSHOT_IMPORTED
                if imported
                else LedgerEventType.SNAPSHOT_LOADED
            ),
            severity=EventSeverity.WARNING if issues else EventSeverity.INFO,
            entity_type="snapshot",
            description=f"Snapshot {'imported' if imported else 'loaded'} from {source}",
            details={
                "source": source,
                "transactions": transactions,
                "issues": issues,
            },
        )

    @staticmethod
    def backup_saved(backup_name: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BACKUP_SAVED,
            entity_type="snapshot",
            entity_id=backup_name,
            description=f"Backup saved: {backup_name}",
        )

    @staticmethod
    def storage_failed(
        operation: str,
        error_message: str,
        entity_id: Optional[str] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.STORAGE_FAILED,
            severity=EventSeverity.ERROR,
            entity_id=entity_id,
            description=f"Storage operation failed: {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )
