"""Ledger event logging package."""

from infinance.events.logger import EventLogger, get_logger
from infinance.events.models import (
    EventSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)

__all__ = [
    "EventLogger",
    "EventSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
    "get_logger",
]
