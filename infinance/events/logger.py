"""
Event Logger

Every mutation of the ledger and every failed storage call is written to
a structured (JSON) log through structlog.

The event logger:
- Is synchronous; logging happens on the caller's thread
- Never raises; a logging failure must not break a ledger write
"""

import structlog

from infinance.events.models import EventSeverity, LedgerEvent


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: str = "infinance"):
    return structlog.get_logger(name)


class EventLogger:
    """
    Central ledger event logger.

    Usage:
        events = EventLogger()
        events.log(LedgerEventBuilder.transaction_deleted(txn_id))
    """

    def __init__(self, logger=None):
        self._logger = logger or get_logger("infinance.ledger")

    def log(self, event: LedgerEvent) -> None:
        """Write one event at the level matching its severity."""
        log_dict = event.to_log_dict()
        try:
            if event.severity == EventSeverity.ERROR:
                self._logger.error("ledger_event", **log_dict)
            elif event.severity == EventSeverity.WARNING:
                self._logger.warning("ledger_event", **log_dict)
            elif event.severity == EventSeverity.DEBUG:
                self._logger.debug("ledger_event", **log_dict)
            else:
                self._logger.info("ledger_event", **log_dict)
        except Exception as e:
            # Fall back to a bare message; never propagate.
            self._logger.error("ledger_event_failed", error=str(e))
