"""
Sync Audit Logger

DESIGN DECISION: Every load and write the store performs is logged.
This provides:
1. Traceability of optimistic changes and their confirmation
2. Failed writes visible separately from successful ones
3. A recent-events feed presentation can show as sync status

The logger:
- Never raises into the store (logging must not break a mutation)
- Logs at the event's own severity
- Keeps a bounded in-memory history
"""

import logging
from collections import deque
from typing import Optional

import structlog

from finance_tracker.models.audit import SyncEvent, SyncEventType, SyncSeverity


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


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and therefore structlog) to stderr at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))


class SyncAuditLogger:
    """
    Central sync logging service.

    Logs events to the structured local log and keeps the most recent
    ones in memory.
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize sync logger.

        Args:
            history_size: How many events to keep for `recent_events`.
                          0 disables the history.
        """
        self._logger = structlog.get_logger("finance_tracker.sync")
        self._history: deque[SyncEvent] = deque(maxlen=history_size)

    def log(self, event: SyncEvent) -> None:
        """Log a sync event. Never raises."""
        try:
            log_dict = event.to_log_dict()
            if event.severity == SyncSeverity.ERROR:
                self._logger.error("sync_event", **log_dict)
            elif event.severity == SyncSeverity.WARNING:
                self._logger.warning("sync_event", **log_dict)
            elif event.severity == SyncSeverity.DEBUG:
                self._logger.debug("sync_event", **log_dict)
            else:
                self._logger.info("sync_event", **log_dict)
        except Exception as e:
            # Log failure but don't raise
            logging.getLogger(__name__).error("sync log write failed: %s", e)
        self._history.append(event)

    def recent_events(
        self,
        limit: Optional[int] = None,
        event_type: Optional[SyncEventType] = None,
    ) -> list[SyncEvent]:
        """Most recent events, newest first."""
        events = [
            e for e in reversed(self._history)
            if event_type is None or e.event_type == event_type
        ]
        return events[:limit] if limit is not None else events

    def failures(self) -> list[SyncEvent]:
        """Recent write failures and load failures, newest first."""
        return [
            e for e in reversed(self._history)
            if e.event_type in (SyncEventType.WRITE_FAILED, SyncEventType.LOAD_FAILED)
        ]

    # -------------------------------------------------------------------------
    # Event helpers
    # -------------------------------------------------------------------------

    def load_started(self, user_id: str, generation: int) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.LOAD_STARTED,
            user_id=user_id,
            operation="bind",
            description="Loading transactions, bills and goals",
            details={"generation": generation},
        ))

    def load_completed(self, user_id: str, collection: str, count: int) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.LOAD_COMPLETED,
            user_id=user_id,
            entity_type=collection,
            operation="bind",
            description=f"Loaded {count} {collection}",
            details={"count": count},
        ))

    def load_failed(self, user_id: str, collection: str, error: BaseException) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.LOAD_FAILED,
            severity=SyncSeverity.ERROR,
            user_id=user_id,
            entity_type=collection,
            operation="bind",
            description=f"Failed to load {collection}",
            error_message=str(error) or type(error).__name__,
        ))

    def load_superseded(self, user_id: str, generation: int) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.LOAD_SUPERSEDED,
            severity=SyncSeverity.DEBUG,
            user_id=user_id,
            operation="bind",
            description="Discarded load results for a superseded bind",
            details={"generation": generation},
        ))

    def state_cleared(self) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.STATE_CLEARED,
            operation="bind",
            description="No user bound; collections cleared",
        ))

    def optimistic_applied(
        self,
        user_id: Optional[str],
        operation: str,
        entity_type: str,
        entity_id: str,
    ) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.OPTIMISTIC_APPLIED,
            severity=SyncSeverity.DEBUG,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            description=f"{operation} applied locally",
        ))

    def write_confirmed(
        self,
        user_id: Optional[str],
        operation: str,
        entity_type: str,
        entity_id: str,
        temp_id: Optional[str] = None,
    ) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.WRITE_CONFIRMED,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            description=f"{operation} confirmed by remote store",
            details={"temp_id": temp_id} if temp_id else {},
        ))

    def write_failed(
        self,
        user_id: Optional[str],
        operation: str,
        entity_type: str,
        entity_id: str,
        error: BaseException,
    ) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.WRITE_FAILED,
            severity=SyncSeverity.ERROR,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            description=f"{operation} failed on remote store",
            error_message=str(error) or type(error).__name__,
        ))

    def rolled_back(
        self,
        user_id: Optional[str],
        operation: str,
        entity_type: str,
        entity_id: str,
    ) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.ROLLED_BACK,
            severity=SyncSeverity.WARNING,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            description=f"Local {operation} rolled back",
        ))

    def mutation_skipped(
        self,
        user_id: Optional[str],
        operation: str,
        entity_type: str,
        entity_id: str,
        reason: str,
    ) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.MUTATION_SKIPPED,
            severity=SyncSeverity.DEBUG,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            description=f"{operation} skipped: {reason}",
        ))

    def bill_payment_synthesized(
        self,
        user_id: Optional[str],
        bill_id: str,
        transaction_id: str,
        amount: str,
    ) -> None:
        self.log(SyncEvent(
            event_type=SyncEventType.BILL_PAYMENT_SYNTHESIZED,
            user_id=user_id,
            entity_type="bill",
            entity_id=bill_id,
            operation="toggle_bill_paid",
            description="Expense transaction created for paid bill",
            details={"transaction_id": transaction_id, "amount": amount},
        ))
