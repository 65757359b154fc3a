"""
Sync Audit Models for Finance Tracker

Every step the store takes against the remote backend is recorded:
loads, optimistic changes, confirmations, failures and rollbacks.
This provides:
1. Traceability of what local state did and why
2. Debugging information when local and remote diverge
3. A way for presentation to show failed writes distinctly from success

DESIGN DECISION: Sync events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class SyncEventType(str, Enum):
    """Types of events the store records."""
    # Loading
    LOAD_STARTED = "load_started"
    LOAD_COMPLETED = "load_completed"
    LOAD_FAILED = "load_failed"
    LOAD_SUPERSEDED = "load_superseded"
    STATE_CLEARED = "state_cleared"

    # Writes
    OPTIMISTIC_APPLIED = "optimistic_applied"
    WRITE_CONFIRMED = "write_confirmed"
    WRITE_FAILED = "write_failed"
    ROLLED_BACK = "rolled_back"
    MUTATION_SKIPPED = "mutation_skipped"

    # Derived effects
    BILL_PAYMENT_SYNTHESIZED = "bill_payment_synthesized"


class SyncSeverity(str, Enum):
    """Severity level for sync events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SyncEvent(BaseModel):
    """
    A single sync event.

    One of these is created for every notable step of a load or mutation.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: SyncEventType
    severity: SyncSeverity = SyncSeverity.INFO

    # What the event is about
    user_id: Optional[str] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="'transaction', 'bill', 'goal' or a collection name"
    )
    entity_id: Optional[str] = None
    operation: Optional[str] = Field(
        default=None,
        description="Store operation that produced the event"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "operation": self.operation,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class SyncResult(BaseModel):
    """
    Outcome of one store mutation.

    Remote failures never raise out of the store; they come back here.
    `skipped` marks the intentional no-op when the target id is unknown.
    """
    success: bool
    operation: str
    entity_type: str
    entity_id: Optional[str] = Field(
        default=None,
        description="Authoritative id on success, temporary or target id otherwise"
    )
    skipped: bool = False
    rolled_back: bool = False
    error_message: Optional[str] = None
    derived: Optional["SyncResult"] = Field(
        default=None,
        description="Result of a derived write (bill payment transaction)"
    )

    @property
    def failed(self) -> bool:
        return not self.success
