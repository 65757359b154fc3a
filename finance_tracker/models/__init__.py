"""
Data Models Package

This package contains all Pydantic models used by the Finance Tracker store.
All data flowing through the store must conform to these schemas.
"""

from finance_tracker.models.entities import (
    CATEGORIES,
    PAYMENT_METHODS,
    Bill,
    BillDraft,
    Category,
    CurrentUser,
    EntityKind,
    Goal,
    GoalDraft,
    PaymentMethod,
    Session,
    Transaction,
    TransactionDraft,
    TransactionType,
    UserProfile,
)
from finance_tracker.models.audit import (
    SyncEvent,
    SyncEventType,
    SyncResult,
    SyncSeverity,
)

__all__ = [
    # Entity models
    "CATEGORIES",
    "PAYMENT_METHODS",
    "Bill",
    "BillDraft",
    "Category",
    "CurrentUser",
    "EntityKind",
    "Goal",
    "GoalDraft",
    "PaymentMethod",
    "Session",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "UserProfile",
    # Sync models
    "SyncEvent",
    "SyncEventType",
    "SyncResult",
    "SyncSeverity",
]
