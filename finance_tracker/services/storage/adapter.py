"""
Remote Access Adapter

Translates between the application's field names (camel-style, as
presentation sees them) and the backend's column names (snake_case).

DESIGN DECISION: One explicit mapping table per entity kind, holding only
the fields whose names differ. Everything else passes through unchanged.
`to_remote` and `to_local` are total: they never raise, and a missing
optional field simply stays absent. Validation happens afterwards, when
the translated dict is turned into an entity.
"""

from collections.abc import Mapping
from typing import Any

from finance_tracker.models.entities import (
    Bill,
    BillDraft,
    EntityKind,
    Goal,
    GoalDraft,
    Transaction,
    TransactionDraft,
)


# application name -> backend column
FIELD_MAP: dict[EntityKind, dict[str, str]] = {
    EntityKind.TRANSACTION: {
        "paymentMethod": "payment_method",
    },
    EntityKind.BILL: {
        "dueDate": "due_date",
        "isRecurring": "is_recurring",
        "isPaid": "is_paid",
        "paidDate": "paid_date",
    },
    EntityKind.GOAL: {
        "targetAmount": "target_amount",
        "currentAmount": "current_amount",
    },
}

_REVERSE_MAP: dict[EntityKind, dict[str, str]] = {
    kind: {remote: local for local, remote in mapping.items()}
    for kind, mapping in FIELD_MAP.items()
}

OWNER_COLUMN = "user_id"


def to_remote(kind: EntityKind, fields: Mapping[str, Any]) -> dict[str, Any]:
    """Rename application fields to backend columns."""
    mapping = FIELD_MAP.get(kind, {})
    return {mapping.get(key, key): value for key, value in fields.items()}


def to_local(kind: EntityKind, row: Mapping[str, Any]) -> dict[str, Any]:
    """Rename backend columns to application fields."""
    mapping = _REVERSE_MAP.get(kind, {})
    return {mapping.get(key, key): value for key, value in row.items()}


# =============================================================================
# Entity helpers: mapping + model validation/serialization
# =============================================================================

def _draft_to_row(kind: EntityKind, draft, owner_id: str) -> dict[str, Any]:
    fields = draft.model_dump(by_alias=True, mode="json", exclude_none=True)
    fields.pop("id", None)
    row = to_remote(kind, fields)
    row[OWNER_COLUMN] = owner_id
    return row


def transaction_to_row(draft: TransactionDraft, owner_id: str) -> dict[str, Any]:
    return _draft_to_row(EntityKind.TRANSACTION, draft, owner_id)


def bill_to_row(draft: BillDraft, owner_id: str) -> dict[str, Any]:
    return _draft_to_row(EntityKind.BILL, draft, owner_id)


def goal_to_row(draft: GoalDraft, owner_id: str) -> dict[str, Any]:
    return _draft_to_row(EntityKind.GOAL, draft, owner_id)


def row_to_transaction(row: Mapping[str, Any]) -> Transaction:
    """Build a Transaction from a backend row. Raises ValidationError if malformed."""
    return Transaction.model_validate(to_local(EntityKind.TRANSACTION, row))


def row_to_bill(row: Mapping[str, Any]) -> Bill:
    """Build a Bill from a backend row. Raises ValidationError if malformed."""
    return Bill.model_validate(to_local(EntityKind.BILL, row))


def row_to_goal(row: Mapping[str, Any]) -> Goal:
    """Build a Goal from a backend row. Raises ValidationError if malformed."""
    return Goal.model_validate(to_local(EntityKind.GOAL, row))


ROW_PARSERS = {
    EntityKind.TRANSACTION: row_to_transaction,
    EntityKind.BILL: row_to_bill,
    EntityKind.GOAL: row_to_goal,
}
