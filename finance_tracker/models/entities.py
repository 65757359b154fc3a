"""
Core Entity Models for Finance Tracker

These models define the shape of every record the store owns:
transactions, bills and goals, plus the identity records consumed
from the identity provider.

DESIGN DECISION: Python attributes are snake_case, but the application's
public field names (the ones presentation reads) are camel-style.
Every entity carries camel aliases so `model_dump(by_alias=True)` yields
the application shape and either spelling is accepted on input.
Backend column names are a third convention, handled only by the
storage adapter.

Amounts are Decimal. Non-finite values (NaN, Infinity) are rejected by
validation, so a malformed amount never reaches the store's state.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a money movement."""
    INCOME = "income"
    EXPENSE = "expense"


class Category(str, Enum):
    """
    Spending/earning categories offered to the user.

    Not enforced on Transaction.category: the remote store is the source
    of truth for validity.
    """
    FOOD = "Food"
    TRANSPORT = "Transport"
    LEISURE = "Leisure"
    HOME = "Home"
    EDUCATION = "Education"
    HEALTH = "Health"
    SALARY = "Salary"
    EXTRA = "Extra"
    OTHER = "Other"


class PaymentMethod(str, Enum):
    """Payment instruments offered to the user."""
    CASH = "Cash"
    INSTANT_TRANSFER = "Instant Transfer"
    CREDIT_CARD = "Credit Card"
    DEBIT_CARD = "Debit Card"
    BANK_SLIP = "Bank Slip"


class EntityKind(str, Enum):
    """The three record kinds the store synchronizes."""
    TRANSACTION = "transaction"
    BILL = "bill"
    GOAL = "goal"


CATEGORIES: list[str] = [c.value for c in Category]
PAYMENT_METHODS: list[str] = [m.value for m in PaymentMethod]


class EntityModel(BaseModel):
    """Base for all entities: camel aliases, extra backend columns ignored."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
        frozen=True,
    )


# =============================================================================
# DRAFTS - what the caller supplies before an id exists
# =============================================================================

class TransactionDraft(EntityModel):
    """
    Fields of a new transaction.

    The sign of `amount` is not validated here; that is a presentation
    concern. Only finiteness is enforced.
    """
    type: TransactionType
    amount: Decimal = Field(..., allow_inf_nan=False)
    date: date
    category: str = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1)
    description: Optional[str] = None


class BillDraft(EntityModel):
    """Fields of a new bill. `is_paid` is always False on creation."""
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0, allow_inf_nan=False)
    due_date: int = Field(
        ...,
        ge=1,
        le=31,
        description="Day of month (1-31); no month/year component"
    )
    is_recurring: bool = False


class GoalDraft(EntityModel):
    """Fields of a new goal. The initial deposit is passed separately."""
    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal = Field(..., ge=0, allow_inf_nan=False)
    deadline: date


# =============================================================================
# ENTITIES
# =============================================================================

class Transaction(TransactionDraft):
    """
    A single money movement.

    Never edited in place: created by the user or by the bill-payment
    rule, deleted by the user.
    """
    id: str = Field(..., min_length=1)


class Bill(BillDraft):
    """
    A recurring or one-off obligation.

    `due_date` is a day of month only, so lateness compares against
    today's day of month (a bill due on the 5th is "upcoming" on the 20th
    even across a month boundary). `paid_date` is carried through from the
    backend but never written by the store.
    """
    id: str = Field(..., min_length=1)
    is_paid: bool = False
    paid_date: Optional[str] = None


class Goal(GoalDraft):
    """
    A savings target.

    `current_amount` only grows through deposits; nothing withdraws.
    """
    id: str = Field(..., min_length=1)
    current_amount: Decimal = Field(default=Decimal("0"), allow_inf_nan=False)


# =============================================================================
# IDENTITY (consumed from the identity provider)
# =============================================================================

class Session(BaseModel):
    """An authenticated session as reported by the identity provider."""
    user_id: str
    email: str


class UserProfile(BaseModel):
    """Profile record keyed by user id."""
    id: str
    display_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None


class CurrentUser(BaseModel):
    """Identity object handed to presentation."""
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
