"""
Read-Model Derivations

DESIGN DECISION: Every summary presentation shows is a pure function of
a snapshot of the store's collections. Nothing is cached: "today" is
read on every call (or passed in), so a summary never goes stale.

Period windows are inclusive of their first day: "last 7 days" on the
19th covers the 12th through the 19th. Future-dated transactions fall
outside every relative window.
"""

import calendar
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from finance_tracker.models.entities import Bill, Goal, Transaction, TransactionType


class Period(str, Enum):
    """Date filters offered for transaction lists."""
    ALL = "all"
    TODAY = "today"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_3_MONTHS = "3m"
    CUSTOM = "custom"


class TransactionSummary(BaseModel):
    """Totals for a set of transactions."""
    income: Decimal
    expense: Decimal
    balance: Decimal
    income_pct: float
    expense_pct: float


class BillTotals(BaseModel):
    """Amounts still to pay and already paid."""
    pending: Decimal
    paid: Decimal


# =============================================================================
# Transactions
# =============================================================================

def total_by_type(transactions: Iterable[Transaction], transaction_type: TransactionType) -> Decimal:
    """Sum of amounts of one transaction type."""
    return sum((t.amount for t in transactions if t.type == transaction_type), Decimal("0"))


def balance(transactions: Iterable[Transaction]) -> Decimal:
    """Income total minus expense total."""
    transactions = list(transactions)
    return (
        total_by_type(transactions, TransactionType.INCOME)
        - total_by_type(transactions, TransactionType.EXPENSE)
    )


def summarize(transactions: Iterable[Transaction]) -> TransactionSummary:
    """
    Income, expense, balance and each side's share of total volume.

    Shares are 0 when there is no volume at all.
    """
    transactions = list(transactions)
    income = total_by_type(transactions, TransactionType.INCOME)
    expense = total_by_type(transactions, TransactionType.EXPENSE)
    volume = income + expense

    if volume > 0:
        income_pct = float(income / volume * 100)
        expense_pct = float(expense / volume * 100)
    else:
        income_pct = expense_pct = 0.0

    return TransactionSummary(
        income=income,
        expense=expense,
        balance=income - expense,
        income_pct=income_pct,
        expense_pct=expense_pct,
    )


def expenses_by_category(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Expense amounts grouped by category, in first-seen order."""
    groups: dict[str, Decimal] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        groups[t.category] = groups.get(t.category, Decimal("0")) + t.amount
    return groups


def filter_by_type(
    transactions: Iterable[Transaction],
    transaction_type: Optional[TransactionType] = None,
) -> list[Transaction]:
    """Transactions of one type, or all of them when type is None."""
    return [t for t in transactions if transaction_type is None or t.type == transaction_type]


def months_before(day: date, months: int) -> date:
    """Same day `months` calendar months earlier, clamped to month length."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def period_start(period: Period, today: date) -> Optional[date]:
    """First day (inclusive) of a relative period; None for ALL/CUSTOM."""
    if period == Period.TODAY:
        return today
    if period == Period.LAST_7_DAYS:
        return today - timedelta(days=7)
    if period == Period.LAST_30_DAYS:
        return today - timedelta(days=30)
    if period == Period.LAST_3_MONTHS:
        return months_before(today, 3)
    return None


def in_period(
    transaction: Transaction,
    period: Period,
    custom_date: Optional[date] = None,
    today: Optional[date] = None,
) -> bool:
    """
    Whether a transaction falls in a period.

    Raises:
        ValueError: For Period.CUSTOM without a custom_date
    """
    if period == Period.ALL:
        return True
    if period == Period.CUSTOM:
        if custom_date is None:
            raise ValueError("custom_date is required for Period.CUSTOM")
        return transaction.date == custom_date

    today = today or date.today()
    start = period_start(period, today)
    return start <= transaction.date <= today


def filter_by_period(
    transactions: Iterable[Transaction],
    period: Period,
    custom_date: Optional[date] = None,
    today: Optional[date] = None,
) -> list[Transaction]:
    """Transactions inside a period, order preserved."""
    today = today or date.today()
    return [
        t for t in transactions
        if in_period(t, period, custom_date=custom_date, today=today)
    ]


# =============================================================================
# Bills
# =============================================================================

def is_bill_late(bill: Bill, today: Optional[date] = None) -> bool:
    """
    Unpaid and due earlier this month.

    Only the day of month is compared: due dates carry no month or year.
    """
    today = today or date.today()
    return not bill.is_paid and bill.due_date < today.day


def upcoming_bills(bills: Iterable[Bill], limit: Optional[int] = 3) -> list[Bill]:
    """Unpaid bills by due day, earliest first."""
    unpaid = sorted((b for b in bills if not b.is_paid), key=lambda b: b.due_date)
    return unpaid[:limit] if limit is not None else unpaid


def bill_totals(bills: Iterable[Bill]) -> BillTotals:
    pending = Decimal("0")
    paid = Decimal("0")
    for bill in bills:
        if bill.is_paid:
            paid += bill.amount
        else:
            pending += bill.amount
    return BillTotals(pending=pending, paid=paid)


# =============================================================================
# Goals
# =============================================================================

def goal_progress(goal: Goal) -> float:
    """
    Percent of the target saved, capped at 100.

    A zero target counts as reached (100).
    """
    if goal.target_amount == 0:
        return 100.0
    return min(float(goal.current_amount / goal.target_amount * 100), 100.0)


def remaining_amount(goal: Goal) -> Decimal:
    """Target minus current; negative once the goal is exceeded."""
    return goal.target_amount - goal.current_amount


def accepts_deposits(goal: Goal) -> bool:
    return remaining_amount(goal) > 0


def months_left(deadline: date, today: Optional[date] = None) -> int:
    """Whole calendar months between today and the deadline (day ignored)."""
    today = today or date.today()
    return (deadline.year - today.year) * 12 + (deadline.month - today.month)


def suggested_monthly_savings(goal: Goal, today: Optional[date] = None) -> Decimal:
    """
    How much to save per month to reach the goal by its deadline.

    With no whole months left, the whole remaining amount.
    """
    remaining = remaining_amount(goal)
    left = months_left(goal.deadline, today)
    if left <= 0:
        return remaining
    return remaining / left
