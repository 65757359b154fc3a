"""Read models package."""

from finance_tracker.queries.summaries import (
    BillTotals,
    Period,
    TransactionSummary,
    accepts_deposits,
    balance,
    bill_totals,
    expenses_by_category,
    filter_by_period,
    filter_by_type,
    goal_progress,
    in_period,
    is_bill_late,
    months_left,
    remaining_amount,
    suggested_monthly_savings,
    summarize,
    total_by_type,
    upcoming_bills,
)

__all__ = [
    "BillTotals",
    "Period",
    "TransactionSummary",
    "accepts_deposits",
    "balance",
    "bill_totals",
    "expenses_by_category",
    "filter_by_period",
    "filter_by_type",
    "goal_progress",
    "in_period",
    "is_bill_late",
    "months_left",
    "remaining_amount",
    "suggested_monthly_savings",
    "summarize",
    "total_by_type",
    "upcoming_bills",
]
