"""Tests for read-model derivations."""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.models.entities import Bill, Goal, Transaction, TransactionType
from finance_tracker.queries import (
    Period,
    accepts_deposits,
    balance,
    bill_totals,
    expenses_by_category,
    filter_by_period,
    filter_by_type,
    goal_progress,
    is_bill_late,
    months_left,
    remaining_amount,
    suggested_monthly_savings,
    summarize,
    upcoming_bills,
)
from finance_tracker.queries.summaries import months_before


TODAY = date(2026, 10, 19)


def tx(tx_id, tx_type, amount, day=TODAY, category="Food"):
    return Transaction(
        id=tx_id,
        type=tx_type,
        amount=Decimal(amount),
        date=day,
        category=category,
        payment_method="Cash",
    )


def bill(bill_id, due_date, is_paid=False, amount="100"):
    return Bill(id=bill_id, name=bill_id, amount=Decimal(amount), due_date=due_date, is_paid=is_paid)


def goal(target, current, deadline=date(2027, 4, 30)):
    return Goal(
        id="g1",
        name="Trip",
        target_amount=Decimal(target),
        current_amount=Decimal(current),
        deadline=deadline,
    )


class TestTransactionSummaries:
    """Tests for totals and grouping."""

    def test_expenses_grouped_by_category(self):
        transactions = [
            tx("1", TransactionType.EXPENSE, "100", category="Food"),
            tx("2", TransactionType.EXPENSE, "50", category="Food"),
            tx("3", TransactionType.EXPENSE, "30", category="Transport"),
            tx("4", TransactionType.INCOME, "1000", category="Salary"),
        ]

        assert expenses_by_category(transactions) == {
            "Food": Decimal("150"),
            "Transport": Decimal("30"),
        }

    def test_balance_and_shares(self):
        transactions = [
            tx("1", TransactionType.INCOME, "300"),
            tx("2", TransactionType.EXPENSE, "100"),
        ]

        summary = summarize(transactions)

        assert balance(transactions) == Decimal("200")
        assert summary.balance == Decimal("200")
        assert summary.income_pct == pytest.approx(75.0)
        assert summary.expense_pct == pytest.approx(25.0)

    def test_shares_are_zero_without_volume(self):
        summary = summarize([])
        assert summary.income_pct == 0.0
        assert summary.expense_pct == 0.0

    def test_filter_by_type(self):
        transactions = [
            tx("1", TransactionType.INCOME, "300"),
            tx("2", TransactionType.EXPENSE, "100"),
        ]
        assert [t.id for t in filter_by_type(transactions, TransactionType.EXPENSE)] == ["2"]
        assert len(filter_by_type(transactions)) == 2


class TestPeriods:
    """Tests for date filters."""

    def test_last_7_days_boundary(self):
        transactions = [
            tx("seven", TransactionType.EXPENSE, "1", day=date(2026, 10, 12)),
            tx("eight", TransactionType.EXPENSE, "1", day=date(2026, 10, 11)),
        ]

        kept = filter_by_period(transactions, Period.LAST_7_DAYS, today=TODAY)

        assert [t.id for t in kept] == ["seven"]

    def test_future_dates_are_outside_relative_windows(self):
        transactions = [tx("future", TransactionType.EXPENSE, "1", day=date(2026, 10, 20))]
        assert filter_by_period(transactions, Period.LAST_30_DAYS, today=TODAY) == []
        assert len(filter_by_period(transactions, Period.ALL, today=TODAY)) == 1

    def test_today_and_custom(self):
        transactions = [
            tx("today", TransactionType.EXPENSE, "1"),
            tx("earlier", TransactionType.EXPENSE, "1", day=date(2026, 10, 3)),
        ]
        assert [t.id for t in filter_by_period(transactions, Period.TODAY, today=TODAY)] == ["today"]
        assert [
            t.id for t in filter_by_period(transactions, Period.CUSTOM, custom_date=date(2026, 10, 3))
        ] == ["earlier"]

    def test_custom_requires_a_date(self):
        with pytest.raises(ValueError):
            filter_by_period([tx("1", TransactionType.EXPENSE, "1")], Period.CUSTOM)

    def test_three_months_clamps_to_month_end(self):
        assert months_before(date(2026, 5, 31), 3) == date(2026, 2, 28)
        assert months_before(date(2026, 1, 15), 3) == date(2025, 10, 15)


class TestBills:
    """Tests for bill views."""

    def test_late_compares_day_of_month(self):
        assert is_bill_late(bill("rent", 5), today=TODAY) is True
        assert is_bill_late(bill("rent", 5, is_paid=True), today=TODAY) is False
        assert is_bill_late(bill("internet", 19), today=TODAY) is False

    def test_upcoming_bills_are_unpaid_by_due_day(self):
        bills = [bill("a", 20), bill("b", 5), bill("c", 10, is_paid=True), bill("d", 1), bill("e", 15)]

        assert [b.id for b in upcoming_bills(bills)] == ["d", "b", "e"]
        assert len(upcoming_bills(bills, limit=None)) == 4

    def test_bill_totals(self):
        totals = bill_totals([bill("a", 1, amount="100"), bill("b", 2, is_paid=True, amount="40")])
        assert totals.pending == Decimal("100")
        assert totals.paid == Decimal("40")


class TestGoals:
    """Tests for goal progress."""

    def test_progress_is_capped(self):
        assert goal_progress(goal("1000", "1200")) == 100.0
        assert goal_progress(goal("1000", "250")) == pytest.approx(25.0)

    def test_zero_target_counts_as_reached(self):
        assert goal_progress(goal("0", "0")) == 100.0

    def test_remaining_and_deposits(self):
        assert remaining_amount(goal("1000", "1200")) == Decimal("-200")
        assert accepts_deposits(goal("1000", "1200")) is False
        assert accepts_deposits(goal("1000", "999")) is True

    def test_months_left_ignores_day(self):
        assert months_left(date(2027, 4, 1), today=TODAY) == 6
        assert months_left(date(2026, 10, 31), today=TODAY) == 0

    def test_suggested_monthly_savings(self):
        assert suggested_monthly_savings(goal("1000", "400"), today=TODAY) == Decimal("100")
        # No whole months left: save it all now
        assert suggested_monthly_savings(
            goal("1000", "400", deadline=date(2026, 10, 25)), today=TODAY
        ) == Decimal("600")
