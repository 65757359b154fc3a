"""
Bill Payment Rule

When a bill goes from unpaid to paid, the money left the account: the
store records it as one expense transaction dated today, for the bill's
amount, with a description naming the bill.

The rule only builds the draft. The store sends it through the same
optimistic add_transaction path as a user-entered transaction.
"""

from datetime import date
from typing import Optional

from finance_tracker.config import StoreSettings, get_settings
from finance_tracker.models.entities import Bill, TransactionDraft, TransactionType


def bill_payment_transaction(
    bill: Bill,
    today: Optional[date] = None,
    settings: Optional[StoreSettings] = None,
) -> TransactionDraft:
    """
    Build the expense transaction for paying `bill`.

    Args:
        bill: The bill that was just marked paid
        today: Payment date, defaults to the current date
        settings: Source of the default category, payment method and
                  description template

    Returns:
        Draft ready for SynchronizedStore.add_transaction
    """
    settings = settings or get_settings().store
    return TransactionDraft(
        type=TransactionType.EXPENSE,
        amount=bill.amount,
        date=today or date.today(),
        category=settings.bill_payment_category.value,
        payment_method=settings.bill_payment_method.value,
        description=settings.bill_payment_description.format(name=bill.name),
    )


def should_synthesize(was_paid: bool, is_paid: bool) -> bool:
    """Only the unpaid -> paid transition creates a transaction."""
    return not was_paid and is_paid
