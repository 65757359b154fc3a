"""Cross-entity business rules."""

from finance_tracker.rules.bill_payment import (
    bill_payment_transaction,
    should_synthesize,
)

__all__ = ["bill_payment_transaction", "should_synthesize"]
