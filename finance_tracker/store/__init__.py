"""Synchronized store package."""

from finance_tracker.store.sync_store import SynchronizedStore, to_amount

__all__ = ["SynchronizedStore", "to_amount"]
