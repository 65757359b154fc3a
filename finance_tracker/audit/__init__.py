"""Sync audit logging package."""

from finance_tracker.audit.logger import SyncAuditLogger, configure_logging

__all__ = ["SyncAuditLogger", "configure_logging"]
