"""
Storage Services Package

Provides the abstract remote store interface, the field-name adapter,
and concrete backends (Google Sheets, in-memory).
"""

from finance_tracker.services.storage.interface import (
    ConnectionError,
    NotFoundError,
    OrderBy,
    RemoteStoreInterface,
    RemoteTable,
    RemoteTimeoutError,
    Row,
    StorageError,
)
from finance_tracker.services.storage.adapter import (
    FIELD_MAP,
    to_local,
    to_remote,
)
from finance_tracker.services.storage.memory import InMemoryRemoteStore
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
)

__all__ = [
    # Interfaces
    "OrderBy",
    "RemoteStoreInterface",
    "RemoteTable",
    "Row",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "RemoteTimeoutError",
    "StorageError",
    # Adapter
    "FIELD_MAP",
    "to_local",
    "to_remote",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
    "InMemoryRemoteStore",
]
