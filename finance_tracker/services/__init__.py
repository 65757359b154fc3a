"""Services package."""

from finance_tracker.services.identity import (
    IdentityError,
    IdentityProviderInterface,
    ProfileProviderInterface,
    load_user,
    resolve_current_user,
    user_from_session,
)
from finance_tracker.services.storage import (
    ConnectionError,
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryRemoteStore,
    NotFoundError,
    OrderBy,
    RemoteStoreInterface,
    RemoteTable,
    RemoteTimeoutError,
    StorageError,
)

__all__ = [
    # Identity
    "IdentityError",
    "IdentityProviderInterface",
    "ProfileProviderInterface",
    "load_user",
    "resolve_current_user",
    "user_from_session",
    # Storage
    "ConnectionError",
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
    "InMemoryRemoteStore",
    "NotFoundError",
    "OrderBy",
    "RemoteStoreInterface",
    "RemoteTable",
    "RemoteTimeoutError",
    "StorageError",
]
