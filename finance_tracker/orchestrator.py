"""
Orchestrator for Finance Tracker

Ties together the remote store, the synchronized store and the identity
provider, and defines the session lifecycle presentation drives:
1. Start (resolve current user → bind store)
2. Sign in / sign out (rebind or clear)

DESIGN DECISION: There is no global store. `create_app_components`
builds one and the caller passes it to every consumer.
"""

from typing import Optional

import structlog

from finance_tracker.audit import SyncAuditLogger, configure_logging
from finance_tracker.config import get_settings
from finance_tracker.models.entities import CurrentUser, Session
from finance_tracker.services.identity import (
    IdentityProviderInterface,
    ProfileProviderInterface,
    load_user,
    resolve_current_user,
)
from finance_tracker.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryRemoteStore,
    RemoteStoreInterface,
)
from finance_tracker.store import SynchronizedStore


logger = structlog.get_logger(__name__)


class FinanceSession:
    """
    Keeps the store bound to whoever is signed in.

    Every identity change goes through here so the store is rebound
    (or cleared) exactly when the user changes.
    """

    def __init__(
        self,
        store: SynchronizedStore,
        identity: IdentityProviderInterface,
        profiles: Optional[ProfileProviderInterface] = None,
    ):
        self._store = store
        self._identity = identity
        self._profiles = profiles
        self._user: Optional[CurrentUser] = None

    @property
    def store(self) -> SynchronizedStore:
        return self._store

    @property
    def user(self) -> Optional[CurrentUser]:
        return self._user

    async def start(self) -> Optional[CurrentUser]:
        """Resume an existing session, if any, and load its data."""
        self._user = await resolve_current_user(self._identity, self._profiles)
        await self._store.bind(self._user.id if self._user else "")
        return self._user

    async def sign_in(self, email: str, password: str) -> CurrentUser:
        """
        Sign in and load the user's data.

        Raises:
            IdentityError: If the identity provider rejects the credentials
        """
        session = await self._identity.sign_in(email, password)
        return await self._bind_session(session)

    async def sign_up(self, email: str, password: str) -> CurrentUser:
        """Create an account and bind the (empty) store to it."""
        session = await self._identity.sign_up(email, password)
        return await self._bind_session(session)

    async def _bind_session(self, session: Session) -> CurrentUser:
        self._user = await load_user(session, self._profiles)
        await self._store.bind(self._user.id)
        return self._user

    async def sign_out(self) -> None:
        """Sign out and drop the user's data from memory."""
        await self._identity.sign_out()
        self._user = None
        await self._store.bind("")


def create_remote_store(backend: Optional[str] = None) -> RemoteStoreInterface:
    """
    Build the configured remote store.

    Falls back to the in-memory store if Google Sheets is not configured.
    """
    backend = backend or get_settings().app.storage_backend
    if backend == "memory":
        return InMemoryRemoteStore()

    try:
        return GoogleSheetsRemoteStore(GoogleSheetsClient())
    except Exception as e:
        # Storage not configured - continue without it
        logger.warning("remote_store_unavailable", backend=backend, error=str(e))
        return InMemoryRemoteStore()


def create_app_components(
    identity: IdentityProviderInterface,
    profiles: Optional[ProfileProviderInterface] = None,
    remote: Optional[RemoteStoreInterface] = None,
) -> FinanceSession:
    """
    Factory function to create all application components.

    Args:
        identity: Identity provider used to find the signed-in user
        profiles: Optional profile provider for display names
        remote: Remote store; built from settings when None

    Returns:
        A session wrapping a fresh SynchronizedStore
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    store = SynchronizedStore(
        remote=remote or create_remote_store(),
        settings=settings.store,
        audit_logger=SyncAuditLogger(history_size=settings.app.audit_history_size),
    )
    return FinanceSession(store, identity, profiles)
