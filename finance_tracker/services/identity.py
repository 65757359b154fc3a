"""
Identity and Profile Interfaces

The identity provider (sign-in, sessions) and the profile store are
external collaborators. The store only ever needs the user id; the
profile only enriches what presentation shows.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from finance_tracker.models.entities import CurrentUser, Session, UserProfile


logger = structlog.get_logger(__name__)


class IdentityError(Exception):
    """Identity provider rejected a request (bad credentials, unknown email...)."""
    pass


class IdentityProviderInterface(ABC):
    """Abstract interface for the authentication service."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Session:
        """Raises IdentityError on bad credentials."""
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Session:
        """Raises IdentityError if the account cannot be created."""
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass

    @abstractmethod
    async def reset_password(self, email: str) -> None:
        pass

    @abstractmethod
    async def get_current_session(self) -> Optional[Session]:
        """The active session, or None when nobody is signed in."""
        pass


class ProfileProviderInterface(ABC):
    """Abstract interface for profile records keyed by user id."""

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        pass


def user_from_session(
    session: Session,
    profile: Optional[UserProfile] = None,
) -> CurrentUser:
    """
    Build the presentation identity from a session and optional profile.

    The display name falls back to the local part of the email.
    """
    name = session.email.split("@")[0]
    phone = None
    avatar_url = None

    if profile is not None:
        if profile.display_name:
            name = profile.display_name
        phone = profile.phone or None
        avatar_url = profile.avatar_url or None

    return CurrentUser(
        id=session.user_id,
        email=session.email,
        name=name,
        phone=phone,
        avatar_url=avatar_url,
    )


async def resolve_current_user(
    identity: IdentityProviderInterface,
    profiles: Optional[ProfileProviderInterface] = None,
) -> Optional[CurrentUser]:
    """Look up the current session, if any, and enrich it with the profile."""
    session = await identity.get_current_session()
    if session is None:
        return None
    return await load_user(session, profiles)


async def load_user(
    session: Session,
    profiles: Optional[ProfileProviderInterface] = None,
) -> CurrentUser:
    """
    Enrich a session with its profile.

    A failed profile lookup is logged and ignored: the user is still
    signed in, just shown with the fallback name.
    """
    profile = None
    if profiles is not None:
        try:
            profile = await profiles.get_profile(session.user_id)
        except Exception as e:
            logger.warning(
                "profile_lookup_failed",
                user_id=session.user_id,
                error=str(e),
            )

    return user_from_session(session, profile)
