"""Tests for current-user resolution and the session wiring."""

import pytest

from conftest import FakeProfileProvider
from finance_tracker.models.entities import Session, UserProfile
from finance_tracker.orchestrator import FinanceSession, create_app_components
from finance_tracker.services.identity import (
    IdentityError,
    resolve_current_user,
    user_from_session,
)


class TestUserFromSession:
    """Tests for building the presentation identity."""

    def test_name_falls_back_to_email_local_part(self):
        user = user_from_session(Session(user_id="u1", email="ana.souza@example.com"))
        assert user.name == "ana.souza"
        assert user.phone is None

    def test_profile_overrides_name(self):
        user = user_from_session(
            Session(user_id="u1", email="ana@example.com"),
            UserProfile(id="u1", display_name="Ana Souza", phone="123"),
        )
        assert user.name == "Ana Souza"
        assert user.phone == "123"

    def test_blank_display_name_is_ignored(self):
        user = user_from_session(
            Session(user_id="u1", email="ana@example.com"),
            UserProfile(id="u1", display_name=""),
        )
        assert user.name == "ana"


class TestResolveCurrentUser:
    """Tests for resolving the signed-in user."""

    @pytest.mark.asyncio
    async def test_no_session(self, identity, profiles):
        assert await resolve_current_user(identity, profiles) is None

    @pytest.mark.asyncio
    async def test_profile_failure_is_ignored(self, identity):
        await identity.sign_in("ana@example.com", "secret")

        user = await resolve_current_user(identity, FakeProfileProvider({}, broken=True))

        assert user.id == "u1"
        assert user.name == "ana"


class TestFinanceSession:
    """Tests for keeping the store bound to the signed-in user."""

    @pytest.mark.asyncio
    async def test_start_without_session_leaves_store_empty(self, store, identity, profiles):
        session = FinanceSession(store, identity, profiles)

        assert await session.start() is None
        assert store.user_id == ""
        assert store.transactions == ()

    @pytest.mark.asyncio
    async def test_sign_in_binds_store(self, store, identity, profiles):
        session = FinanceSession(store, identity, profiles)

        user = await session.sign_in("ana@example.com", "secret")

        assert user.name == "Ana Souza"
        assert store.user_id == "u1"
        assert [t.id for t in store.transactions] == ["t2", "t1"]

    @pytest.mark.asyncio
    async def test_start_resumes_existing_session(self, store, identity, profiles):
        await identity.sign_in("bruno@example.com", "hunter2")
        session = FinanceSession(store, identity, profiles)

        user = await session.start()

        assert user.name == "bruno"
        assert [t.id for t in store.transactions] == ["t3"]

    @pytest.mark.asyncio
    async def test_bad_credentials_leave_store_untouched(self, store, identity):
        session = FinanceSession(store, identity)

        with pytest.raises(IdentityError):
            await session.sign_in("ana@example.com", "wrong")

        assert store.user_id == ""
        assert session.user is None

    @pytest.mark.asyncio
    async def test_sign_out_clears_store(self, store, identity, profiles):
        session = FinanceSession(store, identity, profiles)
        await session.sign_in("ana@example.com", "secret")

        await session.sign_out()

        assert session.user is None
        assert store.user_id == ""
        assert store.bills == ()
        assert await identity.get_current_session() is None

    @pytest.mark.asyncio
    async def test_sign_up_binds_empty_store(self, store, identity, profiles):
        session = FinanceSession(store, identity, profiles)

        user = await session.sign_up("carla@example.com", "pw")

        assert user.name == "carla"
        assert store.user_id == user.id
        assert store.transactions == ()

    @pytest.mark.asyncio
    async def test_switching_accounts_rebinds(self, store, identity, profiles):
        session = FinanceSession(store, identity, profiles)
        await session.sign_in("ana@example.com", "secret")

        await session.sign_in("bruno@example.com", "hunter2")

        assert store.user_id == "u2"
        assert [t.id for t in store.transactions] == ["t3"]
        assert store.goals == ()


class TestCreateAppComponents:
    """Tests for the component factory."""

    @pytest.mark.asyncio
    async def test_uses_given_remote(self, remote, identity):
        session = create_app_components(identity, remote=remote)

        await session.sign_in("ana@example.com", "secret")

        assert len(session.store.bills) == 3

    def test_memory_backend_from_settings(self, identity, monkeypatch):
        from finance_tracker.config import get_settings
        from finance_tracker.services.storage import InMemoryRemoteStore

        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        get_settings.cache_clear()
        try:
            session = create_app_components(identity)
        finally:
            get_settings.cache_clear()

        assert isinstance(session.store._remote, InMemoryRemoteStore)
