"""
Shared fixtures for Finance Tracker tests.

No real backend is contacted: the remote store is an in-memory store
whose calls can be held open (to observe optimistic state) or made to
fail (to observe rollback).
"""

import asyncio
from datetime import date
from typing import Optional

import pytest

from finance_tracker.audit import SyncAuditLogger
from finance_tracker.config import StoreSettings
from finance_tracker.models.entities import Session, UserProfile
from finance_tracker.services.identity import (
    IdentityError,
    IdentityProviderInterface,
    ProfileProviderInterface,
)
from finance_tracker.services.storage import InMemoryRemoteStore, RemoteTable
from finance_tracker.store import SynchronizedStore


TODAY = date(2026, 10, 19)


class ScriptedRemoteStore(InMemoryRemoteStore):
    """
    In-memory remote store with scripted delays and failures.

    Calls are keyed by operation ("insert"), operation and table
    ("insert:bills") and, for listing, operation and owner ("list:u1").
    "reply:insert" holds an insert after the row is stored.
    """

    def __init__(self, seed=None):
        super().__init__(seed)
        self.gates: dict[str, asyncio.Event] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def hold(self, key: str) -> asyncio.Event:
        """Hold calls matching `key` until the returned event is set."""
        gate = asyncio.Event()
        self.gates[key] = gate
        return gate

    def fail(self, key: str, error: Optional[Exception] = None) -> None:
        self.failures[key] = error or RuntimeError(f"{key} failed")

    async def _pass(self, *keys: str) -> None:
        for key in keys:
            gate = self.gates.get(key)
            if gate is not None:
                await gate.wait()
        for key in keys:
            if key in self.failures:
                raise self.failures[key]

    async def list_records(self, table, owner_id, order_by):
        self.calls.append(("list", table.value))
        await self._pass("list", f"list:{owner_id}", f"list:{table.value}")
        return await super().list_records(table, owner_id, order_by)

    async def insert_record(self, table, row):
        self.calls.append(("insert", table.value))
        await self._pass("insert", f"insert:{table.value}")
        stored = await super().insert_record(table, row)
        # Row is stored; the reply can still be held back
        await self._pass("reply:insert")
        return stored

    async def update_record(self, table, record_id, fields):
        self.calls.append(("update", table.value))
        await self._pass("update", f"update:{table.value}")
        return await super().update_record(table, record_id, fields)

    async def delete_record(self, table, record_id):
        self.calls.append(("delete", table.value))
        await self._pass("delete", f"delete:{table.value}")
        return await super().delete_record(table, record_id)


class FakeIdentityProvider(IdentityProviderInterface):
    """Accepts one known password; keeps the session in memory."""

    def __init__(self, accounts: dict[str, tuple[str, str]]):
        # email -> (user_id, password)
        self._accounts = accounts
        self._session: Optional[Session] = None

    async def sign_in(self, email, password):
        account = self._accounts.get(email)
        if account is None or account[1] != password:
            raise IdentityError("Invalid login credentials")
        self._session = Session(user_id=account[0], email=email)
        return self._session

    async def sign_up(self, email, password):
        if email in self._accounts:
            raise IdentityError("User already registered")
        self._accounts[email] = (f"user-{len(self._accounts) + 1}", password)
        return await self.sign_in(email, password)

    async def sign_out(self):
        self._session = None

    async def reset_password(self, email):
        pass

    async def get_current_session(self):
        return self._session


class FakeProfileProvider(ProfileProviderInterface):

    def __init__(self, profiles: dict[str, UserProfile], broken: bool = False):
        self._profiles = profiles
        self._broken = broken

    async def get_profile(self, user_id):
        if self._broken:
            raise RuntimeError("profiles table unavailable")
        return self._profiles.get(user_id)


def seed_rows() -> dict[RemoteTable, list[dict]]:
    """Backend rows for two users, in backend column names."""
    return {
        RemoteTable.TRANSACTIONS: [
            {
                "id": "t1", "user_id": "u1", "type": "income", "amount": "3000",
                "date": "2026-10-01", "category": "Salary",
                "payment_method": "Instant Transfer",
            },
            {
                "id": "t2", "user_id": "u1", "type": "expense", "amount": "120.50",
                "date": "2026-10-15", "category": "Food",
                "payment_method": "Debit Card", "description": "Groceries",
            },
            {
                "id": "t3", "user_id": "u2", "type": "expense", "amount": "40",
                "date": "2026-10-10", "category": "Leisure",
                "payment_method": "Cash",
            },
        ],
        RemoteTable.BILLS: [
            {
                "id": "b1", "user_id": "u1", "name": "Internet", "amount": "99.90",
                "due_date": 20, "is_recurring": True, "is_paid": False,
            },
            {
                "id": "b2", "user_id": "u1", "name": "Rent", "amount": "1500",
                "due_date": 5, "is_recurring": True, "is_paid": False,
            },
            {
                "id": "b3", "user_id": "u1", "name": "Gym", "amount": "80",
                "due_date": 10, "is_recurring": False, "is_paid": True,
            },
        ],
        RemoteTable.GOALS: [
            {
                "id": "g1", "user_id": "u1", "name": "Trip", "target_amount": "5000",
                "current_amount": "100", "deadline": "2027-06-30",
                "created_at": "2026-02-01T00:00:00+00:00",
            },
            {
                "id": "g2", "user_id": "u1", "name": "Emergency fund",
                "target_amount": "10000", "current_amount": "2500",
                "deadline": "2027-12-31",
                "created_at": "2025-11-01T00:00:00+00:00",
            },
        ],
    }


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def remote() -> ScriptedRemoteStore:
    return ScriptedRemoteStore(seed_rows())


@pytest.fixture
def store_settings() -> StoreSettings:
    return StoreSettings(request_timeout_seconds=1.0)


@pytest.fixture
def audit() -> SyncAuditLogger:
    return SyncAuditLogger(history_size=500)


@pytest.fixture
def store(remote, store_settings, audit) -> SynchronizedStore:
    return SynchronizedStore(
        remote,
        settings=store_settings,
        audit_logger=audit,
        today=lambda: TODAY,
    )


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider({
        "ana@example.com": ("u1", "secret"),
        "bruno@example.com": ("u2", "hunter2"),
    })


@pytest.fixture
def profiles() -> FakeProfileProvider:
    return FakeProfileProvider({
        "u1": UserProfile(id="u1", display_name="Ana Souza", phone="+55 11 99999-0000"),
    })
