"""
Abstract Remote Store Interface

DESIGN DECISION: The store talks to the backend only through this
interface. This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep sync logic decoupled from any backend

The interface is intentionally generic: list/insert/update/delete on a
table, filtered by owner. Rows use backend column names (snake_case);
translation to the application's field names is the adapter's job.

Failures are raised as StorageError subclasses. The store catches them
at its boundary.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel

from finance_tracker.models.entities import EntityKind


Row = dict[str, Any]


class RemoteTable(str, Enum):
    """Backend tables, one per record kind."""
    TRANSACTIONS = "transactions"
    BILLS = "bills"
    GOALS = "goals"

    @classmethod
    def for_kind(cls, kind: EntityKind) -> "RemoteTable":
        return {
            EntityKind.TRANSACTION: cls.TRANSACTIONS,
            EntityKind.BILL: cls.BILLS,
            EntityKind.GOAL: cls.GOALS,
        }[kind]


class OrderBy(BaseModel):
    """Ordering of a list request, by backend column name."""
    column: str
    ascending: bool = True


class RemoteStoreInterface(ABC):
    """
    Abstract interface for the remote persistence service.

    Every row carries a `user_id` owner column. Implementations generate
    `id` and `created_at` on insert and return the stored row.
    """

    @abstractmethod
    async def list_records(
        self,
        table: RemoteTable,
        owner_id: str,
        order_by: OrderBy,
    ) -> list[Row]:
        """
        List every row of a table owned by `owner_id`.

        Args:
            table: Table to read
            owner_id: Owner to filter by
            order_by: Column and direction to sort by

        Returns:
            Rows with backend column names

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def insert_record(self, table: RemoteTable, row: Row) -> Row:
        """
        Insert a row.

        Returns:
            The authoritative stored row, including generated id

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update_record(
        self,
        table: RemoteTable,
        record_id: str,
        fields: Row,
    ) -> None:
        """
        Update only the given columns of one row.

        Raises:
            NotFoundError: If no row has this id
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete_record(self, table: RemoteTable, record_id: str) -> None:
        """
        Delete a row by id. Deleting a missing row is not an error.

        Raises:
            StorageError: If the delete fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class RemoteTimeoutError(StorageError):
    """A remote call did not complete within the configured timeout."""
    pass
