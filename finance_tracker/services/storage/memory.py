"""
In-Memory Remote Store

Used when no remote backend is configured, and as the base for test
doubles. Behaves like the real backend: generates ids and created_at on
insert, filters by owner, sorts on request, returns copies.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from finance_tracker.services.storage.adapter import OWNER_COLUMN
from finance_tracker.services.storage.interface import (
    NotFoundError,
    OrderBy,
    RemoteStoreInterface,
    RemoteTable,
    Row,
)


class InMemoryRemoteStore(RemoteStoreInterface):
    """Dict-backed implementation of the remote store."""

    def __init__(self, seed: Optional[dict[RemoteTable, list[Row]]] = None):
        self._tables: dict[RemoteTable, dict[str, Row]] = {
            table: {} for table in RemoteTable
        }
        for table, rows in (seed or {}).items():
            for row in rows:
                stored = dict(row)
                stored.setdefault("id", str(uuid4()))
                stored.setdefault("created_at", _now())
                self._tables[table][stored["id"]] = stored

    def rows(self, table: RemoteTable) -> list[Row]:
        """All stored rows of a table, in insertion order."""
        return [dict(row) for row in self._tables[table].values()]

    async def list_records(
        self,
        table: RemoteTable,
        owner_id: str,
        order_by: OrderBy,
    ) -> list[Row]:
        owned = [
            dict(row)
            for row in self._tables[table].values()
            if row.get(OWNER_COLUMN) == owner_id
        ]
        # Rows missing the sort column go last
        present = [r for r in owned if r.get(order_by.column) is not None]
        missing = [r for r in owned if r.get(order_by.column) is None]
        present.sort(key=lambda r: r[order_by.column], reverse=not order_by.ascending)
        return present + missing

    async def insert_record(self, table: RemoteTable, row: Row) -> Row:
        stored = dict(row)
        stored["id"] = str(uuid4())
        stored["created_at"] = _now()
        self._tables[table][stored["id"]] = stored
        return dict(stored)

    async def update_record(
        self,
        table: RemoteTable,
        record_id: str,
        fields: Row,
    ) -> None:
        stored = self._tables[table].get(record_id)
        if stored is None:
            raise NotFoundError(f"{table.value} row not found: {record_id}")
        stored.update(fields)

    async def delete_record(self, table: RemoteTable, record_id: str) -> None:
        self._tables[table].pop(record_id, None)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
