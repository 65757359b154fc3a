"""
Google Sheets Remote Store

DESIGN DECISION: Google Sheets is used as the default backend because:
1. Non-technical users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No row-level security: owner filtering is done here, on the user_id column
- Every cell is text; typing is restored by entity validation

gspread is blocking, so calls run in a worker thread to keep the event
loop free while the store's three loads are in flight.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.config import get_settings
from finance_tracker.services.storage.adapter import OWNER_COLUMN
from finance_tracker.services.storage.interface import (
    ConnectionError,
    NotFoundError,
    OrderBy,
    RemoteStoreInterface,
    RemoteTable,
    Row,
    StorageError,
)


# Column layout per worksheet
TABLE_COLUMNS: dict[RemoteTable, list[str]] = {
    RemoteTable.TRANSACTIONS: [
        "id",
        "user_id",
        "created_at",
        "type",
        "amount",
        "date",
        "category",
        "payment_method",
        "description",
    ],
    RemoteTable.BILLS: [
        "id",
        "user_id",
        "created_at",
        "name",
        "amount",
        "due_date",
        "is_recurring",
        "is_paid",
        "paid_date",
    ],
    RemoteTable.GOALS: [
        "id",
        "user_id",
        "created_at",
        "name",
        "target_amount",
        "current_amount",
        "deadline",
    ],
}

# Sorted numerically rather than as text
NUMERIC_COLUMNS = {"amount", "due_date", "target_amount", "current_amount"}

_RETRY = dict(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type(NotFoundError),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet lookup/creation.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def sheet_name(self, table: RemoteTable) -> str:
        return {
            RemoteTable.TRANSACTIONS: self._settings.transactions_sheet_name,
            RemoteTable.BILLS: self._settings.bills_sheet_name,
            RemoteTable.GOALS: self._settings.goals_sheet_name,
        }[table]

    def get_sheet(self, table: RemoteTable) -> gspread.Worksheet:
        """Get or create the worksheet backing a table."""
        spreadsheet = self.get_spreadsheet()
        title = self.sheet_name(table)
        columns = TABLE_COLUMNS[table]
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class GoogleSheetsRemoteStore(RemoteStoreInterface):
    """
    Google Sheets implementation of the remote store.

    One worksheet per table, one record per row, header in row 1.
    Empty cells are treated as absent fields.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_cells(self, table: RemoteTable, row: Row) -> list[str]:
        return [_to_cell(row.get(column)) for column in TABLE_COLUMNS[table]]

    def _cells_to_row(self, header: list[str], cells: list[str]) -> Row:
        return {
            column: value
            for column, value in zip(header, cells)
            if value != ""
        }

    def _find_row_index(self, values: list[list[str]], record_id: str) -> Optional[int]:
        """1-based sheet row index of a record, or None."""
        for idx, cells in enumerate(values[1:], start=2):  # Row 1 is header
            if cells and cells[0] == record_id:
                return idx
        return None

    @retry(**_RETRY)
    async def list_records(
        self,
        table: RemoteTable,
        owner_id: str,
        order_by: OrderBy,
    ) -> list[Row]:
        try:
            sheet = await asyncio.to_thread(self._client.get_sheet, table)
            values = await asyncio.to_thread(sheet.get_all_values)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list {table.value}: {e}")

        if not values:
            return []

        header = values[0]
        rows = [
            self._cells_to_row(header, cells)
            for cells in values[1:]
            if cells and cells[0]  # Skip empty rows
        ]
        owned = [row for row in rows if row.get(OWNER_COLUMN) == owner_id]

        present = [r for r in owned if order_by.column in r]
        missing = [r for r in owned if order_by.column not in r]
        present.sort(
            key=lambda r: _sort_key(order_by.column, r[order_by.column]),
            reverse=not order_by.ascending,
        )
        return present + missing

    async def insert_record(self, table: RemoteTable, row: Row) -> Row:
        stored = dict(row)
        stored["id"] = str(uuid4())
        stored["created_at"] = datetime.now(timezone.utc).isoformat()
        try:
            sheet = await asyncio.to_thread(self._client.get_sheet, table)
            await asyncio.to_thread(
                sheet.append_row,
                self._row_to_cells(table, stored),
                value_input_option="RAW",
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {table.value}: {e}")
        # Read back through the same text conversion the sheet applies
        return self._cells_to_row(TABLE_COLUMNS[table], self._row_to_cells(table, stored))

    @retry(**_RETRY)
    async def update_record(
        self,
        table: RemoteTable,
        record_id: str,
        fields: Row,
    ) -> None:
        try:
            sheet = await asyncio.to_thread(self._client.get_sheet, table)
            values = await asyncio.to_thread(sheet.get_all_values)
            idx = self._find_row_index(values, record_id)
            if idx is None:
                raise NotFoundError(f"{table.value} row not found: {record_id}")

            header = values[0]
            for column, value in fields.items():
                if column not in header:
                    raise StorageError(f"Unknown column for {table.value}: {column}")
                await asyncio.to_thread(
                    sheet.update_cell, idx, header.index(column) + 1, _to_cell(value)
                )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {table.value}: {e}")

    @retry(**_RETRY)
    async def delete_record(self, table: RemoteTable, record_id: str) -> None:
        try:
            sheet = await asyncio.to_thread(self._client.get_sheet, table)
            values = await asyncio.to_thread(sheet.get_all_values)
            idx = self._find_row_index(values, record_id)
            if idx is not None:
                await asyncio.to_thread(sheet.delete_rows, idx)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete from {table.value}: {e}")


def _to_cell(value: Any) -> str:
    """Render a value as sheet text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _sort_key(column: str, value: str):
    if column in NUMERIC_COLUMNS:
        try:
            return Decimal(value)
        except InvalidOperation:
            return Decimal(0)
    return value
