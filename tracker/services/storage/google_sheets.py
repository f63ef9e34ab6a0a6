"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is kept as a backend because:
1. Users can view and fix their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- One worksheet per resource kind, shared by all users
- No per-record writes: every mutation reads the whole sheet, changes it
  in memory and overwrites the whole sheet
- Writes to one kind are serialized inside this process; two processes
  writing the same sheet still lose updates (last writer wins)
- Filtering by user happens in Python
- Rows that fail validation are hidden from reads but written back as-is
"""

import asyncio
import json
import typing
from typing import Any, Optional, Union

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tracker.config import get_settings
from tracker.models.resources import Record, ResourceKind, model_for
from tracker.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    NotFoundError,
    ResourceStore,
    StorageError,
)
from tracker.services.storage.records import build_record, merge_record


logger = structlog.get_logger(__name__)

# A parsed record, or the raw cells of a row that did not parse
SheetRow = Union[Record, list[str]]


def columns_for(kind: ResourceKind) -> list[str]:
    """Header row for a kind: wire names in model field order."""
    model = model_for(kind)
    return [info.alias or name for name, info in model.model_fields.items()]


def json_columns_for(kind: ResourceKind) -> set[str]:
    """Columns whose cells hold JSON-encoded lists."""
    model = model_for(kind)
    return {
        info.alias or name
        for name, info in model.model_fields.items()
        if typing.get_origin(info.annotation) is list
    }


def record_to_row(kind: ResourceKind, record: Record) -> list[str]:
    """Convert a record to a spreadsheet row of strings."""
    data = record.to_storage()
    row = []
    for column in columns_for(kind):
        value = data.get(column)
        if value is None:
            row.append("")
        elif isinstance(value, (list, dict)):
            row.append(json.dumps(value))
        else:
            row.append(str(value))
    return row


def row_to_record(kind: ResourceKind, header: list[str], row: list[str]) -> Record:
    """Convert a spreadsheet row back to a record. Empty cells are absent fields."""
    json_columns = json_columns_for(kind)
    data: dict[str, Any] = {}
    for column, cell in zip(header, row):
        if cell == "":
            continue
        data[column] = json.loads(cell) if column in json_columns else cell
    return model_for(kind).model_validate(data)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
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

    def get_worksheet(self, kind: ResourceKind) -> gspread.Worksheet:
        """Get or create the worksheet holding one resource kind."""
        spreadsheet = self.get_spreadsheet()
        title = self._settings.sheet_name_for(kind.value)
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            columns = columns_for(kind)
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class GoogleSheetsResourceStore(ResourceStore):
    """
    Google Sheets implementation of the resource store.

    Records are rows; the header row names the columns. The client only
    needs get_worksheet(kind), which keeps the store testable with fakes.
    """

    name = "sheets"

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._locks: dict[ResourceKind, asyncio.Lock] = {}

    def _lock(self, kind: ResourceKind) -> asyncio.Lock:
        if kind not in self._locks:
            self._locks[kind] = asyncio.Lock()
        return self._locks[kind]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(StorageError),
        reraise=True,
    )
    def _read_all(self, kind: ResourceKind) -> list[SheetRow]:
        """
        Read every user's rows of one kind, in sheet order.

        Rows that fail validation are logged and kept as raw cells, laid out
        in the current column order, so a later overwrite writes them back
        untouched instead of dropping them.
        """
        sheet = self._client.get_worksheet(kind)
        values = sheet.get_all_values()
        if not values:
            return []

        header, rows = values[0], values[1:]
        columns = columns_for(kind)
        entries: list[SheetRow] = []
        for index, row in enumerate(rows, start=2):
            if not any(row):  # Skip empty rows
                continue
            try:
                entries.append(row_to_record(kind, header, row))
            except ValueError as e:
                logger.warning(
                    "sheet_row_unparsed",
                    kind=kind.value,
                    row=index,
                    error=str(e),
                )
                cells = dict(zip(header, row))
                entries.append([cells.get(column, "") for column in columns])
        return entries

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(StorageError),
        reraise=True,
    )
    def _write_all(self, kind: ResourceKind, entries: list[SheetRow]) -> None:
        """Overwrite the whole worksheet; raw rows are written back as they were."""
        sheet = self._client.get_worksheet(kind)
        values = [columns_for(kind)] + [
            entry if isinstance(entry, list) else record_to_row(kind, entry)
            for entry in entries
        ]
        sheet.clear()
        sheet.update(values=values, range_name="A1", value_input_option="RAW")

    async def _load(self, kind: ResourceKind) -> list[SheetRow]:
        try:
            return await asyncio.to_thread(self._read_all, kind)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {kind.value} sheet: {e}")

    async def _save(self, kind: ResourceKind, entries: list[SheetRow]) -> None:
        try:
            await asyncio.to_thread(self._write_all, kind, entries)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write {kind.value} sheet: {e}")

    @staticmethod
    def _find(entries: list[SheetRow], user_key: str, record_id: str) -> Optional[int]:
        for index, entry in enumerate(entries):
            if isinstance(entry, Record) and entry.user_id == user_key and entry.id == record_id:
                return index
        return None

    async def list(self, kind: ResourceKind, user_key: str) -> list[Record]:
        kind = ResourceKind(kind)
        return [
            entry for entry in await self._load(kind)
            if isinstance(entry, Record) and entry.user_id == user_key
        ]

    async def create(
        self,
        kind: ResourceKind,
        user_key: str,
        fields: dict[str, Any],
    ) -> Record:
        kind = ResourceKind(kind)
        record = build_record(kind, user_key, fields)
        async with self._lock(kind):
            entries = await self._load(kind)
            if self._find(entries, user_key, record.id) is not None:
                raise DuplicateError(f"{kind.value} record already exists: {record.id}")
            entries.append(record)
            await self._save(kind, entries)
        return record

    async def update(
        self,
        kind: ResourceKind,
        user_key: str,
        record_id: str,
        fields: dict[str, Any],
    ) -> Record:
        kind = ResourceKind(kind)
        async with self._lock(kind):
            entries = await self._load(kind)
            index = self._find(entries, user_key, record_id)
            if index is None:
                raise NotFoundError(f"{kind.value} record not found: {record_id}")
            record = merge_record(entries[index], fields)
            entries[index] = record
            await self._save(kind, entries)
        return record

    async def delete(self, kind: ResourceKind, user_key: str, record_id: str) -> None:
        kind = ResourceKind(kind)
        async with self._lock(kind):
            entries = await self._load(kind)
            index = self._find(entries, user_key, record_id)
            if index is None:
                raise NotFoundError(f"{kind.value} record not found: {record_id}")
            del entries[index]
            await self._save(kind, entries)
