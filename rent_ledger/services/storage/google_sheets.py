"""
Google Sheets Ledger Store

Sheets lets an operator open the ledger next to their own spreadsheets
and needs no database.

Each (scope, collection) gets its own worksheet named
"<scope_key>__<collection>". Row 1 is the header; every other row is one
record. Splits are stored as a JSON column.

TRADEOFFS:
- Saving rewrites the whole worksheet (the store contract is
  whole-collection replace anyway)
- Not suitable for large ledgers (we're fine for bookkeeping scale)
"""

import json
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from rent_ledger.config import GoogleSheetsSettings, get_settings
from rent_ledger.services.storage.interface import (
    PROPERTIES,
    TENANTS,
    TRANSACTIONS,
    ConnectionError,
    CorruptSnapshotError,
    LedgerStore,
    SeedFactory,
    StorageError,
)


# Column mappings per collection
PROPERTY_COLUMNS = [
    "id",
    "name",
    "address",
    "type",
    "owner_name",
]

TENANT_COLUMNS = [
    "id",
    "property_id",
    "name",
    "phone",
    "monthly_rent",
    "lease_start",
    "current_balance",
]

TRANSACTION_COLUMNS = [
    "id",
    "type",
    "tenant_id",
    "property_id",
    "date",
    "total_amount",
    "description",
    "deduction_amount",
    "deduction_reason",
    "splits_json",
]

COLUMNS = {
    PROPERTIES: PROPERTY_COLUMNS,
    TENANTS: TENANT_COLUMNS,
    TRANSACTIONS: TRANSACTION_COLUMNS,
}


class GoogleSheetsClient:
    """
    Thin wrapper around gspread for the ledger spreadsheet.

    Connects lazily with a service account and caches the spreadsheet
    handle; every ledger worksheet lives in that one spreadsheet.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Authorise with the service account key file.

        Retried up to three times with exponential back-off.
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
        """Open the ledger spreadsheet by key (cached)."""
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

    def find_worksheet(self, title: str) -> Optional[gspread.Worksheet]:
        """Return a worksheet by title, or None if it doesn't exist."""
        try:
            return self.get_spreadsheet().worksheet(title)
        except gspread.WorksheetNotFound:
            return None

    def get_or_create_worksheet(self, title: str, cols: int) -> gspread.Worksheet:
        """Get a worksheet, creating it if needed."""
        sheet = self.find_worksheet(title)
        if sheet is None:
            sheet = self.get_spreadsheet().add_worksheet(
                title=title,
                rows=1000,
                cols=cols,
            )
        return sheet


def record_to_row(record: dict, columns: list[str]) -> list[str]:
    """Flatten a JSON-mode record into spreadsheet cells."""
    row = []
    for column in columns:
        if column == "splits_json":
            splits = record.get("splits") or []
            row.append(json.dumps(splits) if splits else "")
            continue
        value = record.get(column)
        row.append("" if value is None else str(value))
    return row


def row_to_record(header: list[str], row: list[str]) -> dict:
    """
    Rebuild a record from a row.

    Empty cells are dropped so model defaults apply.
    """
    record = {}
    for column, cell in zip(header, row):
        if cell == "":
            continue
        if column == "splits_json":
            try:
                record["splits"] = json.loads(cell)
            except json.JSONDecodeError as e:
                raise CorruptSnapshotError(f"Invalid splits JSON: {e}")
            continue
        record[column] = cell
    return record


class GoogleSheetsLedgerStore(LedgerStore):
    """Google Sheets implementation of the ledger store."""

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        seed_factory: Optional[SeedFactory] = None,
    ):
        super().__init__(seed_factory)
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def worksheet_title(scope_key: str, collection: str) -> str:
        return f"{scope_key}__{collection}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _fetch_values(self, title: str) -> Optional[list[list[str]]]:
        sheet = self._client.find_worksheet(title)
        if sheet is None:
            return None
        return sheet.get_all_values()

    def _read_records(self, scope_key: str, collection: str) -> Optional[list[dict]]:
        title = self.worksheet_title(scope_key, collection)
        try:
            values = self._fetch_values(title)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read worksheet {title}: {e}")

        if values is None:
            return None
        if not values:
            return []

        header, rows = values[0], values[1:]
        if header != COLUMNS[collection]:
            raise CorruptSnapshotError(
                f"Worksheet {title} has unexpected columns: {header}"
            )
        return [row_to_record(header, row) for row in rows if row and row[0]]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _replace_values(self, title: str, values: list[list[str]]) -> None:
        sheet = self._client.get_or_create_worksheet(title, cols=len(values[0]))
        sheet.clear()
        sheet.append_rows(values, value_input_option="RAW")

    def _write_records(self, scope_key: str, collection: str, records: list[dict]) -> None:
        columns = COLUMNS[collection]
        title = self.worksheet_title(scope_key, collection)
        values = [columns] + [record_to_row(record, columns) for record in records]
        try:
            self._replace_values(title, values)
        except Exception as e:
            raise StorageError(f"Failed to write worksheet {title}: {e}")
