"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a remote backend because:
1. The owner can open the spreadsheet and see that data exists
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- One row per collection key, payload stored as a JSON string in one cell
  (Sheets caps a cell at 50,000 characters - fine for a small shop)
- No transactions (the ledger orders its writes instead)
- Every get scans the sheet (there are only a handful of rows)

The implementation follows the gateway interface, so the ledger engine
does not know or care which backend it talks to.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from shopledger.config import get_settings
from shopledger.config.settings import GoogleSheetsSettings
from shopledger.services.storage.interface import (
    ConnectionError,
    PersistenceError,
    PersistenceGateway,
)


# Column mappings for the Collections sheet
COLLECTION_COLUMNS = [
    "key",
    "payload_json",
    "updated_at",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
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

    def get_collections_sheet(self) -> gspread.Worksheet:
        """Get or create the Collections worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.collections_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.collections_sheet_name,
                rows=100,
                cols=len(COLLECTION_COLUMNS),
            )
            sheet.append_row(COLLECTION_COLUMNS)
        return sheet


class GoogleSheetsGateway(PersistenceGateway):
    """
    Google Sheets implementation of the persistence gateway.

    Each storage key is one row: [key, payload_json, updated_at].
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _find_row(all_rows: list[list[str]], key: str) -> Optional[int]:
        """Return the 1-based sheet row index holding key, skipping the header."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == key:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def get(self, key: str) -> Optional[Any]:
        """Read one collection from its row."""
        try:
            sheet = self._client.get_collections_sheet()
            all_rows = sheet.get_all_values()
        except ConnectionError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to read {key}: {e}")

        idx = self._find_row(all_rows, key)
        if idx is None:
            return None
        row = all_rows[idx - 1]
        payload = row[1] if len(row) > 1 else ""
        if not payload:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Stored value for {key} is not valid JSON: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def set(self, key: str, value: Any) -> bool:
        """Replace one collection's row (or append it)."""
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Value for {key} is not serializable: {e}")

        updated_at = datetime.now(timezone.utc).isoformat()
        try:
            sheet = self._client.get_collections_sheet()
            all_rows = sheet.get_all_values()
            idx = self._find_row(all_rows, key)
            if idx is None:
                sheet.append_row([key, payload, updated_at], value_input_option="RAW")
            else:
                sheet.update_cell(idx, 2, payload)
                sheet.update_cell(idx, 3, updated_at)
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to write {key}: {e}")

    async def clear(self) -> bool:
        """Wipe the Collections sheet, keeping the header row."""
        try:
            sheet = self._client.get_collections_sheet()
            sheet.clear()
            sheet.append_row(COLLECTION_COLUMNS)
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to clear collections: {e}")
