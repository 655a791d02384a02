"""
Google Sheets Storage Implementation

DESIGN DECISION: A Google Sheets worksheet is the hosted backend because:
1. Project managers can view and edit expenses directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No server-side ordering (we sort in Python after reading)
- No transactions (a failed seed leaves the chunks already written)
- Every cell comes back as a string (we parse through ExpenseRecord)

The implementation follows the abstract interface, so a hosted
database can replace it without changing the dashboard.
"""

import math
from datetime import date, timedelta
from typing import Any, Optional, Sequence

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_dashboard.config import GoogleSheetsSettings, get_settings
from expense_dashboard.models.audit import AuditEvent
from expense_dashboard.models.expense import ExpenseRecord, MalformedRecordError
from expense_dashboard.services.storage.interface import (
    AuditStorageInterface,
    BackendConnectionError,
    BackendError,
    ExpenseStorageInterface,
)


logger = structlog.get_logger(__name__)

# Day zero of spreadsheet serial dates
SHEETS_EPOCH = date(1899, 12, 30)

# Column layout of the expenses worksheet (header row)
EXPENSE_COLUMNS = [
    "fecha",
    "descripcion",
    "monto",
    "proyecto",
]

# Column layout of the audit worksheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet lookup.
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
                raise BackendConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise BackendConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise BackendConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            logger.info("worksheet_created", title=title)
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    One expense per row, columns named by the header row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _record_to_row(record: ExpenseRecord) -> list:
        """Convert a record to a worksheet row in EXPENSE_COLUMNS order."""
        data = record.to_row()
        return [data[column] for column in EXPENSE_COLUMNS]

    @staticmethod
    def _cell_to_text(column: str, value: Any) -> str:
        """
        Normalize an unformatted cell value to text.

        Cells typed as dates come back as serial day numbers and typed
        amounts as plain numbers, whatever their display format.
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return str(value)
        if column == "fecha":
            return (SHEETS_EPOCH + timedelta(days=math.floor(value))).isoformat()
        return str(value)

    @classmethod
    def _rows_to_records(cls, values: list[list[Any]]) -> list[ExpenseRecord]:
        """Parse worksheet values (header first) into records."""
        if not values:
            return []

        header = [str(cell).strip() for cell in values[0]]
        missing = [c for c in EXPENSE_COLUMNS if c not in header]
        if missing:
            raise MalformedRecordError(
                f"Expenses sheet is missing columns: {', '.join(missing)}"
            )

        records = []
        for row in values[1:]:
            if not any(str(cell).strip() for cell in row):  # Skip blank rows
                continue
            records.append(ExpenseRecord.from_row({
                column: cls._cell_to_text(column, value)
                for column, value in zip(header, row)
            }))
        return records

    async def fetch_all(self) -> list[ExpenseRecord]:
        """Read every row and sort ascending by date."""
        try:
            sheet = self._client.get_expenses_sheet()
            values = sheet.get_all_values(
                value_render_option="UNFORMATTED_VALUE",
                date_time_render_option="SERIAL_NUMBER",
            )
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(f"Failed to fetch expenses: {e}") from e

        records = self._rows_to_records(values)
        records.sort(key=lambda r: r.date)
        return records

    async def insert(self, records: Sequence[ExpenseRecord]) -> int:
        """Append records in a single API call."""
        if not records:
            return 0
        try:
            sheet = self._client.get_expenses_sheet()
            sheet.append_rows(
                [self._record_to_row(record) for record in records],
                value_input_option="RAW",
            )
            return len(records)
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(f"Failed to insert expenses: {e}") from e


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit persistence must not break the dashboard
            logger.warning(
                "audit_write_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False
