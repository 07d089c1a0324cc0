"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a persistent backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal ledger)
- No server-side filtering (we filter by user_id in Python)
- A row append is a single API call, so inserts stay all-or-nothing;
  we retry connecting, never appending (a retried append could duplicate)
- gspread is blocking; every sheet call runs in a worker thread so the
  event loop keeps serving other messages
"""

import asyncio
import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finchat.config import GoogleSheetsSettings, get_settings
from finchat.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finchat.models.transaction import Transaction, TransactionType
from finchat.services.events import TransactionEvents
from finchat.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
    TransactionStorageInterface,
)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "type",
    "amount",
    "category",
    "description",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_code",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
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
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,
        )


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of the ledger.

    One transaction per row. Amounts are written as plain decimal
    strings with RAW input so Sheets never reformats them.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        events: Optional[TransactionEvents] = None,
    ):
        super().__init__(events)
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, transaction: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        return [
            str(transaction.id),
            transaction.user_id,
            transaction.created_at.isoformat(),
            transaction.type.value,
            str(transaction.amount),
            transaction.category,
            transaction.description,
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return Transaction(
            id=UUID(safe_get(0)),
            user_id=safe_get(1),
            created_at=datetime.fromisoformat(safe_get(2)),
            type=TransactionType(safe_get(3)),
            amount=Decimal(safe_get(4)),
            category=safe_get(5),
            description=safe_get(6),
        )

    def _append(self, row: list) -> None:
        sheet = self._client.get_transactions_sheet()
        sheet.append_row(row, value_input_option="RAW")

    def _read_rows(self) -> list[list]:
        sheet = self._client.get_transactions_sheet()
        return sheet.get_all_values()[1:]  # Skip header

    async def _write(self, transaction: Transaction) -> None:
        try:
            await asyncio.to_thread(
                self._append, self._transaction_to_row(transaction)
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def list_by_user(
        self,
        user_id: str,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        try:
            all_rows = await asyncio.to_thread(self._read_rows)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        transactions = []
        for row in all_rows:
            # Scope before parsing: other users' rows are never touched
            if len(row) < 2 or row[1] != user_id:
                continue
            try:
                transactions.append(self._row_to_transaction(row))
            except Exception:
                continue  # Skip malformed rows

        transactions.sort(key=lambda t: t.created_at, reverse=True)
        if limit is not None:
            return transactions[:limit]
        return transactions


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_code=safe_get(10) or None,
            error_message=safe_get(11) or None,
            is_user_action=safe_get(12).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            await asyncio.to_thread(self._append, event.to_sheets_row())
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    def _append(self, row: list) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(row, value_input_option="RAW")

    def _read_rows(self) -> list[list]:
        sheet = self._client.get_audit_sheet()
        return sheet.get_all_values()[1:]

    async def _read_events(self) -> list[AuditEvent]:
        try:
            all_rows = await asyncio.to_thread(self._read_rows)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception:
                continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in await self._read_events()
            if e.correlation_id == correlation_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = await self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
