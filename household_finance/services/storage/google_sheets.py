"""
Google Sheets Storage

The household's spreadsheet is the remote store. Each record kind lives
on its own worksheet (Receitas, GastosCartao, GastosDebito) with one
record per row and the record id in column A, so the family can read and
fix entries in Sheets directly. Audit events go to a fourth worksheet.

Limits:
- No transactions: a CSV replace (delete all, insert all) can stop midway
- No server-side queries: every read loads the whole worksheet
- gspread calls are blocking; the async methods simply wrap them
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from household_finance.config import get_settings
from household_finance.models.audit import LOG_FIELDS, AuditEvent, AuditEventType, AuditSeverity
from household_finance.models.records import (
    CardCharge,
    DebitExpense,
    Income,
    RecordSnapshot,
)
from household_finance.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    RecordStorageInterface,
    StorageConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)

INCOME_COLUMNS = [
    "id",
    "month",
    "amount",
    "description",
    "created_at",
]

CARD_CHARGE_COLUMNS = [
    "id",
    "description",
    "total_amount",
    "installment_count",
    "installment_index",
    "installment_amount",
    "start_date",
    "month",
    "paid",
    "paid_amount",
    "created_at",
]

DEBIT_COLUMNS = [
    "id",
    "description",
    "amount",
    "date",
    "month",
    "created_at",
]

# Details are stored as a JSON string
AUDIT_COLUMNS = ["details_json" if name == "details" else name for name in LOG_FIELDS]

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# 1-based sheet columns touched by a payment update
PAID_COLUMN = CARD_CHARGE_COLUMNS.index("paid") + 1
PAID_AMOUNT_COLUMN = CARD_CHARGE_COLUMNS.index("paid_amount") + 1


class GoogleSheetsClient:
    """
    Lazily authorized gspread handle on the household spreadsheet.

    Worksheets are created with their header row the first time they are
    requested, so a blank spreadsheet is a valid starting point.
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
        """Authorize with the service account (once per client)."""
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Open the spreadsheet named by GOOGLE_SHEETS_SPREADSHEET_ID."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # First use: add the worksheet and its header row
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_incomes_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.incomes_sheet_name, INCOME_COLUMNS)

    def get_card_charges_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.card_charges_sheet_name, CARD_CHARGE_COLUMNS
        )

    def get_debits_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.debits_sheet_name, DEBIT_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,
        )


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def income_to_row(income: Income) -> list:
    return [
        income.id,
        income.month,
        str(income.amount),
        income.description or "",
        income.created_at.isoformat(),
    ]


def row_to_income(row: list) -> Income:
    created_at = _cell(row, 4)
    return Income(
        id=_cell(row, 0),
        month=_cell(row, 1),
        amount=Decimal(_cell(row, 2, "0")),
        description=_cell(row, 3) or None,
        **({"created_at": datetime.fromisoformat(created_at)} if created_at else {}),
    )


def charge_to_row(charge: CardCharge) -> list:
    return [
        charge.id,
        charge.description,
        str(charge.total_amount),
        charge.installment_count,
        charge.installment_index,
        str(charge.installment_amount),
        charge.start_date.isoformat(),
        charge.month,
        str(charge.paid),
        str(charge.paid_amount) if charge.paid_amount is not None else "",
        charge.created_at.isoformat(),
    ]


def row_to_charge(row: list) -> CardCharge:
    paid_amount = _cell(row, 9)
    created_at = _cell(row, 10)
    return CardCharge(
        id=_cell(row, 0),
        description=_cell(row, 1),
        total_amount=Decimal(_cell(row, 2, "0")),
        installment_count=int(_cell(row, 3, "1")),
        installment_index=int(_cell(row, 4, "1")),
        installment_amount=Decimal(_cell(row, 5, "0")),
        start_date=date.fromisoformat(_cell(row, 6)),
        month=_cell(row, 7),
        paid=_cell(row, 8).lower() == "true",
        paid_amount=Decimal(paid_amount) if paid_amount else None,
        **({"created_at": datetime.fromisoformat(created_at)} if created_at else {}),
    )


def debit_to_row(debit: DebitExpense) -> list:
    return [
        debit.id,
        debit.description,
        str(debit.amount),
        debit.date.isoformat(),
        debit.month,
        debit.created_at.isoformat(),
    ]


def row_to_debit(row: list) -> DebitExpense:
    created_at = _cell(row, 5)
    return DebitExpense(
        id=_cell(row, 0),
        description=_cell(row, 1),
        amount=Decimal(_cell(row, 2, "0")),
        date=date.fromisoformat(_cell(row, 3)),
        month=_cell(row, 4),
        **({"created_at": datetime.fromisoformat(created_at)} if created_at else {}),
    )


class GoogleSheetsRecordStorage(RecordStorageInterface):
    """
    Google Sheets implementation of record storage.

    Each record kind has its own worksheet with one record per row.
    Column 1 always holds the record id.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read_rows(self, sheet: gspread.Worksheet, parse: Callable[[list], object]) -> list:
        records = []
        for row in sheet.get_all_values()[1:]:  # Skip header
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(parse(row))
            except Exception as e:
                # A hand-edited row must not hide the rest of the ledger
                logger.warning("sheets_row_skipped", sheet=sheet.title, row_id=row[0], error=str(e))
        return records

    def _find_row_index(self, sheet: gspread.Worksheet, record_id: str) -> Optional[int]:
        """1-based sheet row of a record, or None."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):  # Row 1 is header
            if row and row[0] == record_id:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _append(self, sheet: gspread.Worksheet, row: list) -> bool:
        try:
            sheet.append_row(row, value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save record: {e}")

    async def _delete(self, sheet: gspread.Worksheet, record_id: str) -> bool:
        try:
            idx = self._find_row_index(sheet, record_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete record {record_id}: {e}")

    async def load_all(self) -> RecordSnapshot:
        try:
            incomes = self._read_rows(self._client.get_incomes_sheet(), row_to_income)
            charges = self._read_rows(self._client.get_card_charges_sheet(), row_to_charge)
            debits = self._read_rows(self._client.get_debits_sheet(), row_to_debit)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load records: {e}")

        return RecordSnapshot(
            incomes=tuple(incomes),
            charges=tuple(charges),
            debits=tuple(debits),
        )

    async def insert_income(self, income: Income) -> bool:
        return await self._append(self._client.get_incomes_sheet(), income_to_row(income))

    async def delete_income(self, income_id: str) -> bool:
        return await self._delete(self._client.get_incomes_sheet(), income_id)

    async def insert_charge(self, charge: CardCharge) -> bool:
        return await self._append(self._client.get_card_charges_sheet(), charge_to_row(charge))

    async def delete_charge(self, charge_id: str) -> bool:
        return await self._delete(self._client.get_card_charges_sheet(), charge_id)

    async def insert_debit(self, debit: DebitExpense) -> bool:
        return await self._append(self._client.get_debits_sheet(), debit_to_row(debit))

    async def delete_debit(self, debit_id: str) -> bool:
        return await self._delete(self._client.get_debits_sheet(), debit_id)

    async def set_charge_paid_state(
        self,
        charge_id: str,
        paid: bool,
        paid_amount: Optional[Decimal] = None,
    ) -> CardCharge:
        try:
            sheet = self._client.get_card_charges_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == charge_id:
                    updated = row_to_charge(row).with_paid_state(paid, paid_amount)
                    sheet.update_cell(idx, PAID_COLUMN, str(updated.paid))
                    sheet.update_cell(
                        idx,
                        PAID_AMOUNT_COLUMN,
                        str(updated.paid_amount) if updated.paid_amount is not None else "",
                    )
                    return updated

            raise NotFoundError(f"Card charge not found: {charge_id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update card charge: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Append-only audit log on its own worksheet.

    Queries read the whole sheet; the audit log of one household stays
    small enough for that.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _row_to_event(row: list) -> AuditEvent:
        cells = {name: _cell(row, i) for i, name in enumerate(LOG_FIELDS)}
        return AuditEvent(
            event_id=UUID(cells["event_id"]),
            timestamp=datetime.fromisoformat(cells["timestamp"]),
            event_type=AuditEventType(cells["event_type"]),
            severity=AuditSeverity(cells["severity"]),
            entity_type=cells["entity_type"] or None,
            entity_id=cells["entity_id"] or None,
            correlation_id=UUID(cells["correlation_id"]) if cells["correlation_id"] else None,
            description=cells["description"],
            details=json.loads(cells["details"]) if cells["details"] else {},
            error_message=cells["error_message"] or None,
            is_user_action=cells["is_user_action"].lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        try:
            rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to read audit events: {e}")

        events = []
        for row in rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception as e:
                logger.warning("audit_row_skipped", event_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._client.get_audit_sheet().append_row(
                event.to_sheets_row(), value_input_option="RAW"
            )
        except Exception as e:
            raise StorageError(f"Failed to write audit event {event.event_id}: {e}")
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events of one user action, oldest first."""
        events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Newest events first."""
        events = sorted(self._all_events(), key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
