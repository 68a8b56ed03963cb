"""
Main Orchestrator for the Household Finance Tracker

This module ties together storage, audit and the pure calculations, and
defines the end-to-end flows for:
1. Ledger edits (add / delete records, toggle card payments)
2. Card CSV import (parse -> replace every stored charge -> reload)
3. Overview (snapshot -> monthly projection -> statement feasibility)

DESIGN DECISION: Calculations only ever see a RecordSnapshot loaded
from storage. Every flow that changes data goes through the store and
reloads, so there is no shared mutable record list anywhere.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict

from household_finance.audit import AuditLogger, configure_logging, create_correlation_id
from household_finance.calculations import (
    distinct_months_present,
    evaluate_payment_feasibility,
    month_key_of,
    project_balances,
    rolling_months,
    summarize_totals,
    today_key,
)
from household_finance.config import get_settings, validate_all_settings
from household_finance.importers import (
    CsvImportError,
    NoRecordsParsedError,
    decode_csv_bytes,
    parse_card_charges_csv_report,
)
from household_finance.models.records import (
    CardCharge,
    CardIssuer,
    DebitExpense,
    Income,
    LedgerTotals,
    MonthlyBalance,
    PaymentFeasibility,
    RecordSnapshot,
    new_card_charge,
    new_debit_expense,
)
from household_finance.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStorage,
    LocalRecordStorage,
    NotFoundError,
    RecordStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class CsvImportResult(BaseModel):
    """Outcome of a successful card CSV import."""
    model_config = ConfigDict(frozen=True)

    imported_count: int
    skipped_count: int
    replaced_count: int
    charges: tuple[CardCharge, ...]

    @property
    def message(self) -> str:
        text = f"{self.imported_count} charges imported successfully"
        if self.skipped_count:
            text += f" ({self.skipped_count} rows skipped)"
        return text


class FinanceOverview(BaseModel):
    """Everything the dashboard needs, computed from one snapshot."""
    model_config = ConfigDict(frozen=True)

    current_month: str
    projection: tuple[MonthlyBalance, ...]
    feasibility: PaymentFeasibility
    months_with_data: tuple[str, ...]
    history: tuple[MonthlyBalance, ...]
    totals: LedgerTotals


class LedgerFlow:
    """
    Orchestrates single-record edits.

    Each mutation is written to the store first and audited after.
    """

    def __init__(
        self,
        storage: RecordStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def load_snapshot(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> RecordSnapshot:
        """Load every record from the store."""
        snapshot = await self._storage.load_all()
        if self._audit_logger:
            await self._audit_logger.log_records_loaded(
                incomes=len(snapshot.incomes),
                charges=len(snapshot.charges),
                debits=len(snapshot.debits),
                correlation_id=correlation_id,
            )
        return snapshot

    async def add_income(
        self,
        amount: Decimal,
        month: str,
        description: Optional[str] = None,
    ) -> Income:
        income = Income(amount=amount, month=month, description=description)
        await self._storage.insert_income(income)
        if self._audit_logger:
            await self._audit_logger.log_record_added(
                entity_type="income",
                entity_id=income.id,
                label=description or month,
                amount=income.amount,
            )
        return income

    async def delete_income(self, income_id: str) -> bool:
        deleted = await self._storage.delete_income(income_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_record_deleted("income", income_id)
        return deleted

    async def add_card_charge(
        self,
        description: str,
        total_amount: Decimal,
        start_date: date,
        installment_count: int = 1,
    ) -> CardCharge:
        """
        Record a manually entered card purchase.

        Only the first installment is stored; its value is the total
        split evenly over installment_count.
        """
        charge = new_card_charge(
            description=description,
            total_amount=total_amount,
            start_date=start_date,
            installment_count=installment_count,
        )
        return await self._insert_charge(charge)

    async def add_card_statement(
        self,
        issuer: CardIssuer,
        amount: Decimal,
        statement_date: date,
    ) -> CardCharge:
        """Record a whole card statement as a single unpaid charge."""
        charge = new_card_charge(
            description=issuer.label,
            total_amount=amount,
            start_date=statement_date,
        )
        return await self._insert_charge(charge)

    async def _insert_charge(self, charge: CardCharge) -> CardCharge:
        await self._storage.insert_charge(charge)
        if self._audit_logger:
            await self._audit_logger.log_record_added(
                entity_type="charge",
                entity_id=charge.id,
                label=charge.description,
                amount=charge.installment_amount,
            )
        return charge

    async def delete_card_charge(self, charge_id: str) -> bool:
        deleted = await self._storage.delete_charge(charge_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_record_deleted("charge", charge_id)
        return deleted

    async def set_charge_paid_state(
        self,
        charge_id: str,
        paid: bool,
        paid_amount: Optional[Decimal] = None,
    ) -> CardCharge:
        """
        Mark a charge paid (fully, or partially with paid_amount) or pending.

        Raises:
            NotFoundError: If the charge doesn't exist
        """
        updated = await self._storage.set_charge_paid_state(charge_id, paid, paid_amount)
        if self._audit_logger:
            await self._audit_logger.log_charge_payment_updated(
                charge_id=charge_id,
                paid=updated.paid,
                paid_amount=updated.paid_amount,
            )
        return updated

    async def toggle_charge_paid(self, charge_id: str) -> CardCharge:
        """
        Flip a charge between paid and pending.

        A partial paid_amount is kept when the charge is marked paid again.
        """
        snapshot = await self._storage.load_all()
        charge = next((c for c in snapshot.charges if c.id == charge_id), None)
        if charge is None:
            raise NotFoundError(f"Card charge not found: {charge_id}")
        return await self.set_charge_paid_state(
            charge_id,
            not charge.paid,
            charge.paid_amount,
        )

    async def add_debit(
        self,
        description: str,
        amount: Decimal,
        expense_date: date,
    ) -> DebitExpense:
        debit = new_debit_expense(description, amount, expense_date)
        await self._storage.insert_debit(debit)
        if self._audit_logger:
            await self._audit_logger.log_record_added(
                entity_type="debit",
                entity_id=debit.id,
                label=debit.description,
                amount=debit.amount,
            )
        return debit

    async def delete_debit(self, debit_id: str) -> bool:
        deleted = await self._storage.delete_debit(debit_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_record_deleted("debit", debit_id)
        return deleted


class CardImportFlow:
    """
    Orchestrates the card CSV import.

    Flow:
    1. Parse the CSV (malformed file -> abort)
    2. Nothing parsed -> abort, the stored charges stay untouched
    3. Delete every stored card charge
    4. Insert every parsed charge
    5. Reload from the store

    CRITICAL: This replaces the whole charge collection; it never merges.
    Steps 3 and 4 are not atomic at the store.
    """

    def __init__(
        self,
        storage: RecordStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def import_csv(
        self,
        content: Union[str, bytes],
        correlation_id: Optional[UUID] = None,
    ) -> CsvImportResult:
        """
        Replace every stored card charge with the charges in `content`.

        Raises:
            MalformedInputError: The file has no data rows
            NoRecordsParsedError: No row produced a charge
            StorageError: The store failed midway through the replace
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            if isinstance(content, bytes):
                content = decode_csv_bytes(content)

            report = parse_card_charges_csv_report(content)
            if not report.charges:
                raise NoRecordsParsedError("No card charges found in the CSV.")

            existing = await self._storage.load_all()
            for charge in existing.charges:
                await self._storage.delete_charge(charge.id)

            for charge in report.charges:
                await self._storage.insert_charge(charge)

            reloaded = await self._storage.load_all()
        except (CsvImportError, UnicodeDecodeError, StorageError) as e:
            logger.warning("csv_import_failed", error=str(e), error_type=type(e).__name__)
            if self._audit_logger:
                if isinstance(e, StorageError):
                    await self._audit_logger.log_error(
                        error_type="charge_replace_interrupted",
                        error_message=str(e),
                        details={"parsed_charges": len(report.charges)},
                        correlation_id=correlation_id,
                    )
                await self._audit_logger.log_csv_import_failed(
                    reason=str(e),
                    error_type=type(e).__name__,
                    correlation_id=correlation_id,
                )
            raise

        result = CsvImportResult(
            imported_count=len(report.charges),
            skipped_count=report.skipped_count,
            replaced_count=len(existing.charges),
            charges=reloaded.charges,
        )

        if self._audit_logger:
            await self._audit_logger.log_csv_import_completed(
                imported_count=result.imported_count,
                skipped_count=result.skipped_count,
                replaced_count=result.replaced_count,
                correlation_id=correlation_id,
            )

        return result


class ProjectionFlow:
    """
    Builds the dashboard overview from one consistent snapshot.

    The projection window starts at the current month; the statement
    feasibility is evaluated for the current month against that window.
    """

    def __init__(
        self,
        storage: RecordStorageInterface,
        months_ahead: Optional[int] = None,
    ):
        self._storage = storage
        self._months_ahead = months_ahead or get_settings().projection.months_ahead

    async def build_overview(
        self,
        months_ahead: Optional[int] = None,
        today: Optional[date] = None,
    ) -> FinanceOverview:
        snapshot = await self._storage.load_all()
        return build_overview(
            snapshot,
            months_ahead=months_ahead or self._months_ahead,
            today=today,
        )


def build_overview(
    snapshot: RecordSnapshot,
    months_ahead: int,
    today: Optional[date] = None,
) -> FinanceOverview:
    """Compute the overview of a snapshot (pure)."""
    current_month = month_key_of(today) if today else today_key()
    window = rolling_months(months_ahead, start=today)
    months_with_data = distinct_months_present(
        snapshot.incomes, snapshot.charges, snapshot.debits
    )

    return FinanceOverview(
        current_month=current_month,
        projection=tuple(project_balances(
            window, snapshot.incomes, snapshot.charges, snapshot.debits
        )),
        feasibility=evaluate_payment_feasibility(
            current_month,
            snapshot.incomes,
            snapshot.charges,
            snapshot.debits,
            window,
        ),
        months_with_data=tuple(months_with_data),
        history=tuple(project_balances(
            months_with_data, snapshot.incomes, snapshot.charges, snapshot.debits
        )),
        totals=summarize_totals(snapshot.charges, snapshot.debits),
    )


def create_app_components(
    use_storage: bool = True,
) -> tuple[LedgerFlow, CardImportFlow, ProjectionFlow, RecordStorageInterface]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to try the Google Sheets store.
                    When False, or when its settings are missing,
                    the local JSON store is used instead.

    Returns:
        (ledger_flow, import_flow, projection_flow, record_storage)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    record_storage: Optional[RecordStorageInterface] = None
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage and settings.app.use_remote_storage:
        status = validate_all_settings()
        if not status["google_sheets"]:
            logger.warning(
                "remote_storage_unavailable",
                reason=status.get("google_sheets_error"),
            )
        else:
            try:
                sheets_client = GoogleSheetsClient()
                record_storage = GoogleSheetsRecordStorage(sheets_client)
                audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
            except Exception as e:
                # Remote store not reachable - continue with local storage
                logger.warning("remote_storage_unavailable", reason=str(e))

    if record_storage is None:
        record_storage = LocalRecordStorage(settings.local_storage.data_file)

    ledger_flow = LedgerFlow(record_storage, audit_logger)
    import_flow = CardImportFlow(record_storage, audit_logger)
    projection_flow = ProjectionFlow(record_storage, settings.projection.months_ahead)

    return ledger_flow, import_flow, projection_flow, record_storage
