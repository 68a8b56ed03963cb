"""
Tests for the storage backends.

The Google Sheets backend runs against in-memory worksheet fakes, so no
credentials or network access are needed.
"""

import asyncio
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from household_finance.models.audit import AuditEventBuilder
from household_finance.models.records import (
    CardCharge,
    DebitExpense,
    Income,
    new_card_charge,
)
from household_finance.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsRecordStorage,
    LocalAuditStorage,
    LocalRecordStorage,
    NotFoundError,
    StorageError,
)
from household_finance.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    CARD_CHARGE_COLUMNS,
    DEBIT_COLUMNS,
    INCOME_COLUMNS,
    row_to_charge,
)


def run(coro):
    return asyncio.run(coro)


def sample_charge(**overrides) -> CardCharge:
    data = dict(
        description="Loja X",
        total_amount=Decimal("150.00"),
        installment_count=3,
        installment_index=2,
        installment_amount=Decimal("50.00"),
        start_date=date(2024, 3, 10),
        month="2024-03",
    )
    data.update(overrides)
    return CardCharge(**data)


def sample_debit() -> DebitExpense:
    return DebitExpense(
        description="Farmácia",
        amount=Decimal("42.90"),
        date=date(2024, 3, 2),
        month="2024-03",
    )


# =============================================================================
# FAKES
# =============================================================================

class FakeWorksheet:
    """Mimics the parts of gspread.Worksheet the storage uses."""

    def __init__(self, title: str, columns: list[str]):
        self.title = title
        self.rows = [list(columns)]

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        # Sheets hands every cell back as a string
        self.rows.append([str(v) for v in values])

    def delete_rows(self, index: int):
        del self.rows[index - 1]

    def update_cell(self, row: int, col: int, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient with one fake worksheet per kind."""

    def __init__(self):
        self.incomes = FakeWorksheet("Receitas", INCOME_COLUMNS)
        self.charges = FakeWorksheet("GastosCartao", CARD_CHARGE_COLUMNS)
        self.debits = FakeWorksheet("GastosDebito", DEBIT_COLUMNS)
        self.audit = FakeWorksheet("AuditLog", AUDIT_COLUMNS)

    def get_incomes_sheet(self):
        return self.incomes

    def get_card_charges_sheet(self):
        return self.charges

    def get_debits_sheet(self):
        return self.debits

    def get_audit_sheet(self):
        return self.audit


class BrokenSheetsClient(FakeSheetsClient):
    def get_incomes_sheet(self):
        raise RuntimeError("quota exceeded")


# =============================================================================
# LOCAL STORAGE
# =============================================================================

class TestLocalRecordStorage:
    """Tests for the local record store."""

    def test_starts_empty(self):
        storage = LocalRecordStorage()
        snapshot = run(storage.load_all())
        assert snapshot.is_empty

    def test_insert_and_load_preserves_order(self):
        storage = LocalRecordStorage()
        first = Income(amount=Decimal("100"), month="2024-03")
        second = Income(amount=Decimal("200"), month="2024-02")
        run(storage.insert_income(first))
        run(storage.insert_income(second))

        snapshot = run(storage.load_all())
        assert [i.id for i in snapshot.incomes] == [first.id, second.id]

    def test_duplicate_insert_raises(self):
        storage = LocalRecordStorage()
        charge = sample_charge()
        run(storage.insert_charge(charge))
        with pytest.raises(DuplicateError):
            run(storage.insert_charge(charge))

    def test_delete(self):
        storage = LocalRecordStorage()
        debit = sample_debit()
        run(storage.insert_debit(debit))

        assert run(storage.delete_debit(debit.id)) is True
        assert run(storage.delete_debit(debit.id)) is False
        assert run(storage.load_all()).debits == ()

    def test_set_charge_paid_state(self):
        storage = LocalRecordStorage()
        charge = sample_charge()
        run(storage.insert_charge(charge))

        updated = run(storage.set_charge_paid_state(charge.id, True, Decimal("30")))
        assert updated.paid is True
        assert updated.paid_amount == Decimal("30")
        assert run(storage.load_all()).charges[0].settled_amount == Decimal("30")

    def test_set_charge_paid_state_missing(self):
        storage = LocalRecordStorage()
        with pytest.raises(NotFoundError):
            run(storage.set_charge_paid_state("missing", True))

    def test_snapshot_is_detached(self):
        """Test a snapshot doesn't change when the store does."""
        storage = LocalRecordStorage()
        snapshot = run(storage.load_all())
        run(storage.insert_debit(sample_debit()))
        assert snapshot.debits == ()

    def test_json_persistence(self, tmp_path):
        """Test records survive a restart through the JSON file."""
        path = tmp_path / "nested" / "finance.json"
        storage = LocalRecordStorage(path)
        income = Income(amount=Decimal("3500.00"), month="2024-03", description="Salário")
        charge = sample_charge(paid=True, paid_amount=Decimal("12.34"))
        run(storage.insert_income(income))
        run(storage.insert_charge(charge))
        run(storage.insert_debit(sample_debit()))

        assert path.exists()

        reopened = run(LocalRecordStorage(path).load_all())
        assert reopened.incomes == (income,)
        assert reopened.charges == (charge,)
        assert len(reopened.debits) == 1

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "finance.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            LocalRecordStorage(path)

    def test_failed_write_leaves_store_unchanged(self, tmp_path):
        """Test an insert that can't be written is not kept in memory."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        storage = LocalRecordStorage(blocker / "finance.json")
        income = Income(amount=Decimal("100"), month="2024-03")

        with pytest.raises(StorageError):
            run(storage.insert_income(income))
        assert run(storage.load_all()).is_empty

        # Same record fails the same way instead of as a duplicate
        with pytest.raises(StorageError):
            run(storage.insert_income(income))

    def test_failed_write_keeps_delete_and_payment_state(self, tmp_path):
        path = tmp_path / "finance.json"
        storage = LocalRecordStorage(path)
        charge = sample_charge()
        run(storage.insert_charge(charge))

        path.unlink()
        path.mkdir()

        with pytest.raises(StorageError):
            run(storage.set_charge_paid_state(charge.id, True))
        with pytest.raises(StorageError):
            run(storage.delete_charge(charge.id))

        assert run(storage.load_all()).charges == (charge,)


class TestLocalAuditStorage:
    """Tests for the in-memory audit log."""

    def test_correlation_and_recent(self):
        storage = LocalAuditStorage()
        correlation_id = uuid4()
        run(storage.append_event(AuditEventBuilder.csv_import_completed(1, 0, 0, correlation_id)))
        run(storage.append_event(AuditEventBuilder.record_deleted("income", "i-1")))

        related = run(storage.get_events_by_correlation_id(correlation_id))
        assert len(related) == 1

        recent = run(storage.get_recent_events(limit=1))
        assert len(recent) == 1
        assert recent[0].entity_id == "i-1"


# =============================================================================
# GOOGLE SHEETS STORAGE
# =============================================================================

class TestGoogleSheetsRecordStorage:
    """Tests for the Sheets backend against fake worksheets."""

    def test_round_trip_all_kinds(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        income = Income(amount=Decimal("1000.50"), month="2024-03")
        charge = sample_charge(paid=True, paid_amount=Decimal("20"))
        debit = sample_debit()

        run(storage.insert_income(income))
        run(storage.insert_charge(charge))
        run(storage.insert_debit(debit))

        snapshot = run(storage.load_all())
        assert snapshot.incomes == (income,)
        assert snapshot.charges == (charge,)
        assert snapshot.debits == (debit,)

    def test_rows_are_stored_with_id_first(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        charge = sample_charge()
        run(storage.insert_charge(charge))

        row = client.charges.rows[1]
        assert row[0] == charge.id
        assert len(row) == len(CARD_CHARGE_COLUMNS)
        assert row[8] == "False"
        assert row[9] == ""

    def test_bad_rows_are_skipped_on_load(self):
        """Test a hand-edited row doesn't hide the rest of the ledger."""
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        run(storage.insert_charge(sample_charge()))
        client.charges.rows.append(["broken", "x", "not-a-number"])
        client.charges.rows.append(["", "empty id"])

        snapshot = run(storage.load_all())
        assert len(snapshot.charges) == 1

    def test_delete(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        first = sample_charge()
        second = new_card_charge("Geladeira", Decimal("100"), date(2024, 4, 1))
        run(storage.insert_charge(first))
        run(storage.insert_charge(second))

        assert run(storage.delete_charge(first.id)) is True
        assert run(storage.delete_charge(first.id)) is False
        assert [c.id for c in run(storage.load_all()).charges] == [second.id]

    def test_set_charge_paid_state_updates_cells(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        charge = sample_charge()
        run(storage.insert_charge(charge))

        updated = run(storage.set_charge_paid_state(charge.id, True, Decimal("25")))
        assert updated.paid is True

        stored = row_to_charge(client.charges.rows[1])
        assert stored.paid is True
        assert stored.paid_amount == Decimal("25")

        run(storage.set_charge_paid_state(charge.id, False))
        stored = row_to_charge(client.charges.rows[1])
        assert stored.paid is False
        assert stored.paid_amount is None

    def test_set_charge_paid_state_missing(self):
        storage = GoogleSheetsRecordStorage(FakeSheetsClient())
        with pytest.raises(NotFoundError):
            run(storage.set_charge_paid_state("missing", True))

    def test_set_charge_paid_state_invalid_amount(self):
        """Test an excessive partial payment is rejected as a storage error."""
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        charge = sample_charge()
        run(storage.insert_charge(charge))
        with pytest.raises(StorageError):
            run(storage.set_charge_paid_state(charge.id, True, Decimal("999")))
        assert client.charges.rows[1][8] == "False"

    def test_load_failure_is_storage_error(self):
        storage = GoogleSheetsRecordStorage(BrokenSheetsClient())
        with pytest.raises(StorageError, match="quota exceeded"):
            run(storage.load_all())


class TestGoogleSheetsAuditStorage:
    """Tests for the Sheets audit log."""

    def test_append_and_query(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsAuditStorage(client)
        correlation_id = uuid4()
        event = AuditEventBuilder.csv_import_completed(3, 1, 2, correlation_id)
        run(storage.append_event(event))
        run(storage.append_event(AuditEventBuilder.record_deleted("debit", "d-1")))

        related = run(storage.get_events_by_correlation_id(correlation_id))
        assert len(related) == 1
        assert related[0].event_id == event.event_id
        assert related[0].details["skipped_count"] == 1

        recent = run(storage.get_recent_events(limit=10))
        assert len(recent) == 2
        assert recent[0].entity_id == "d-1"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
