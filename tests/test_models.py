"""
Tests for the Household Finance Tracker

Test strategy:
1. Unit tests for individual components (models, calculations, CSV parsing)
2. Flow tests against the local store (no remote calls)
3. Google Sheets backend exercised with in-memory fakes
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from household_finance.models.records import (
    CardCharge,
    CardIssuer,
    DebitExpense,
    Income,
    RecordSnapshot,
    installment_value,
    new_card_charge,
    new_debit_expense,
)
from household_finance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


def make_charge(**overrides) -> CardCharge:
    data = dict(
        description="Loja X",
        total_amount=Decimal("150.00"),
        installment_count=3,
        installment_index=1,
        installment_amount=Decimal("50.00"),
        start_date=date(2024, 3, 10),
        month="2024-03",
    )
    data.update(overrides)
    return CardCharge(**data)


class TestRecordModels:
    """Tests for the stored record models."""

    def test_income_creation(self):
        """Test Income model creation with a generated id."""
        income = Income(amount=Decimal("3500.00"), month="2024-03")
        assert income.amount == Decimal("3500.00")
        assert income.month == "2024-03"
        assert income.id

    def test_income_rejects_bad_month_key(self):
        """Test that month keys must be YYYY-MM."""
        with pytest.raises(ValidationError):
            Income(amount=Decimal("10"), month="2024-3")
        with pytest.raises(ValidationError):
            Income(amount=Decimal("10"), month="2024-13")

    def test_records_are_immutable(self):
        """Test that records can't be mutated after creation."""
        income = Income(amount=Decimal("10"), month="2024-03")
        with pytest.raises(ValidationError):
            income.amount = Decimal("20")

    def test_card_charge_defaults_unpaid(self):
        """Test CardCharge starts unpaid with no paid amount."""
        charge = make_charge()
        assert charge.paid is False
        assert charge.paid_amount is None
        assert charge.settled_amount == Decimal("0")

    def test_card_charge_strips_whitespace(self):
        """Test that whitespace is stripped from descriptions."""
        charge = make_charge(description="  Loja X  ")
        assert charge.description == "Loja X"

    def test_card_charge_index_cannot_exceed_count(self):
        """Test installment index must be within the installment count."""
        with pytest.raises(ValueError, match="exceeds installment count"):
            make_charge(installment_index=4, installment_count=3)

    def test_card_charge_rejects_zero_installments(self):
        """Test installment count must be at least 1."""
        with pytest.raises(ValidationError):
            make_charge(installment_count=0, installment_index=1)

    def test_paid_amount_cannot_exceed_installment(self):
        """Test partial payments are capped by the installment amount."""
        with pytest.raises(ValueError, match="Paid amount cannot exceed"):
            make_charge(paid=True, paid_amount=Decimal("60.00"))

    def test_settled_amount_full_and_partial(self):
        """Test what a paid charge settles."""
        assert make_charge(paid=True).settled_amount == Decimal("50.00")
        assert make_charge(paid=True, paid_amount=Decimal("30")).settled_amount == Decimal("30")

    def test_settled_amount_ignores_paid_amount_when_unpaid(self):
        """Test an unpaid charge settles nothing even with a paid amount."""
        charge = make_charge(paid=False, paid_amount=Decimal("30"))
        assert charge.settled_amount == Decimal("0")

    def test_with_paid_state_returns_validated_copy(self):
        """Test with_paid_state leaves the source charge untouched."""
        charge = make_charge()
        paid = charge.with_paid_state(True, Decimal("20"))
        assert paid.paid is True
        assert paid.paid_amount == Decimal("20")
        assert paid.id == charge.id
        assert charge.paid is False

    def test_with_paid_state_validates(self):
        """Test with_paid_state rejects an excessive partial payment."""
        with pytest.raises(ValidationError):
            make_charge().with_paid_state(True, Decimal("999"))

    def test_debit_expense_creation(self):
        """Test DebitExpense model creation."""
        debit = DebitExpense(
            description="Farmácia",
            amount=Decimal("42.90"),
            date=date(2024, 3, 2),
            month="2024-03",
        )
        assert debit.date == date(2024, 3, 2)

    def test_snapshot_json_round_trip(self):
        """Test a snapshot survives JSON serialization."""
        snapshot = RecordSnapshot(
            incomes=(Income(amount=Decimal("1000"), month="2024-03"),),
            charges=(make_charge(paid=True, paid_amount=Decimal("10.50")),),
        )
        restored = RecordSnapshot.model_validate_json(snapshot.model_dump_json())
        assert restored == snapshot
        assert not restored.is_empty
        assert RecordSnapshot().is_empty


class TestBuilders:
    """Tests for direct-entry builders."""

    def test_installment_value_rounds_to_cents(self):
        """Test the even split is rounded half-up to cents."""
        assert installment_value(Decimal("100"), 3) == Decimal("33.33")
        assert installment_value(Decimal("0.05"), 2) == Decimal("0.03")

    def test_installment_value_rejects_zero_count(self):
        with pytest.raises(ValueError):
            installment_value(Decimal("100"), 0)

    def test_new_card_charge(self):
        """Test a manual purchase becomes its first installment."""
        charge = new_card_charge(
            description="Geladeira",
            total_amount=Decimal("1200.00"),
            start_date=date(2024, 11, 20),
            installment_count=10,
        )
        assert charge.installment_index == 1
        assert charge.installment_count == 10
        assert charge.installment_amount == Decimal("120.00")
        assert charge.month == "2024-11"
        assert charge.paid is False

    def test_new_debit_expense(self):
        debit = new_debit_expense("Padaria", Decimal("15.00"), date(2025, 1, 3))
        assert debit.month == "2025-01"

    def test_card_issuer_labels(self):
        assert CardIssuer.NUBANK.label == "Fatura Nubank"
        assert CardIssuer.MERCADO_PAGO.label == "Fatura Mercado Pago"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.CHARGE_ADDED,
            description="Charge added",
        )
        assert event.event_type == AuditEventType.CHARGE_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.record_added(
            entity_type="debit",
            entity_id="d-1",
            label="Farmácia",
            amount="42.90",
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "debit_added"
        assert log_dict["entity_id"] == "d-1"
        assert log_dict["details"]["amount"] == "42.90"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEventBuilder.record_deleted("income", "i-1")
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "income_deleted"  # event_type
        assert row[5] == "i-1"  # entity_id
        assert row[10] == "True"  # is_user_action

    def test_csv_import_completed_with_skips_is_warning(self):
        """Test an import that skipped rows is flagged."""
        correlation_id = uuid4()
        event = AuditEventBuilder.csv_import_completed(
            imported_count=10,
            skipped_count=2,
            replaced_count=8,
            correlation_id=correlation_id,
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.correlation_id == correlation_id
        assert event.details["skipped_count"] == 2

    def test_charge_payment_updated(self):
        event = AuditEventBuilder.charge_payment_updated("c-1", True, "30")
        assert event.event_type == AuditEventType.CHARGE_PAYMENT_UPDATED
        assert event.description == "Charge marked as paid"
        assert event.is_user_action is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
