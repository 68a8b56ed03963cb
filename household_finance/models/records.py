"""
Core Record Models for the Household Finance Tracker

These models define the strict schemas for every record the tracker
handles. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Stay immutable once built (computations receive snapshots, never live state)

DESIGN DECISION: Money is always Decimal. Month grouping always goes
through the `YYYY-MM` MonthKey string, which is also the join key used by
the storage backends.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


MONTH_KEY_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

MonthKey = Annotated[
    str,
    Field(pattern=MONTH_KEY_PATTERN, description="Calendar month as YYYY-MM"),
]

CENT = Decimal("0.01")


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class CardIssuer(str, Enum):
    """
    Card statements the household tracks.

    Charges are not tagged with an issuer when stored; the issuer is
    inferred from the description (see `card_issuer_of`).
    """
    NUBANK = "nubank"
    MERCADO_PAGO = "mercado-pago"

    @property
    def label(self) -> str:
        return _ISSUER_LABELS[self]


_ISSUER_LABELS = {
    CardIssuer.NUBANK: "Fatura Nubank",
    CardIssuer.MERCADO_PAGO: "Fatura Mercado Pago",
}


# =============================================================================
# STORED RECORDS
# =============================================================================

class Income(BaseModel):
    """Money received in a given month."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    amount: Decimal = Field(..., ge=0, description="Amount received")
    month: MonthKey
    description: Optional[str] = Field(default=None, max_length=200)
    created_at: datetime = Field(default_factory=_utcnow)


class CardCharge(BaseModel):
    """
    One installment occurrence of a credit-card purchase.

    A purchase split in N installments is stored as N records, each one
    tagged with its own installment index and month. Nothing in this
    package synthesizes the sibling installments of a purchase.

    Payment state mirrors the bank:
    - paid=False: nothing left the account yet, paid_amount is ignored
    - paid=True, paid_amount=None: the full installment was settled
    - paid=True, paid_amount=X: a partial settlement of X
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    description: str = Field(..., min_length=1, max_length=300)
    total_amount: Decimal = Field(..., ge=0, description="Whole purchase value")
    installment_count: int = Field(default=1, ge=1)
    installment_index: int = Field(default=1, ge=1)
    installment_amount: Decimal = Field(..., ge=0, description="Value of this installment")
    start_date: date
    month: MonthKey
    paid: bool = False
    paid_amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Partial settlement; absent means the whole installment",
    )
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode='after')
    def validate_installments(self) -> 'CardCharge':
        """Keep installment numbering and partial payments consistent."""
        if self.installment_index > self.installment_count:
            raise ValueError(
                f"Installment {self.installment_index} exceeds "
                f"installment count {self.installment_count}"
            )

        if self.paid_amount is not None and self.paid_amount > self.installment_amount:
            raise ValueError("Paid amount cannot exceed the installment amount")

        return self

    @property
    def settled_amount(self) -> Decimal:
        """What actually left the bank account for this installment."""
        if not self.paid:
            return Decimal("0")
        if self.paid_amount is not None:
            return self.paid_amount
        return self.installment_amount

    def with_paid_state(
        self,
        paid: bool,
        paid_amount: Optional[Decimal] = None,
    ) -> 'CardCharge':
        """Return a validated copy with a new payment state."""
        data = self.model_dump()
        data["paid"] = paid
        data["paid_amount"] = paid_amount
        return CardCharge.model_validate(data)


class DebitExpense(BaseModel):
    """
    A debit-card expense.

    Debit transactions settle immediately, so they always count in
    their month.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    description: str = Field(..., min_length=1, max_length=300)
    amount: Decimal = Field(..., ge=0)
    date: date
    month: MonthKey
    created_at: datetime = Field(default_factory=_utcnow)


class RecordSnapshot(BaseModel):
    """
    Immutable view of every record at one point in time.

    Storage backends hand these out; calculations only ever read them.
    Mutations happen at the store and come back as a fresh snapshot.
    """
    model_config = ConfigDict(frozen=True)

    incomes: tuple[Income, ...] = ()
    charges: tuple[CardCharge, ...] = ()
    debits: tuple[DebitExpense, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.incomes or self.charges or self.debits)


# =============================================================================
# DERIVED RESULTS
# =============================================================================

class MonthlyBalance(BaseModel):
    """Aggregated money movement of one month."""
    model_config = ConfigDict(frozen=True)

    month: MonthKey
    incomes_total: Decimal = Decimal("0")
    card_charges_paid_total: Decimal = Decimal("0")
    debits_total: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class PaymentFeasibility(BaseModel):
    """
    Can this month's card statement be paid?

    When it cannot, months_until_coverable counts how many of the
    following months were needed (or scanned) to accumulate enough
    surplus.
    """
    model_config = ConfigDict(frozen=True)

    month: MonthKey
    card_total_for_month: Decimal
    incomes_for_month: Decimal
    available_balance: Decimal
    can_pay: bool
    coverage_percent: Decimal
    months_until_coverable: int = Field(default=0, ge=0)


class LedgerTotals(BaseModel):
    """Ledger-wide totals shown on the dashboard header."""
    model_config = ConfigDict(frozen=True)

    nubank_total: Decimal = Decimal("0")
    mercado_pago_total: Decimal = Decimal("0")
    debits_total: Decimal = Decimal("0")
    grand_total: Decimal = Decimal("0")


# =============================================================================
# BUILDERS (direct entry)
# =============================================================================

def installment_value(total_amount: Decimal, installment_count: int) -> Decimal:
    """Split a purchase evenly, rounded half-up to cents."""
    if installment_count < 1:
        raise ValueError("Installment count must be at least 1")
    return (Decimal(total_amount) / installment_count).quantize(CENT, rounding=ROUND_HALF_UP)


def new_card_charge(
    description: str,
    total_amount: Decimal,
    start_date: date,
    installment_count: int = 1,
) -> CardCharge:
    """
    Build the first installment of a manually entered card purchase.

    The installment amount is derived from the total; the month comes
    from the start date.
    """
    return CardCharge(
        description=description,
        total_amount=total_amount,
        installment_count=installment_count,
        installment_index=1,
        installment_amount=installment_value(total_amount, installment_count),
        start_date=start_date,
        month=_month_of(start_date),
        paid=False,
    )


def new_debit_expense(description: str, amount: Decimal, expense_date: date) -> DebitExpense:
    return DebitExpense(
        description=description,
        amount=amount,
        date=expense_date,
        month=_month_of(expense_date),
    )


def _month_of(value: date) -> str:
    # household_finance.calculations imports this module at load time
    from household_finance.calculations.months import month_key_of

    return month_key_of(value)
