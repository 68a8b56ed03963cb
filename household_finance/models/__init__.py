"""
Data Models Package

This package contains all Pydantic models used by the finance tracker.
All records flowing through the system must conform to these schemas.
"""

from household_finance.models.records import (
    CardCharge,
    CardIssuer,
    DebitExpense,
    Income,
    LedgerTotals,
    MonthKey,
    MonthlyBalance,
    PaymentFeasibility,
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

__all__ = [
    # Record models
    "CardCharge",
    "CardIssuer",
    "DebitExpense",
    "Income",
    "LedgerTotals",
    "MonthKey",
    "MonthlyBalance",
    "PaymentFeasibility",
    "RecordSnapshot",
    "installment_value",
    "new_card_charge",
    "new_debit_expense",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
