"""
Audit Models for the Household Finance Tracker

Every change to the ledger is logged for audit purposes.
This provides:
1. Traceability of every insert, delete and payment toggle
2. A record of which CSV import replaced the card charges, and what it skipped
3. Debugging information when the remote store misbehaves

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Incomes
    INCOME_ADDED = "income_added"
    INCOME_DELETED = "income_deleted"

    # Card charges
    CHARGE_ADDED = "charge_added"
    CHARGE_DELETED = "charge_deleted"
    CHARGE_PAYMENT_UPDATED = "charge_payment_updated"

    # Debits
    DEBIT_ADDED = "debit_added"
    DEBIT_DELETED = "debit_deleted"

    # CSV import
    CSV_IMPORT_COMPLETED = "csv_import_completed"
    CSV_IMPORT_FAILED = "csv_import_failed"

    # Storage
    RECORDS_LOADED = "records_loaded"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Order of the audit worksheet columns; keys of AuditEvent.to_log_dict()
LOG_FIELDS = (
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details",
    "error_message",
    "is_user_action",
)


class AuditEvent(BaseModel):
    """
    A single audit event.

    entity_type is one of "income", "charge", "debit" or "import";
    events of one user action share a correlation_id.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Flat, JSON-safe view used for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list[str]:
        """One worksheet row, columns in LOG_FIELDS order, empty string for None."""
        values = self.to_log_dict()
        values["details"] = json.dumps(self.details) if self.details else None
        return ["" if values[name] is None else str(values[name]) for name in LOG_FIELDS]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_added("debit", debit.id, "Farmácia", "42.90")
        event = AuditEventBuilder.csv_import_completed(12, 1, 30, correlation_id)
    """

    _ADDED = {
        "income": AuditEventType.INCOME_ADDED,
        "charge": AuditEventType.CHARGE_ADDED,
        "debit": AuditEventType.DEBIT_ADDED,
    }
    _DELETED = {
        "income": AuditEventType.INCOME_DELETED,
        "charge": AuditEventType.CHARGE_DELETED,
        "debit": AuditEventType.DEBIT_DELETED,
    }

    @staticmethod
    def record_added(
        entity_type: str,
        entity_id: str,
        label: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._ADDED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} added: {label} - R$ {amount}",
            details={
                "label": label,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._DELETED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def charge_payment_updated(
        charge_id: str,
        paid: bool,
        paid_amount: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        status = "paid" if paid else "pending"
        return AuditEvent(
            event_type=AuditEventType.CHARGE_PAYMENT_UPDATED,
            entity_type="charge",
            entity_id=charge_id,
            correlation_id=correlation_id,
            description=f"Charge marked as {status}",
            details={
                "paid": paid,
                "paid_amount": paid_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def csv_import_completed(
        imported_count: int,
        skipped_count: int,
        replaced_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORT_COMPLETED,
            severity=AuditSeverity.WARNING if skipped_count else AuditSeverity.INFO,
            entity_type="import",
            correlation_id=correlation_id,
            description=(
                f"CSV import replaced {replaced_count} charges with {imported_count}"
            ),
            details={
                "imported_count": imported_count,
                "skipped_count": skipped_count,
                "replaced_count": replaced_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def csv_import_failed(
        reason: str,
        error_type: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="import",
            correlation_id=correlation_id,
            description=f"CSV import failed: {error_type}",
            error_message=reason,
            details={
                "error_type": error_type,
            },
            is_user_action=True,
        )

    @staticmethod
    def records_loaded(
        incomes: int,
        charges: int,
        debits: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_LOADED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description=f"Loaded {incomes + charges + debits} records",
            details={
                "incomes": incomes,
                "charges": charges,
                "debits": debits,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
