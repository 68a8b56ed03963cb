"""
Audit Logger

Every ledger mutation and every CSV import produces an AuditEvent. The
logger writes it as a JSON line through structlog and, when an audit
store is attached, appends it there too.

An audit store that fails is reported and otherwise ignored: the ledger
change has already happened and must not be rolled back by logging.
"""

import logging
import sys
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_finance.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from household_finance.services.storage import AuditStorageInterface


structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

_HANDLER_NAME = "household_finance"

_LOG_METHODS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


def configure_logging(level: str = "INFO") -> None:
    """Send JSON log lines to stdout at `level` (safe to call repeatedly)."""
    root = logging.getLogger()
    if not any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    root.setLevel(level)


class AuditLogger:
    """
    Writes audit events to the structured log and, optionally, a store.

    Args:
        storage: Where events are persisted. None keeps them log-only.
    """

    def __init__(self, storage: Optional[AuditStorageInterface] = None):
        self._storage = storage
        self._logger = structlog.get_logger("household_finance.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Emit one event.

        Returns False only when an attached store rejected the event.
        """
        emit = getattr(self._logger, _LOG_METHODS[event.severity])
        emit("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                event_id=str(event.event_id),
                event_type=event.event_type.value,
                error=str(e),
            )
            return False

    async def log_record_added(
        self,
        entity_type: str,
        entity_id: str,
        label: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_added(
            entity_type, entity_id, label, str(amount), correlation_id
        ))

    async def log_record_deleted(
        self,
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_deleted(entity_type, entity_id, correlation_id))

    async def log_charge_payment_updated(
        self,
        charge_id: str,
        paid: bool,
        paid_amount: Optional[Decimal],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        amount = str(paid_amount) if paid_amount is not None else None
        await self.log(AuditEventBuilder.charge_payment_updated(
            charge_id, paid, amount, correlation_id
        ))

    async def log_csv_import_completed(
        self,
        imported_count: int,
        skipped_count: int,
        replaced_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.csv_import_completed(
            imported_count, skipped_count, replaced_count, correlation_id
        ))

    async def log_csv_import_failed(
        self,
        reason: str,
        error_type: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.csv_import_failed(reason, error_type, correlation_id))

    async def log_records_loaded(
        self,
        incomes: int,
        charges: int,
        debits: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.records_loaded(incomes, charges, debits, correlation_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.system_error(
            error_type, error_message, details, correlation_id
        ))


def create_correlation_id() -> UUID:
    """New id shared by every event of one user action (e.g. a CSV import)."""
    return uuid4()
