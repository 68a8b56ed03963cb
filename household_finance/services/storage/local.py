"""
Local Storage Implementation

Keeps every record in memory and, when given a path, mirrors the whole
ledger to a JSON file after each change. Used when the remote store is
not configured, and as the test double for flows.

TRADEOFFS:
- Whole-file rewrite on every change (fine for a household ledger)
- Single process only; no locking
"""

from collections import OrderedDict
from decimal import Decimal
from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from household_finance.models.audit import AuditEvent
from household_finance.models.records import (
    CardCharge,
    DebitExpense,
    Income,
    RecordSnapshot,
)
from household_finance.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RecordStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class LocalRecordStorage(RecordStorageInterface):
    """
    In-memory record storage with optional JSON persistence.

    Insertion order is preserved, so snapshots list records in the
    order they were added.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path else None
        self._incomes: OrderedDict[str, Income] = OrderedDict()
        self._charges: OrderedDict[str, CardCharge] = OrderedDict()
        self._debits: OrderedDict[str, DebitExpense] = OrderedDict()

        if self._path and self._path.exists():
            self._load_file()

    def _load_file(self) -> None:
        try:
            snapshot = RecordSnapshot.model_validate_json(
                self._path.read_text(encoding="utf-8")
            )
        except (OSError, ValidationError) as e:
            raise StorageError(f"Failed to read local data file {self._path}: {e}")

        self._incomes = OrderedDict((r.id, r) for r in snapshot.incomes)
        self._charges = OrderedDict((r.id, r) for r in snapshot.charges)
        self._debits = OrderedDict((r.id, r) for r in snapshot.debits)
        logger.info(
            "local_storage_loaded",
            path=str(self._path),
            incomes=len(self._incomes),
            charges=len(self._charges),
            debits=len(self._debits),
        )

    def _snapshot(self, **tables: OrderedDict) -> RecordSnapshot:
        return RecordSnapshot(
            incomes=tuple(tables.get("incomes", self._incomes).values()),
            charges=tuple(tables.get("charges", self._charges).values()),
            debits=tuple(tables.get("debits", self._debits).values()),
        )

    def _persist(self, snapshot: RecordSnapshot) -> None:
        if not self._path:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                snapshot.model_dump_json(indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            raise StorageError(f"Failed to write local data file {self._path}: {e}")

    def _commit(self, name: str, table: OrderedDict) -> None:
        # Memory only changes once the file write succeeded
        self._persist(self._snapshot(**{name: table}))
        setattr(self, f"_{name}", table)

    def _insert(self, name: str, record) -> bool:
        table = getattr(self, f"_{name}")
        if record.id in table:
            raise DuplicateError(f"Record already exists: {record.id}")
        updated = OrderedDict(table)
        updated[record.id] = record
        self._commit(name, updated)
        return True

    def _delete(self, name: str, record_id: str) -> bool:
        table = getattr(self, f"_{name}")
        if record_id not in table:
            return False
        updated = OrderedDict(table)
        del updated[record_id]
        self._commit(name, updated)
        return True

    async def load_all(self) -> RecordSnapshot:
        return self._snapshot()

    async def insert_income(self, income: Income) -> bool:
        return self._insert("incomes", income)

    async def delete_income(self, income_id: str) -> bool:
        return self._delete("incomes", income_id)

    async def insert_charge(self, charge: CardCharge) -> bool:
        return self._insert("charges", charge)

    async def delete_charge(self, charge_id: str) -> bool:
        return self._delete("charges", charge_id)

    async def insert_debit(self, debit: DebitExpense) -> bool:
        return self._insert("debits", debit)

    async def delete_debit(self, debit_id: str) -> bool:
        return self._delete("debits", debit_id)

    async def set_charge_paid_state(
        self,
        charge_id: str,
        paid: bool,
        paid_amount: Optional[Decimal] = None,
    ) -> CardCharge:
        charge = self._charges.get(charge_id)
        if charge is None:
            raise NotFoundError(f"Card charge not found: {charge_id}")

        updated = charge.with_paid_state(paid, paid_amount)
        charges = OrderedDict(self._charges)
        charges[charge_id] = updated
        self._commit("charges", charges)
        return updated


class LocalAuditStorage(AuditStorageInterface):
    """In-memory, append-only audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
