"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Use Google Sheets as the remote store
2. Fall back to a local JSON file when the remote store is not configured
3. Use in-memory storage for testing
4. Keep the balance calculations decoupled from storage entirely

Calculations never talk to storage. Callers await `load_all()` and pass
the returned RecordSnapshot into the pure functions.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional
from uuid import UUID

from household_finance.models.audit import AuditEvent
from household_finance.models.records import (
    CardCharge,
    DebitExpense,
    Income,
    RecordSnapshot,
)


class RecordStorageInterface(ABC):
    """
    Abstract interface for ledger record storage.

    Any storage implementation (Google Sheets, local file, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def load_all(self) -> RecordSnapshot:
        """
        Load every record.

        Returns:
            An immutable snapshot of incomes, card charges and debits

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def insert_income(self, income: Income) -> bool:
        """
        Save a new income.

        Raises:
            DuplicateError: If a record with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_income(self, income_id: str) -> bool:
        """
        Delete an income by id.

        Returns:
            True if a record was deleted, False if none matched
        """
        pass

    @abstractmethod
    async def insert_charge(self, charge: CardCharge) -> bool:
        """
        Save a new card charge.

        Raises:
            DuplicateError: If a record with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_charge(self, charge_id: str) -> bool:
        """
        Delete a card charge by id.

        Returns:
            True if a record was deleted, False if none matched
        """
        pass

    @abstractmethod
    async def insert_debit(self, debit: DebitExpense) -> bool:
        """
        Save a new debit expense.

        Raises:
            DuplicateError: If a record with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_debit(self, debit_id: str) -> bool:
        """
        Delete a debit expense by id.

        Returns:
            True if a record was deleted, False if none matched
        """
        pass

    @abstractmethod
    async def set_charge_paid_state(
        self,
        charge_id: str,
        paid: bool,
        paid_amount: Optional[Decimal] = None,
    ) -> CardCharge:
        """
        Update the payment state of a card charge in place.

        Args:
            charge_id: The charge to update
            paid: New paid flag
            paid_amount: Partial settlement, None for the full installment

        Returns:
            The updated charge

        Raises:
            NotFoundError: If the charge doesn't exist
            StorageError: If update fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Raises:
            StorageError: If the event could not be written
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one CSV import).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
