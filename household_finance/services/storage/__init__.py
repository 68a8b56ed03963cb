"""
Storage Services Package

Provides abstract interfaces and concrete implementations for record storage.
Google Sheets is the remote backend; the local JSON store is the fallback.
"""

from household_finance.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RecordStorageInterface,
    StorageConnectionError,
    StorageError,
)
from household_finance.services.storage.local import (
    LocalAuditStorage,
    LocalRecordStorage,
)
from household_finance.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Local implementation
    "LocalAuditStorage",
    "LocalRecordStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStorage",
]
