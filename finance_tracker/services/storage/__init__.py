"""
Storage Services Package

Abstract interfaces plus two implementations: in-memory (tests and
unconfigured sessions) and Google Sheets.
"""

from finance_tracker.services.storage.interface import (
    AlertStorageInterface,
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    IntegrityError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryStorage,
)
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsAlertStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
)

__all__ = [
    # Interfaces
    "AlertStorageInterface",
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "IntegrityError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryStorage",
    # Google Sheets implementation
    "GoogleSheetsAlertStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
]
