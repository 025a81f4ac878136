"""Services package."""

from finance_tracker.services.currency import (
    Currency,
    CurrencyConverter,
)
from finance_tracker.services.storage import (
    AlertStorageInterface,
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAlertStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryStorage,
    IntegrityError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    # Currency services
    "Currency",
    "CurrencyConverter",
    # Storage services
    "AlertStorageInterface",
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAlertStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "IntegrityError",
    "NotFoundError",
    "StorageError",
    "TransactionStorageInterface",
]
