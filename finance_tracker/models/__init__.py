"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker core.
"""

from finance_tracker.models.finance import (
    Budget,
    BudgetAlert,
    BudgetInput,
    BudgetPeriod,
    BudgetProgress,
    BudgetStatus,
    Category,
    CategorySuggestion,
    SuggestionSource,
    ThresholdLevel,
    Transaction,
    TransactionHistoryEntry,
    TransactionType,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "Budget",
    "BudgetAlert",
    "BudgetInput",
    "BudgetPeriod",
    "BudgetProgress",
    "BudgetStatus",
    "Category",
    "CategorySuggestion",
    "SuggestionSource",
    "ThresholdLevel",
    "Transaction",
    "TransactionHistoryEntry",
    "TransactionType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
