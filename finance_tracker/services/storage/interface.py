"""
Abstract Storage Interface

The core never talks to a concrete backend. It talks to these interfaces:
a row-oriented, user-scoped store with tables for transactions, budgets
and budget alerts, plus an append-only audit log.

Implementations raise StorageError (or a subclass) on failure. Callers
in the core catch, log and degrade; they never let the error escape.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_tracker.models.finance import (
    Budget,
    BudgetAlert,
    BudgetPeriod,
    Transaction,
)
from finance_tracker.models.audit import AuditEvent


class TransactionStorageInterface(ABC):
    """Transactions, scoped by user."""

    @abstractmethod
    async def add_transaction(self, transaction: Transaction, user_id: str) -> Transaction:
        """
        Persist a transaction.

        Returns:
            The stored record

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: UUID, user_id: str) -> bool:
        """
        Delete a transaction owned by the user.

        Returns:
            True if a row was deleted
        """
        pass

    @abstractmethod
    async def list_transactions(self, user_id: str) -> list[Transaction]:
        """
        All of the user's transactions, newest first (by date).
        """
        pass


class BudgetStorageInterface(ABC):
    """
    Budgets, scoped by user.

    Uniqueness of (category_id, period) is enforced by the caller.
    """

    @abstractmethod
    async def list_budgets(self, user_id: str) -> list[Budget]:
        pass

    @abstractmethod
    async def get_budget(self, budget_id: UUID, user_id: str) -> Optional[Budget]:
        pass

    @abstractmethod
    async def insert_budget(self, budget: Budget) -> Budget:
        """
        Insert a budget and return the stored record.

        Raises:
            DuplicateError: If a budget with the same id exists
            StorageError: If insert fails
        """
        pass

    @abstractmethod
    async def update_budget(
        self,
        budget_id: UUID,
        user_id: str,
        amount: Decimal,
        period: BudgetPeriod,
    ) -> Budget:
        """
        Update amount and period, refresh updated_at, return the record.

        Raises:
            NotFoundError: If the user owns no such budget
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: UUID, user_id: str) -> bool:
        """
        Delete a budget.

        Raises:
            StorageError: If the budget still has alerts or delete fails
        """
        pass


class AlertStorageInterface(ABC):
    """Budget alerts, scoped by user. Alerts reference a budget."""

    @abstractmethod
    async def list_alerts(
        self,
        user_id: str,
        budget_id: Optional[UUID] = None,
        unseen_only: bool = False,
    ) -> list[BudgetAlert]:
        """
        Alerts for the user, newest first.

        Args:
            user_id: Owner
            budget_id: Only alerts for this budget
            unseen_only: Skip alerts already marked seen
        """
        pass

    @abstractmethod
    async def insert_alert(self, alert: BudgetAlert) -> BudgetAlert:
        """
        Insert an alert and return the stored record.

        Raises:
            StorageError: If insert fails
        """
        pass

    @abstractmethod
    async def mark_seen(self, alert_id: UUID, user_id: str) -> bool:
        """
        Mark one alert as seen.

        Returns:
            False if the user owns no such alert
        """
        pass

    @abstractmethod
    async def mark_all_seen(self, user_id: str) -> int:
        """
        Mark every unseen alert of the user as seen.

        Returns:
            Number of alerts updated
        """
        pass

    @abstractmethod
    async def delete_alerts_for_budget(self, budget_id: UUID, user_id: str) -> int:
        """
        Delete every alert that references the budget.

        Returns:
            Number of alerts deleted
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

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Most recent audit events, newest first.
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


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class IntegrityError(StorageError):
    """Operation would leave dangling references (e.g. alerts of a deleted budget)."""
    pass
