"""
In-Memory Storage

Dict-backed implementations of the storage interfaces. Used by tests
and by sessions that run without a configured backend.

Mirrors the hosted backend's referential rule: a budget cannot be
deleted while alerts still reference it.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.finance import (
    Budget,
    BudgetAlert,
    BudgetPeriod,
    Transaction,
)
from finance_tracker.services.storage.interface import (
    AlertStorageInterface,
    AuditStorageInterface,
    BudgetStorageInterface,
    DuplicateError,
    IntegrityError,
    NotFoundError,
    TransactionStorageInterface,
)


class InMemoryStorage(
    TransactionStorageInterface,
    BudgetStorageInterface,
    AlertStorageInterface,
):
    """One object holding the transactions, budgets and budget_alerts tables."""

    def __init__(self):
        # user_id is kept next to each transaction; the model has no owner field
        self._transactions: dict[UUID, tuple[str, Transaction]] = {}
        self._budgets: dict[UUID, Budget] = {}
        self._alerts: dict[UUID, BudgetAlert] = {}

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_transaction(self, transaction: Transaction, user_id: str) -> Transaction:
        if transaction.id in self._transactions:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        stored = transaction.model_copy(deep=True)
        self._transactions[stored.id] = (user_id, stored)
        return stored.model_copy(deep=True)

    async def delete_transaction(self, transaction_id: UUID, user_id: str) -> bool:
        row = self._transactions.get(transaction_id)
        if row is None or row[0] != user_id:
            return False
        del self._transactions[transaction_id]
        return True

    async def list_transactions(self, user_id: str) -> list[Transaction]:
        transactions = [
            t.model_copy(deep=True)
            for owner, t in self._transactions.values()
            if owner == user_id
        ]
        transactions.sort(key=lambda t: t.date, reverse=True)
        return transactions

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    async def list_budgets(self, user_id: str) -> list[Budget]:
        return [
            b.model_copy(deep=True)
            for b in self._budgets.values()
            if b.user_id == user_id
        ]

    async def get_budget(self, budget_id: UUID, user_id: str) -> Optional[Budget]:
        budget = self._budgets.get(budget_id)
        if budget is None or budget.user_id != user_id:
            return None
        return budget.model_copy(deep=True)

    async def insert_budget(self, budget: Budget) -> Budget:
        if budget.id in self._budgets:
            raise DuplicateError(f"Budget already exists: {budget.id}")
        self._budgets[budget.id] = budget.model_copy(deep=True)
        return budget.model_copy(deep=True)

    async def update_budget(
        self,
        budget_id: UUID,
        user_id: str,
        amount: Decimal,
        period: BudgetPeriod,
    ) -> Budget:
        budget = self._budgets.get(budget_id)
        if budget is None or budget.user_id != user_id:
            raise NotFoundError(f"Budget not found: {budget_id}")

        updated = budget.model_copy(
            update={
                "amount": amount,
                "period": period,
                "updated_at": max(datetime.now(), budget.created_at),
            }
        )
        self._budgets[budget_id] = updated
        return updated.model_copy(deep=True)

    async def delete_budget(self, budget_id: UUID, user_id: str) -> bool:
        budget = self._budgets.get(budget_id)
        if budget is None or budget.user_id != user_id:
            return False
        if any(a.budget_id == budget_id for a in self._alerts.values()):
            raise IntegrityError(f"Budget {budget_id} is still referenced by alerts")
        del self._budgets[budget_id]
        return True

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    async def list_alerts(
        self,
        user_id: str,
        budget_id: Optional[UUID] = None,
        unseen_only: bool = False,
    ) -> list[BudgetAlert]:
        alerts = [
            a.model_copy(deep=True)
            for a in self._alerts.values()
            if a.user_id == user_id
            and (budget_id is None or a.budget_id == budget_id)
            and not (unseen_only and a.seen)
        ]
        alerts.sort(key=lambda a: a.date, reverse=True)
        return alerts

    async def insert_alert(self, alert: BudgetAlert) -> BudgetAlert:
        if alert.id in self._alerts:
            raise DuplicateError(f"Alert already exists: {alert.id}")
        self._alerts[alert.id] = alert.model_copy(deep=True)
        return alert.model_copy(deep=True)

    async def mark_seen(self, alert_id: UUID, user_id: str) -> bool:
        alert = self._alerts.get(alert_id)
        if alert is None or alert.user_id != user_id:
            return False
        self._alerts[alert_id] = alert.model_copy(update={"seen": True})
        return True

    async def mark_all_seen(self, user_id: str) -> int:
        count = 0
        for alert_id, alert in list(self._alerts.items()):
            if alert.user_id == user_id and not alert.seen:
                self._alerts[alert_id] = alert.model_copy(update={"seen": True})
                count += 1
        return count

    async def delete_alerts_for_budget(self, budget_id: UUID, user_id: str) -> int:
        doomed = [
            alert_id
            for alert_id, alert in self._alerts.items()
            if alert.budget_id == budget_id and alert.user_id == user_id
        ]
        for alert_id in doomed:
            del self._alerts[alert_id]
        return len(doomed)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
