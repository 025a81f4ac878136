"""
Budget Alert Engine

Given a user's budgets and a transaction snapshot, decides which budgets
crossed a spend threshold (80 / 90 / 100 %) in their current window and
persists at most one new alert per budget per threshold per session.

Two layers stop duplicates:
1. THRESHOLD MEMORY: in-process map budget_id → {threshold: fired}.
   Lives as long as the session; reset when a budget's amount or period
   changes, dropped when the budget is deleted.
2. STORED ALERTS: an unseen stored alert within a few points of the
   threshold counts as already raised (covers process restarts).

FAILURE POLICY:
- Storage errors are logged and audited, never raised.
- A failed insert leaves the threshold unmarked, so the next check may
  try again. Nothing is retried within one check.

Budgets are processed sequentially in the order given; each storage call
is awaited before moving to the next budget.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Optional
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.categories import get_expense_category
from finance_tracker.config import AlertSettings, get_settings
from finance_tracker.models.finance import (
    Budget,
    BudgetAlert,
    ThresholdLevel,
    Transaction,
)
from finance_tracker.queries import budget_percentage, spent_in_period
from finance_tracker.services.storage import AlertStorageInterface


logger = structlog.get_logger(__name__)


def threshold_level(percentage: float) -> Optional[ThresholdLevel]:
    """Highest threshold reached, or None below 80%."""
    if percentage >= ThresholdLevel.EXCEEDED:
        return ThresholdLevel.EXCEEDED
    if percentage >= ThresholdLevel.CRITICAL:
        return ThresholdLevel.CRITICAL
    if percentage >= ThresholdLevel.WARNING:
        return ThresholdLevel.WARNING
    return None


def build_alert_message(
    level: ThresholdLevel,
    category_name: str,
    percentage: float,
) -> str:
    if level == ThresholdLevel.EXCEEDED:
        overspend = Decimal(repr(percentage - 100)).to_integral_value(
            rounding=ROUND_HALF_UP
        )
        return f"You've exceeded your {category_name} budget by {overspend:f}%"
    return f"You've used {level.value}% of your {category_name} budget"


class ThresholdMemory:
    """
    Which thresholds already fired for which budgets, this session.

    Not persisted. One instance per user session.
    """

    def __init__(self):
        self._fired: dict[UUID, dict[int, bool]] = {}

    def is_fired(self, budget_id: UUID, level: ThresholdLevel) -> bool:
        return self._fired.get(budget_id, {}).get(int(level), False)

    def mark_fired(self, budget_id: UUID, level: ThresholdLevel) -> None:
        self._fired.setdefault(budget_id, {})[int(level)] = True

    def reset(self, budget_id: UUID) -> None:
        """Forget every fired threshold of a budget whose target changed."""
        if budget_id in self._fired:
            self._fired[budget_id] = {}

    def forget(self, budget_id: UUID) -> None:
        """Drop a deleted budget entirely."""
        self._fired.pop(budget_id, None)

    def fired_levels(self, budget_id: UUID) -> set[int]:
        return {
            level for level, fired in self._fired.get(budget_id, {}).items() if fired
        }

    def __contains__(self, budget_id: UUID) -> bool:
        return budget_id in self._fired


class BudgetAlertEngine:
    """
    Threshold alerting for one user session.

    RESPONSIBILITIES:
    - Compute spend-to-date per budget for its current window
    - Raise and persist new alerts, deduplicated
    - Mark alerts seen, individually or all at once

    BOUNDARIES:
    - Does not load budgets or transactions; the caller passes snapshots
    - Without an authenticated user every operation is a no-op
    """

    def __init__(
        self,
        storage: AlertStorageInterface,
        user_id: Optional[str],
        memory: Optional[ThresholdMemory] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AlertSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._storage = storage
        self._user_id = user_id
        self._memory = memory if memory is not None else ThresholdMemory()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().alerts
        self._clock = clock or datetime.now
        self._logger = logger.bind(user_id=user_id)

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def memory(self) -> ThresholdMemory:
        return self._memory

    async def check_alerts(
        self,
        budgets: Iterable[Budget],
        transactions: Iterable[Transaction],
    ) -> list[BudgetAlert]:
        """
        Raise alerts for budgets that crossed a threshold.

        Returns only the alerts created by this call.
        """
        budgets = list(budgets)
        transactions = list(transactions)
        if not self._user_id or not budgets or not transactions:
            return []

        now = self._clock()
        correlation_id = create_correlation_id()
        new_alerts: list[BudgetAlert] = []

        for budget in budgets:
            alert = await self._check_budget(budget, transactions, now, correlation_id)
            if alert is not None:
                new_alerts.append(alert)

        if new_alerts:
            self._logger.info(
                "budget_alerts_raised",
                count=len(new_alerts),
                correlation_id=str(correlation_id),
            )
        return new_alerts

    async def _check_budget(
        self,
        budget: Budget,
        transactions: list[Transaction],
        now: datetime,
        correlation_id: UUID,
    ) -> Optional[BudgetAlert]:
        category = get_expense_category(budget.category_id)
        if category is None:
            self._logger.debug(
                "budget_category_unresolved",
                budget_id=str(budget.id),
                category_id=budget.category_id,
            )
            return None

        total_spent = spent_in_period(budget, transactions, now)
        percentage = budget_percentage(total_spent, budget.amount)

        level = threshold_level(percentage)
        if level is None:
            return None

        if self._memory.is_fired(budget.id, level):
            return None

        try:
            unseen = await self._storage.list_alerts(
                self._user_id,
                budget_id=budget.id,
                unseen_only=True,
            )
        except Exception as e:
            await self._storage_failed("list_alerts", e, budget.id, correlation_id)
            return None

        tolerance = self._settings.duplicate_tolerance
        if any(abs(a.percentage - level.value) <= tolerance for a in unseen):
            self._memory.mark_fired(budget.id, level)
            return None

        alert = BudgetAlert(
            budget_id=budget.id,
            message=build_alert_message(level, category.name, percentage),
            date=now,
            seen=False,
            category_id=category.id,
            category_name=category.name,
            budget_amount=budget.amount,
            spent_amount=total_spent,
            percentage=percentage,
            user_id=self._user_id,
        )

        try:
            stored = await self._storage.insert_alert(alert)
        except Exception as e:
            await self._storage_failed("insert_alert", e, budget.id, correlation_id)
            return None

        self._memory.mark_fired(budget.id, level)

        if self._audit_logger:
            await self._audit_logger.log_alert_raised(
                alert_id=stored.id,
                budget_id=budget.id,
                user_id=self._user_id,
                threshold=level.value,
                percentage=percentage,
                correlation_id=correlation_id,
            )
        return stored

    async def mark_seen(self, alert_id: UUID) -> bool:
        """Mark one of the user's alerts as seen."""
        if not self._user_id:
            return False

        try:
            updated = await self._storage.mark_seen(alert_id, self._user_id)
        except Exception as e:
            await self._storage_failed("mark_seen", e, alert_id)
            return False

        if updated and self._audit_logger:
            await self._audit_logger.log_alert_seen(alert_id, self._user_id)
        return updated

    async def clear_all(self) -> int:
        """Mark every unseen alert of the user as seen."""
        if not self._user_id:
            return 0

        try:
            count = await self._storage.mark_all_seen(self._user_id)
        except Exception as e:
            await self._storage_failed("mark_all_seen", e)
            return 0

        if self._audit_logger:
            await self._audit_logger.log_alerts_cleared(self._user_id, count)
        return count

    def budget_updated(self, budget_id: UUID) -> None:
        """Allow every threshold of a re-targeted budget to fire again."""
        self._memory.reset(budget_id)

    def budget_deleted(self, budget_id: UUID) -> None:
        self._memory.forget(budget_id)

    async def _storage_failed(
        self,
        operation: str,
        error: Exception,
        entity_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self._logger.error(
            "alert_storage_failed",
            operation=operation,
            error=str(error),
            entity_id=str(entity_id) if entity_id else None,
        )
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                user_id=self._user_id,
                entity_id=entity_id,
                correlation_id=correlation_id,
            )
