"""
Session Orchestrator for Finance Tracker

Ties the components together for one authenticated user session:
1. Budgets (load → create/update/delete → check alerts → mark seen)
2. Transactions (load → predict category → add/delete → filter)

The flows enforce the session boundaries:
- Nothing touches storage without an authenticated user
- Input is validated before storage is called
- Storage failures are logged and audited, and surface as a
  "failed" return value (None, False, 0, []) rather than an exception
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional
from uuid import UUID

import structlog

from finance_tracker.agents import CategorySuggester
from finance_tracker.alerts import BudgetAlertEngine, ThresholdMemory
from finance_tracker.audit import AuditLogger
from finance_tracker.categories import get_category_by_id, get_expense_category
from finance_tracker.config import get_settings
from finance_tracker.models.finance import (
    Budget,
    BudgetAlert,
    BudgetInput,
    BudgetPeriod,
    BudgetProgress,
    Category,
    Transaction,
    TransactionType,
)
from finance_tracker.queries import (
    TransactionQuery,
    compute_budget_progress,
    filter_transactions,
)
from finance_tracker.services.currency import CurrencyConverter
from finance_tracker.services.storage import (
    AlertStorageInterface,
    BudgetStorageInterface,
    GoogleSheetsAlertStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryStorage,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)


class BudgetFlow:
    """
    Budgets and their alerts for one user.

    Keeps a local snapshot of the user's budgets and alerts, refreshed
    by load() and patched after every successful mutation.
    """

    def __init__(
        self,
        user_id: Optional[str],
        budget_storage: BudgetStorageInterface,
        alert_storage: AlertStorageInterface,
        alert_engine: Optional[BudgetAlertEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._user_id = user_id
        self._budget_storage = budget_storage
        self._alert_storage = alert_storage
        self._audit_logger = audit_logger
        self._clock = clock or datetime.now
        self._engine = alert_engine or BudgetAlertEngine(
            alert_storage,
            user_id,
            memory=ThresholdMemory(),
            audit_logger=audit_logger,
            clock=self._clock,
        )
        self._budgets: list[Budget] = []
        self._alerts: list[BudgetAlert] = []
        self._logger = logger.bind(user_id=user_id, flow="budgets")

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets)

    @property
    def alerts(self) -> list[BudgetAlert]:
        """All alerts, newest first."""
        return list(self._alerts)

    @property
    def unseen_alerts(self) -> list[BudgetAlert]:
        return [alert for alert in self._alerts if not alert.seen]

    @property
    def engine(self) -> BudgetAlertEngine:
        return self._engine

    def _authenticated(self, operation: str) -> bool:
        if not self._user_id:
            self._logger.warning("user_not_authenticated", operation=operation)
            return False
        return True

    async def _storage_failed(
        self,
        operation: str,
        error: Exception,
        entity_id: Optional[UUID] = None,
    ) -> None:
        self._logger.error(
            "budget_storage_failed",
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
            )

    async def load(self) -> tuple[list[Budget], list[BudgetAlert]]:
        """Fetch the user's budgets and alerts."""
        if not self._user_id:
            self._budgets, self._alerts = [], []
            return [], []

        try:
            self._budgets = await self._budget_storage.list_budgets(self._user_id)
        except Exception as e:
            await self._storage_failed("list_budgets", e)

        try:
            self._alerts = await self._alert_storage.list_alerts(self._user_id)
        except Exception as e:
            await self._storage_failed("list_alerts", e)

        return self.budgets, self.alerts

    async def create_budget(
        self,
        category_id: str,
        amount: Decimal,
        period: BudgetPeriod,
    ) -> Optional[Budget]:
        """
        Create a budget, or update the existing one for the same
        category and period.

        Raises:
            ValueError: unknown expense category
            ValidationError: non-positive amount
        """
        if not self._authenticated("create_budget"):
            return None

        budget_input = BudgetInput(category_id=category_id, amount=amount, period=period)
        if get_expense_category(budget_input.category_id) is None:
            raise ValueError(f"Unknown expense category: {category_id}")

        # A flow that never called load() still must not duplicate a budget.
        try:
            self._budgets = await self._budget_storage.list_budgets(self._user_id)
        except Exception as e:
            await self._storage_failed("list_budgets", e)

        existing = next(
            (
                b for b in self._budgets
                if b.category_id == budget_input.category_id
                and b.period == budget_input.period
            ),
            None,
        )
        if existing is not None:
            return await self.update_budget(
                existing.id, budget_input.amount, budget_input.period
            )

        now = self._clock()
        budget = Budget(
            category_id=budget_input.category_id,
            amount=budget_input.amount,
            period=budget_input.period,
            created_at=now,
            updated_at=now,
            user_id=self._user_id,
        )

        try:
            stored = await self._budget_storage.insert_budget(budget)
        except Exception as e:
            await self._storage_failed("insert_budget", e, budget.id)
            return None

        self._budgets.append(stored)

        if self._audit_logger:
            await self._audit_logger.log_budget_created(
                budget_id=stored.id,
                user_id=self._user_id,
                category_id=stored.category_id,
                amount=str(stored.amount),
                period=stored.period.value,
            )
        return stored

    async def update_budget(
        self,
        budget_id: UUID,
        amount: Decimal,
        period: BudgetPeriod,
    ) -> Optional[Budget]:
        """
        Change a budget's amount and period.

        Every threshold of the budget may fire again afterwards.
        """
        if not self._authenticated("update_budget"):
            return None

        if amount is None or Decimal(amount) <= 0:
            raise ValueError("Budget amount must be positive")
        period = BudgetPeriod(period)

        try:
            updated = await self._budget_storage.update_budget(
                budget_id, self._user_id, Decimal(amount), period
            )
        except Exception as e:
            await self._storage_failed("update_budget", e, budget_id)
            return None

        self._engine.budget_updated(budget_id)
        if any(b.id == budget_id for b in self._budgets):
            self._budgets = [updated if b.id == budget_id else b for b in self._budgets]
        else:
            self._budgets.append(updated)

        if self._audit_logger:
            await self._audit_logger.log_budget_updated(
                budget_id=budget_id,
                user_id=self._user_id,
                amount=str(updated.amount),
                period=updated.period.value,
            )
        return updated

    async def delete_budget(self, budget_id: UUID) -> bool:
        """Delete a budget together with its alerts."""
        if not self._authenticated("delete_budget"):
            return False

        alerts_deleted = True
        try:
            await self._alert_storage.delete_alerts_for_budget(budget_id, self._user_id)
        except Exception as e:
            alerts_deleted = False
            self._logger.warning(
                "budget_alerts_delete_failed",
                budget_id=str(budget_id),
                error=str(e),
            )

        try:
            deleted = await self._budget_storage.delete_budget(budget_id, self._user_id)
        except Exception as e:
            await self._storage_failed("delete_budget", e, budget_id)
            return False

        if not deleted:
            return False

        self._engine.budget_deleted(budget_id)
        self._budgets = [b for b in self._budgets if b.id != budget_id]
        self._alerts = [a for a in self._alerts if a.budget_id != budget_id]

        if self._audit_logger:
            await self._audit_logger.log_budget_deleted(
                budget_id=budget_id,
                user_id=self._user_id,
                alerts_deleted=alerts_deleted,
            )
        return True

    async def mark_alert_seen(self, alert_id: UUID) -> bool:
        if not self._authenticated("mark_alert_seen"):
            return False

        updated = await self._engine.mark_seen(alert_id)
        if updated:
            self._alerts = [
                a.model_copy(update={"seen": True}) if a.id == alert_id else a
                for a in self._alerts
            ]
        return updated

    async def clear_all_alerts(self) -> int:
        """Mark every unseen alert as seen. Returns how many changed."""
        if not self._authenticated("clear_all_alerts"):
            return 0

        count = await self._engine.clear_all()
        if count:
            self._alerts = [
                a if a.seen else a.model_copy(update={"seen": True})
                for a in self._alerts
            ]
        return count

    async def check_budget_alerts(
        self,
        transactions: Iterable[Transaction],
    ) -> list[BudgetAlert]:
        """Run the alert engine over the current budgets."""
        if not self._authenticated("check_budget_alerts"):
            return []

        new_alerts = await self._engine.check_alerts(self._budgets, transactions)
        if new_alerts:
            self._alerts = list(reversed(new_alerts)) + self._alerts
        return new_alerts

    def budget_progress(
        self,
        transactions: Iterable[Transaction],
    ) -> list[BudgetProgress]:
        return compute_budget_progress(self._budgets, transactions, now=self._clock())


class TransactionFlow:
    """
    Transactions for one user, plus category prediction.

    The suggester learns only from transactions that were saved.
    """

    def __init__(
        self,
        user_id: Optional[str],
        storage: TransactionStorageInterface,
        suggester: Optional[CategorySuggester] = None,
        converter: Optional[CurrencyConverter] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._user_id = user_id
        self._storage = storage
        self._suggester = suggester or CategorySuggester()
        self._converter = converter or CurrencyConverter()
        self._audit_logger = audit_logger
        self._settings = get_settings().suggester
        self._transactions: list[Transaction] = []
        self._confidence: dict[str, float] = {}
        self._logger = logger.bind(user_id=user_id, flow="transactions")

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def suggester(self) -> CategorySuggester:
        return self._suggester

    @property
    def converter(self) -> CurrencyConverter:
        return self._converter

    def _authenticated(self, operation: str) -> bool:
        if not self._user_id:
            self._logger.warning("user_not_authenticated", operation=operation)
            return False
        return True

    async def _storage_failed(
        self,
        operation: str,
        error: Exception,
        entity_id: Optional[UUID] = None,
    ) -> None:
        self._logger.error(
            "transaction_storage_failed",
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
            )

    async def load(self) -> list[Transaction]:
        """Fetch the user's transactions, newest first."""
        if not self._user_id:
            self._transactions = []
            return []

        try:
            self._transactions = await self._storage.list_transactions(self._user_id)
        except Exception as e:
            await self._storage_failed("list_transactions", e)
        return self.transactions

    def predict_category(self, description: str) -> Optional[Category]:
        """Suggested category, or None while the description is too short."""
        if len(description.strip()) < self._settings.min_description_length:
            return None

        suggestion = self._suggester.suggest_with_confidence(description)
        self._confidence[description] = suggestion.confidence
        return suggestion.category

    def get_prediction_confidence(self, description: str) -> Optional[float]:
        return self._confidence.get(description)

    async def add_transaction(
        self,
        amount: Decimal,
        description: str,
        category_id: str,
        type: TransactionType,
        date: Optional[datetime] = None,
        tags: Optional[list[str]] = None,
        currency: Optional[str] = None,
        original_amount: Optional[Decimal] = None,
    ) -> Optional[Transaction]:
        """
        Save a transaction.

        When entered in a foreign currency, `original_amount` is converted
        into the base currency and replaces `amount`.

        Raises:
            ValueError: unknown category
            ValidationError: invalid amount or fields
        """
        if not self._authenticated("add_transaction"):
            return None

        category = get_category_by_id(category_id)
        if category is None:
            raise ValueError(f"Unknown category: {category_id}")

        if (
            currency
            and original_amount is not None
            and currency.upper() != self._converter.base_currency
        ):
            amount = self._converter.convert_amount(Decimal(original_amount), currency)

        transaction = Transaction(
            amount=amount,
            description=description,
            category=category,
            date=date or datetime.now(),
            type=type,
            tags=tags or [],
            currency=currency,
            original_amount=original_amount,
        )

        try:
            stored = await self._storage.add_transaction(transaction, self._user_id)
        except Exception as e:
            await self._storage_failed("add_transaction", e, transaction.id)
            return None

        self._suggester.record(stored.description, stored.category.id)
        self._transactions.insert(0, stored)

        if self._audit_logger:
            await self._audit_logger.log_transaction_saved(
                transaction_id=stored.id,
                user_id=self._user_id,
                category_id=stored.category.id,
                amount=str(stored.amount),
            )
        return stored

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        if not self._authenticated("delete_transaction"):
            return False

        try:
            deleted = await self._storage.delete_transaction(transaction_id, self._user_id)
        except Exception as e:
            await self._storage_failed("delete_transaction", e, transaction_id)
            return False

        if deleted:
            self._transactions = [
                t for t in self._transactions if t.id != transaction_id
            ]
            if self._audit_logger:
                await self._audit_logger.log_transaction_deleted(
                    transaction_id, self._user_id
                )
        return deleted

    def filter_transactions(
        self,
        type: Optional[TransactionType] = None,
        category_id: Optional[str] = None,
        search_term: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[Transaction]:
        query = TransactionQuery(
            type=type,
            category_id=category_id,
            search_term=search_term,
            start_date=start_date,
            end_date=end_date,
        )
        return filter_transactions(self._transactions, query)


def create_app_components(
    user_id: Optional[str],
    use_storage: bool = True,
) -> tuple[BudgetFlow, TransactionFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create the session flows.

    Args:
        user_id: Authenticated user, or None for a signed-out session.
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for in-memory storage.

    Returns:
        (budget_flow, transaction_flow, sheets_client)
    """
    sheets_client = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            transaction_storage = GoogleSheetsTransactionStorage(sheets_client)
            budget_storage = GoogleSheetsBudgetStorage(sheets_client)
            alert_storage = GoogleSheetsAlertStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            use_storage = False

    if not use_storage:
        memory = InMemoryStorage()
        transaction_storage = budget_storage = alert_storage = memory
        audit_logger = AuditLogger()  # Local-only logging

    budget_flow = BudgetFlow(
        user_id,
        budget_storage=budget_storage,
        alert_storage=alert_storage,
        audit_logger=audit_logger,
    )
    transaction_flow = TransactionFlow(
        user_id,
        storage=transaction_storage,
        audit_logger=audit_logger,
    )

    return budget_flow, transaction_flow, sheets_client
