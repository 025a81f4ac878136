"""
Tests for the session flows

Flows run against in-memory storage; no network calls.
"""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from finance_tracker.agents import CategorySuggester
from finance_tracker.config import SuggesterSettings
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.finance import BudgetPeriod, TransactionType
from finance_tracker.orchestrator import (
    BudgetFlow,
    TransactionFlow,
    create_app_components,
)
from finance_tracker.services.currency import FALLBACK_RATES, CurrencyConverter
from finance_tracker.services.storage import InMemoryStorage, StorageError

from tests.factories import FIXED_NOW, USER_ID, make_budget, make_transaction


class FailingAlertDeleteStorage(InMemoryStorage):
    async def delete_alerts_for_budget(self, budget_id, user_id):
        raise StorageError("alerts table unavailable")


class FailingTransactionStorage(InMemoryStorage):
    async def add_transaction(self, transaction, user_id):
        raise StorageError("write failed")


@pytest.fixture
def budget_flow(storage, audit_logger, clock):
    return BudgetFlow(
        USER_ID,
        budget_storage=storage,
        alert_storage=storage,
        audit_logger=audit_logger,
        clock=clock,
    )


@pytest.fixture
def transaction_flow(storage, audit_logger):
    return TransactionFlow(
        USER_ID,
        storage=storage,
        suggester=CategorySuggester(settings=SuggesterSettings()),
        converter=CurrencyConverter(rates=FALLBACK_RATES, base_currency="INR"),
        audit_logger=audit_logger,
    )


class TestBudgetFlow:
    """Tests for budget management."""

    @pytest.mark.asyncio
    async def test_create_budget(self, budget_flow, storage):
        budget = await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)

        assert budget is not None
        assert budget.user_id == USER_ID
        assert budget.amount == Decimal("1000")
        assert await storage.list_budgets(USER_ID) == [budget]

    @pytest.mark.asyncio
    async def test_create_stamps_with_flow_clock(self, budget_flow):
        budget = await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        assert budget.created_at == FIXED_NOW
        assert budget.updated_at == FIXED_NOW

    @pytest.mark.asyncio
    async def test_create_without_load_reuses_stored_budget(
        self, budget_flow, storage, audit_logger, clock
    ):
        """A fresh flow over the same storage updates instead of duplicating."""
        first = await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)

        fresh_flow = BudgetFlow(
            USER_ID,
            budget_storage=storage,
            alert_storage=storage,
            audit_logger=audit_logger,
            clock=clock,
        )
        second = await fresh_flow.create_budget("1", Decimal("1500"), BudgetPeriod.MONTHLY)

        assert second.id == first.id
        assert second.amount == Decimal("1500")
        assert [b.id for b in fresh_flow.budgets] == [first.id]
        assert len(await storage.list_budgets(USER_ID)) == 1

    @pytest.mark.asyncio
    async def test_create_is_idempotent_per_category_and_period(self, budget_flow, storage):
        first = await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        second = await budget_flow.create_budget("1", Decimal("2000"), BudgetPeriod.MONTHLY)

        assert second.id == first.id
        assert second.amount == Decimal("2000")
        assert len(budget_flow.budgets) == 1
        assert len(await storage.list_budgets(USER_ID)) == 1

    @pytest.mark.asyncio
    async def test_same_category_different_period(self, budget_flow):
        await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        await budget_flow.create_budget("1", Decimal("9000"), BudgetPeriod.YEARLY)
        assert len(budget_flow.budgets) == 2

    @pytest.mark.asyncio
    async def test_create_rejects_non_positive_amount(self, budget_flow, storage):
        with pytest.raises(ValidationError):
            await budget_flow.create_budget("1", Decimal("0"), BudgetPeriod.MONTHLY)
        assert await storage.list_budgets(USER_ID) == []

    @pytest.mark.asyncio
    async def test_create_rejects_income_category(self, budget_flow):
        with pytest.raises(ValueError):
            await budget_flow.create_budget("11", Decimal("100"), BudgetPeriod.MONTHLY)

    @pytest.mark.asyncio
    async def test_update_rejects_non_positive_amount(self, budget_flow):
        budget = await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        with pytest.raises(ValueError):
            await budget_flow.update_budget(budget.id, Decimal("-5"), BudgetPeriod.MONTHLY)

    @pytest.mark.asyncio
    async def test_update_missing_budget(self, budget_flow, audit_storage):
        result = await budget_flow.update_budget(uuid4(), Decimal("100"), BudgetPeriod.MONTHLY)

        assert result is None
        events = await audit_storage.get_recent_events()
        assert any(e.event_type == AuditEventType.STORAGE_ERROR for e in events)

    @pytest.mark.asyncio
    async def test_update_resets_threshold_memory(self, budget_flow):
        budget = await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        transactions = [make_transaction("800")]

        [alert] = await budget_flow.check_budget_alerts(transactions)
        await budget_flow.mark_alert_seen(alert.id)
        assert await budget_flow.check_budget_alerts(transactions) == []

        await budget_flow.update_budget(budget.id, Decimal("1000"), BudgetPeriod.MONTHLY)

        assert len(await budget_flow.check_budget_alerts(transactions)) == 1

    @pytest.mark.asyncio
    async def test_delete_cascades_to_alerts(self, budget_flow, storage):
        budget = await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        await budget_flow.check_budget_alerts([make_transaction("800")])
        assert len(budget_flow.alerts) == 1

        assert await budget_flow.delete_budget(budget.id) is True

        assert await storage.list_budgets(USER_ID) == []
        assert await storage.list_alerts(USER_ID) == []
        assert budget_flow.budgets == []
        assert budget_flow.alerts == []
        assert budget.id not in budget_flow.engine.memory

    @pytest.mark.asyncio
    async def test_delete_blocked_when_alerts_remain(self, audit_logger, clock):
        storage = FailingAlertDeleteStorage()
        flow = BudgetFlow(USER_ID, storage, storage, audit_logger=audit_logger, clock=clock)
        budget = await flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        await flow.check_budget_alerts([make_transaction("800")])

        assert await flow.delete_budget(budget.id) is False
        assert len(await storage.list_budgets(USER_ID)) == 1

    @pytest.mark.asyncio
    async def test_alerts_newest_first(self, budget_flow):
        await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        transactions = [make_transaction("800")]

        await budget_flow.check_budget_alerts(transactions)
        await budget_flow.check_budget_alerts(transactions + [make_transaction("150")])

        messages = [a.message for a in budget_flow.alerts]
        assert messages == [
            "You've used 90% of your Food & Dining budget",
            "You've used 80% of your Food & Dining budget",
        ]

    @pytest.mark.asyncio
    async def test_mark_alert_seen(self, budget_flow):
        await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        [alert] = await budget_flow.check_budget_alerts([make_transaction("800")])

        assert await budget_flow.mark_alert_seen(alert.id) is True
        assert budget_flow.unseen_alerts == []
        assert budget_flow.alerts[0].seen is True

    @pytest.mark.asyncio
    async def test_clear_all_alerts(self, budget_flow, storage):
        await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        await budget_flow.create_budget("2", Decimal("100"), BudgetPeriod.MONTHLY)
        await budget_flow.check_budget_alerts(
            [make_transaction("800"), make_transaction("100", category_id="2")]
        )

        assert await budget_flow.clear_all_alerts() == 2
        assert budget_flow.unseen_alerts == []
        assert await storage.list_alerts(USER_ID, unseen_only=True) == []

    @pytest.mark.asyncio
    async def test_load(self, budget_flow, storage):
        budget = await storage.insert_budget(make_budget("500"))
        await storage.insert_budget(make_budget("500", user_id="someone-else"))

        budgets, alerts = await budget_flow.load()

        assert [b.id for b in budgets] == [budget.id]
        assert alerts == []

    @pytest.mark.asyncio
    async def test_budget_progress(self, budget_flow):
        await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        [progress] = budget_flow.budget_progress([make_transaction("250")])

        assert progress.total_spent == Decimal("250")
        assert progress.remaining == Decimal("750")
        assert progress.percentage == 25.0

    @pytest.mark.asyncio
    async def test_no_user(self, storage, clock):
        flow = BudgetFlow(None, storage, storage, clock=clock)

        assert await flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY) is None
        assert await flow.delete_budget(uuid4()) is False
        assert await flow.clear_all_alerts() == 0
        assert await flow.check_budget_alerts([make_transaction("900")]) == []
        assert await flow.load() == ([], [])
        assert await storage.list_budgets(USER_ID) == []

    @pytest.mark.asyncio
    async def test_mutations_are_audited(self, budget_flow, audit_storage):
        budget = await budget_flow.create_budget("1", Decimal("1000"), BudgetPeriod.MONTHLY)
        await budget_flow.update_budget(budget.id, Decimal("1200"), BudgetPeriod.MONTHLY)
        await budget_flow.delete_budget(budget.id)

        types = {e.event_type for e in await audit_storage.get_recent_events()}
        assert {
            AuditEventType.BUDGET_CREATED,
            AuditEventType.BUDGET_UPDATED,
            AuditEventType.BUDGET_DELETED,
        } <= types


class TestTransactionFlow:
    """Tests for transaction management and prediction."""

    def test_predict_category(self, transaction_flow):
        category = transaction_flow.predict_category("Uber ride")

        assert category.id == "2"
        assert transaction_flow.get_prediction_confidence("Uber ride") == 1.0

    def test_predict_skips_short_descriptions(self, transaction_flow):
        assert transaction_flow.predict_category("  ab ") is None
        assert transaction_flow.get_prediction_confidence("  ab ") is None

    @pytest.mark.asyncio
    async def test_add_transaction(self, transaction_flow, storage):
        transaction = await transaction_flow.add_transaction(
            amount=Decimal("250"),
            description="Lunch with team",
            category_id="1",
            type=TransactionType.EXPENSE,
            date=datetime(2024, 6, 10),
            tags=["work"],
        )

        assert transaction.category.name == "Food & Dining"
        assert await storage.list_transactions(USER_ID) == [transaction]
        assert transaction_flow.transactions == [transaction]

    @pytest.mark.asyncio
    async def test_add_converts_foreign_currency(self, transaction_flow):
        transaction = await transaction_flow.add_transaction(
            amount=Decimal("12"),
            description="Hotel booking",
            category_id="9",
            type=TransactionType.EXPENSE,
            currency="usd",
            original_amount=Decimal("12"),
        )

        assert transaction.amount == Decimal("1000")
        assert transaction.currency == "USD"
        assert transaction.original_amount == Decimal("12")

    @pytest.mark.asyncio
    async def test_add_base_currency_not_converted(self, transaction_flow):
        transaction = await transaction_flow.add_transaction(
            amount=Decimal("500"),
            description="Groceries",
            category_id="1",
            type=TransactionType.EXPENSE,
            currency="INR",
            original_amount=Decimal("500"),
        )
        assert transaction.amount == Decimal("500")

    @pytest.mark.asyncio
    async def test_add_teaches_suggester(self, transaction_flow):
        assert transaction_flow.predict_category("Blue Bottle order").id == "10"

        await transaction_flow.add_transaction(
            amount=Decimal("450"),
            description="Blue Bottle order",
            category_id="5",
            type=TransactionType.EXPENSE,
        )

        assert transaction_flow.predict_category("Blue Bottle order").id == "5"

    @pytest.mark.asyncio
    async def test_add_rejects_unknown_category(self, transaction_flow):
        with pytest.raises(ValueError):
            await transaction_flow.add_transaction(
                amount=Decimal("10"),
                description="Mystery",
                category_id="42",
                type=TransactionType.EXPENSE,
            )

    @pytest.mark.asyncio
    async def test_add_failure_does_not_teach(self, audit_logger):
        flow = TransactionFlow(
            USER_ID,
            storage=FailingTransactionStorage(),
            suggester=CategorySuggester(settings=SuggesterSettings()),
            converter=CurrencyConverter(base_currency="INR"),
            audit_logger=audit_logger,
        )

        result = await flow.add_transaction(
            amount=Decimal("450"),
            description="Blue Bottle order",
            category_id="5",
            type=TransactionType.EXPENSE,
        )

        assert result is None
        assert len(flow.suggester.history) == 0
        assert flow.transactions == []

    @pytest.mark.asyncio
    async def test_delete_transaction(self, transaction_flow, storage):
        transaction = await transaction_flow.add_transaction(
            amount=Decimal("250"),
            description="Cinema",
            category_id="4",
            type=TransactionType.EXPENSE,
        )

        assert await transaction_flow.delete_transaction(transaction.id) is True
        assert await storage.list_transactions(USER_ID) == []
        assert transaction_flow.transactions == []
        assert await transaction_flow.delete_transaction(transaction.id) is False

    @pytest.mark.asyncio
    async def test_load_newest_first(self, transaction_flow, storage):
        older = make_transaction("10", date=datetime(2024, 6, 1))
        newer = make_transaction("20", date=datetime(2024, 6, 9))
        await storage.add_transaction(older, USER_ID)
        await storage.add_transaction(newer, USER_ID)

        loaded = await transaction_flow.load()

        assert [t.id for t in loaded] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_filter_transactions(self, transaction_flow, storage):
        for transaction in (
            make_transaction("10", description="Team lunch", tags=["WORK"],
                             date=datetime(2024, 6, 1)),
            make_transaction("20", description="Taxi home", category_id="2",
                             date=datetime(2024, 6, 5)),
            make_transaction("30", description="Salary", category_id="11",
                             type=TransactionType.INCOME, date=datetime(2024, 6, 30)),
        ):
            await storage.add_transaction(transaction, USER_ID)
        await transaction_flow.load()

        assert len(transaction_flow.filter_transactions(search_term="work")) == 1
        assert len(transaction_flow.filter_transactions(search_term="TAXI")) == 1
        assert len(transaction_flow.filter_transactions(type=TransactionType.INCOME)) == 1
        assert len(transaction_flow.filter_transactions(category_id="2")) == 1
        in_range = transaction_flow.filter_transactions(
            start_date=datetime(2024, 6, 1),
            end_date=datetime(2024, 6, 5),
        )
        assert len(in_range) == 2

    @pytest.mark.asyncio
    async def test_no_user(self, storage):
        flow = TransactionFlow(None, storage=storage)

        result = await flow.add_transaction(
            amount=Decimal("10"),
            description="Coffee",
            category_id="1",
            type=TransactionType.EXPENSE,
        )

        assert result is None
        assert await flow.delete_transaction(uuid4()) is False
        assert await flow.load() == []


class TestAppComponents:
    """Tests for the component factory."""

    def test_in_memory_components(self):
        budget_flow, transaction_flow, client = create_app_components(
            USER_ID, use_storage=False
        )

        assert client is None
        assert isinstance(budget_flow, BudgetFlow)
        assert isinstance(transaction_flow, TransactionFlow)

    def test_falls_back_without_sheets_config(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)

        budget_flow, _, client = create_app_components(USER_ID)

        assert client is None
        assert isinstance(budget_flow, BudgetFlow)
