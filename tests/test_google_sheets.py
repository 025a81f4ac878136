"""
Tests for Google Sheets storage

A fake worksheet stands in for gspread; no network calls.
"""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.finance import BudgetAlert, BudgetPeriod
from finance_tracker.services.storage import (
    GoogleSheetsAlertStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsTransactionStorage,
    IntegrityError,
    NotFoundError,
)
from finance_tracker.services.storage.google_sheets import (
    ALERT_COLUMNS,
    AUDIT_COLUMNS,
    BUDGET_COLUMNS,
    TRANSACTION_COLUMNS,
)

from tests.factories import USER_ID, make_budget, make_transaction


class FakeWorksheet:
    """Just enough of gspread.Worksheet: rows of strings, 1-indexed."""

    def __init__(self, columns):
        self.rows = [list(columns)]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def update_cell(self, row, col, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)
        self.budgets = FakeWorksheet(BUDGET_COLUMNS)
        self.alerts = FakeWorksheet(ALERT_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_transactions_sheet(self):
        return self.transactions

    def get_budgets_sheet(self):
        return self.budgets

    def get_alerts_sheet(self):
        return self.alerts

    def get_audit_sheet(self):
        return self.audit


def make_alert(budget_id, percentage=80.0, seen=False, user_id=USER_ID):
    return BudgetAlert(
        budget_id=budget_id,
        message="You've used 80% of your Food & Dining budget",
        date=datetime(2024, 6, 15, 12),
        seen=seen,
        category_id="1",
        category_name="Food & Dining",
        budget_amount=Decimal("1000"),
        spent_amount=Decimal("800"),
        percentage=percentage,
        user_id=user_id,
    )


@pytest.fixture
def client():
    return FakeSheetsClient()


class TestTransactionSheet:
    """Tests for the transactions worksheet."""

    @pytest.mark.asyncio
    async def test_add_and_list(self, client):
        storage = GoogleSheetsTransactionStorage(client)
        older = make_transaction("10.50", date=datetime(2024, 6, 1), tags=["a", "b"])
        newer = make_transaction("20", date=datetime(2024, 6, 9))
        await storage.add_transaction(older, USER_ID)
        await storage.add_transaction(newer, USER_ID)
        await storage.add_transaction(make_transaction("99"), "someone-else")

        listed = await storage.list_transactions(USER_ID)

        assert [t.id for t in listed] == [newer.id, older.id]
        assert listed[1].amount == Decimal("10.50")
        assert listed[1].tags == ["a", "b"]
        assert listed[1].category.name == "Food & Dining"

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self, client):
        storage = GoogleSheetsTransactionStorage(client)
        client.transactions.rows.append([str(uuid4()), USER_ID, "not-a-number"])
        await storage.add_transaction(make_transaction("5"), USER_ID)

        assert len(await storage.list_transactions(USER_ID)) == 1

    @pytest.mark.asyncio
    async def test_delete_only_own(self, client):
        storage = GoogleSheetsTransactionStorage(client)
        transaction = make_transaction("5")
        await storage.add_transaction(transaction, USER_ID)

        assert await storage.delete_transaction(transaction.id, "someone-else") is False
        assert await storage.delete_transaction(transaction.id, USER_ID) is True
        assert await storage.list_transactions(USER_ID) == []


class TestBudgetSheet:
    """Tests for the budgets worksheet."""

    @pytest.mark.asyncio
    async def test_insert_and_get(self, client):
        storage = GoogleSheetsBudgetStorage(client)
        budget = make_budget("1000")

        await storage.insert_budget(budget)

        assert await storage.get_budget(budget.id, USER_ID) == budget
        assert await storage.get_budget(budget.id, "someone-else") is None

    @pytest.mark.asyncio
    async def test_update(self, client):
        storage = GoogleSheetsBudgetStorage(client)
        budget = make_budget("1000")
        await storage.insert_budget(budget)

        updated = await storage.update_budget(
            budget.id, USER_ID, Decimal("1500"), BudgetPeriod.YEARLY
        )

        assert updated.amount == Decimal("1500")
        reloaded = await storage.get_budget(budget.id, USER_ID)
        assert reloaded.period == BudgetPeriod.YEARLY
        assert reloaded.updated_at >= reloaded.created_at

    @pytest.mark.asyncio
    async def test_update_missing(self, client):
        storage = GoogleSheetsBudgetStorage(client)
        with pytest.raises(NotFoundError):
            await storage.update_budget(uuid4(), USER_ID, Decimal("1"), BudgetPeriod.MONTHLY)

    @pytest.mark.asyncio
    async def test_delete_blocked_by_alerts(self, client):
        budgets = GoogleSheetsBudgetStorage(client)
        alerts = GoogleSheetsAlertStorage(client)
        budget = make_budget("1000")
        await budgets.insert_budget(budget)
        await alerts.insert_alert(make_alert(budget.id))

        with pytest.raises(IntegrityError):
            await budgets.delete_budget(budget.id, USER_ID)

        assert await alerts.delete_alerts_for_budget(budget.id, USER_ID) == 1
        assert await budgets.delete_budget(budget.id, USER_ID) is True
        assert await budgets.list_budgets(USER_ID) == []


class TestAlertSheet:
    """Tests for the budget alerts worksheet."""

    @pytest.mark.asyncio
    async def test_list_filters(self, client):
        storage = GoogleSheetsAlertStorage(client)
        budget_id = uuid4()
        unseen = await storage.insert_alert(make_alert(budget_id))
        await storage.insert_alert(make_alert(budget_id, percentage=90.0, seen=True))
        await storage.insert_alert(make_alert(uuid4()))
        await storage.insert_alert(make_alert(budget_id, user_id="someone-else"))

        listed = await storage.list_alerts(USER_ID, budget_id=budget_id, unseen_only=True)

        assert [a.id for a in listed] == [unseen.id]
        assert listed[0].percentage == 80.0
        assert len(await storage.list_alerts(USER_ID)) == 3

    @pytest.mark.asyncio
    async def test_mark_seen(self, client):
        storage = GoogleSheetsAlertStorage(client)
        alert = await storage.insert_alert(make_alert(uuid4()))

        assert await storage.mark_seen(alert.id, "someone-else") is False
        assert await storage.mark_seen(alert.id, USER_ID) is True
        assert await storage.list_alerts(USER_ID, unseen_only=True) == []

    @pytest.mark.asyncio
    async def test_mark_all_seen(self, client):
        storage = GoogleSheetsAlertStorage(client)
        await storage.insert_alert(make_alert(uuid4()))
        await storage.insert_alert(make_alert(uuid4()))
        await storage.insert_alert(make_alert(uuid4(), seen=True))
        await storage.insert_alert(make_alert(uuid4(), user_id="someone-else"))

        assert await storage.mark_all_seen(USER_ID) == 2
        assert len(await storage.list_alerts("someone-else", unseen_only=True)) == 1

    @pytest.mark.asyncio
    async def test_delete_for_budget(self, client):
        storage = GoogleSheetsAlertStorage(client)
        budget_id = uuid4()
        keep = await storage.insert_alert(make_alert(uuid4()))
        await storage.insert_alert(make_alert(budget_id))
        await storage.insert_alert(make_alert(budget_id, percentage=90.0))

        assert await storage.delete_alerts_for_budget(budget_id, USER_ID) == 2
        assert [a.id for a in await storage.list_alerts(USER_ID)] == [keep.id]


class TestAuditSheet:
    """Tests for the audit log worksheet."""

    @pytest.mark.asyncio
    async def test_append_and_read(self, client):
        storage = GoogleSheetsAuditStorage(client)
        event = AuditEventBuilder.alert_raised(
            alert_id=uuid4(),
            budget_id=uuid4(),
            user_id=USER_ID,
            threshold=90,
            percentage=91.5,
        )

        assert await storage.append_event(event) is True

        [stored] = await storage.get_recent_events()
        assert stored.event_id == event.event_id
        assert stored.details["threshold"] == 90
        assert stored.user_id == USER_ID
