"""
Transaction and Budget Queries

Deterministic read-side helpers over a transaction snapshot:
- filtering transactions the way the transaction list does
- spend-to-date progress for every budget

Nothing here touches storage. Callers pass the snapshot in.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field, model_validator

from finance_tracker.categories import get_expense_category
from finance_tracker.models.finance import (
    Budget,
    BudgetProgress,
    BudgetStatus,
    Transaction,
    TransactionType,
)
from finance_tracker.queries.periods import (
    align_timezone,
    budget_percentage,
    period_window,
    spent_in_period,
)


WARNING_PERCENTAGE = 80.0
EXCEEDED_PERCENTAGE = 100.0


class TransactionQuery(BaseModel):
    """
    Filters for a transaction snapshot.

    Every filter is optional; an empty query matches everything.
    """

    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    search_term: Optional[str] = Field(
        default=None,
        description="Case-insensitive match against description or any tag"
    )
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_range(self) -> 'TransactionQuery':
        if self.start_date and self.end_date:
            if align_timezone(self.end_date, self.start_date) < self.start_date:
                raise ValueError("End date cannot be before start date")
        return self

    def matches(self, transaction: Transaction) -> bool:
        if self.type and transaction.type != self.type:
            return False

        if self.category_id and transaction.category.id != self.category_id:
            return False

        if self.search_term:
            term = self.search_term.lower()
            in_description = term in transaction.description.lower()
            in_tags = any(term in tag.lower() for tag in transaction.tags)
            if not in_description and not in_tags:
                return False

        if self.start_date:
            if align_timezone(transaction.date, self.start_date) < self.start_date:
                return False
        if self.end_date:
            if align_timezone(transaction.date, self.end_date) > self.end_date:
                return False

        return True


def filter_transactions(
    transactions: Iterable[Transaction],
    query: Optional[TransactionQuery] = None,
) -> list[Transaction]:
    """Transactions matching the query, in their original order."""
    if query is None:
        return list(transactions)
    return [t for t in transactions if query.matches(t)]


def _status_for(percentage: float) -> BudgetStatus:
    if percentage >= EXCEEDED_PERCENTAGE:
        return BudgetStatus.EXCEEDED
    if percentage >= WARNING_PERCENTAGE:
        return BudgetStatus.WARNING
    return BudgetStatus.OK


def compute_budget_progress(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> list[BudgetProgress]:
    """Progress for every budget, in the order given."""
    now = now or datetime.now()
    snapshot = list(transactions)

    progress = []
    for budget in budgets:
        start, end = period_window(budget.period, now)
        total_spent = spent_in_period(budget, snapshot, now)
        percentage = budget_percentage(total_spent, budget.amount)

        progress.append(
            BudgetProgress(
                budget=budget,
                category=get_expense_category(budget.category_id),
                period_start=start,
                period_end=end,
                total_spent=total_spent,
                percentage=percentage,
                remaining=budget.amount - total_spent,
                status=_status_for(percentage),
            )
        )

    return progress


def total_by_type(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
) -> Decimal:
    """Sum of amounts for one transaction type."""
    return sum(
        (t.amount for t in transactions if t.type == transaction_type),
        Decimal("0"),
    )
