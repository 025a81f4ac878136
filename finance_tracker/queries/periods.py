"""
Budget Period Windows

A budget's active window is the calendar month or calendar year that
contains "now". Both bounds are inclusive: the window ends one
microsecond before the next period starts.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from finance_tracker.models.finance import (
    Budget,
    BudgetPeriod,
    Transaction,
    TransactionType,
)


_ONE_MICROSECOND = timedelta(microseconds=1)


def period_window(period: BudgetPeriod, now: datetime) -> tuple[datetime, datetime]:
    """Inclusive (start, end) of the period containing `now`, in now's timezone."""
    if period == BudgetPeriod.MONTHLY:
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if start.month == 12:
            next_start = start.replace(year=start.year + 1, month=1)
        else:
            next_start = start.replace(month=start.month + 1)
    else:
        start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        next_start = start.replace(year=start.year + 1)

    return start, next_start - _ONE_MICROSECOND


def align_timezone(moment: datetime, reference: datetime) -> datetime:
    """
    Align `moment` with the awareness of `reference`.

    A naive moment is assumed to be in the reference's timezone; an aware
    moment compared with a naive reference is converted to local time.
    """
    if (moment.tzinfo is None) == (reference.tzinfo is None):
        return moment
    if moment.tzinfo is None:
        return moment.replace(tzinfo=reference.tzinfo)
    return moment.astimezone().replace(tzinfo=None)


def within_window(moment: datetime, start: datetime, end: datetime) -> bool:
    moment = align_timezone(moment, start)
    return start <= moment <= end


def spent_in_period(
    budget: Budget,
    transactions: Iterable[Transaction],
    now: datetime,
) -> Decimal:
    """Sum of expenses in the budget's category within its current window."""
    start, end = period_window(budget.period, now)
    return sum(
        (
            t.amount
            for t in transactions
            if t.type == TransactionType.EXPENSE
            and t.category.id == budget.category_id
            and within_window(t.date, start, end)
        ),
        Decimal("0"),
    )


def budget_percentage(spent: Decimal, amount: Decimal) -> float:
    """
    Spend as a percentage of the budget amount.

    A zero (or negative) budget amount yields 0.0 rather than an
    undefined value, so such a budget never reaches a threshold.
    """
    if amount <= 0:
        return 0.0
    return float(spent / amount * 100)
