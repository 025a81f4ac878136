"""Query package."""

from finance_tracker.queries.executor import (
    TransactionQuery,
    compute_budget_progress,
    filter_transactions,
    total_by_type,
)
from finance_tracker.queries.periods import (
    align_timezone,
    budget_percentage,
    period_window,
    spent_in_period,
    within_window,
)

__all__ = [
    "TransactionQuery",
    "align_timezone",
    "budget_percentage",
    "compute_budget_progress",
    "filter_transactions",
    "period_window",
    "spent_in_period",
    "total_by_type",
    "within_window",
]
