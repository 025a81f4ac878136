"""Category suggestion package."""

from finance_tracker.agents.category_suggester import (
    CategorySuggester,
    TransactionHistory,
    calculate_similarity,
)

__all__ = [
    "CategorySuggester",
    "TransactionHistory",
    "calculate_similarity",
]
