"""Static category catalogs package."""

from finance_tracker.categories.catalog import (
    CATEGORY_KEYWORDS,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    get_all_categories,
    get_category_by_id,
    get_expense_category,
)

__all__ = [
    "CATEGORY_KEYWORDS",
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "get_all_categories",
    "get_category_by_id",
    "get_expense_category",
]
