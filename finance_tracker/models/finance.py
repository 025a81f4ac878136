"""
Core Data Models for Finance Tracker

These models define the schemas for all data flowing through the core:
categories, transactions, budgets and the alerts raised against them.

Amounts are Decimal and always expressed in the base currency unless a
field says otherwise. Percentages are plain floats.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    EXPENSE = "expense"
    INCOME = "income"


class BudgetPeriod(str, Enum):
    """
    Budget period.

    Windows are calendar-aligned and anchored to the current wall-clock
    time, never to the budget's creation date.
    """
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ThresholdLevel(int, Enum):
    """Spend-to-budget percentages that trigger an alert."""
    WARNING = 80
    CRITICAL = 90
    EXCEEDED = 100


# =============================================================================
# REFERENCE DATA
# =============================================================================

class Category(BaseModel):
    """A spending or income category from the static catalog."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    icon: str
    color_tag: str = Field(
        ...,
        description="Display colour tag (e.g. bg-orange-500)"
    )


class TransactionHistoryEntry(BaseModel):
    """A user-confirmed description → category pair used for learning."""
    model_config = ConfigDict(frozen=True)

    description: str
    category_id: str


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense.

    Owned by the storage layer. The core only reads snapshots of these.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount in the base currency"
    )
    description: str = Field(..., max_length=500)
    category: Category
    date: datetime
    type: TransactionType
    tags: list[str] = Field(default_factory=list)

    # Multi-currency support
    currency: Optional[str] = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="Currency the transaction was entered in"
    )
    original_amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Amount in the original currency"
    )

    @field_validator('currency')
    @classmethod
    def uppercase_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(BaseModel):
    """
    A spending limit for one expense category over one period.

    One budget is expected per (category_id, period) pair per user.
    The amount may be zero when read back from storage; the alert
    engine treats such budgets as never exceeded.
    """

    id: UUID = Field(default_factory=uuid4)
    category_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)
    period: BudgetPeriod
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    user_id: Optional[str] = None

    @model_validator(mode='after')
    def validate_timestamps(self) -> 'Budget':
        if self.updated_at < self.created_at:
            raise ValueError("Budget updated_at cannot be before created_at")
        return self


class BudgetInput(BaseModel):
    """User input for creating or updating a budget."""

    category_id: str = Field(..., min_length=1)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Budget limit in the base currency (must be positive)"
    )
    period: BudgetPeriod


class BudgetAlert(BaseModel):
    """
    An alert raised when spending crosses a budget threshold.

    Created by the alert engine, persisted by storage, displayed
    until marked seen.
    """

    id: UUID = Field(default_factory=uuid4)
    budget_id: UUID
    message: str = Field(..., min_length=1, max_length=500)
    date: datetime = Field(default_factory=datetime.now)
    seen: bool = False
    category_id: str
    category_name: str
    budget_amount: Decimal
    spent_amount: Decimal
    percentage: float
    user_id: Optional[str] = None


# =============================================================================
# SUGGESTIONS AND PROGRESS
# =============================================================================

class SuggestionSource(str, Enum):
    """Which stage of the suggester produced the category."""
    SCORED = "scored"
    FALLBACK_RULE = "fallback_rule"
    DEFAULT = "default"


class CategorySuggestion(BaseModel):
    """The suggester's proposal for a description."""

    category: Category
    confidence: float = Field(ge=0.0, le=1.0)
    source: SuggestionSource
    score: float = Field(
        default=0.0,
        description="Winning accumulated score (0 for fallback results)"
    )
    reasoning: str


class BudgetStatus(str, Enum):
    """Progress band of a budget."""
    OK = "ok"
    WARNING = "warning"
    EXCEEDED = "exceeded"


class BudgetProgress(BaseModel):
    """Spend-to-date against a budget for its current window."""

    budget: Budget
    category: Optional[Category] = None
    period_start: datetime
    period_end: datetime
    total_spent: Decimal
    percentage: float
    remaining: Decimal
    status: BudgetStatus
