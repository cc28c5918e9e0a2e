"""
Expense Data Models for SpendWise

These models define the strict schemas for expenses and for the results
of the query and aggregation engines. They are designed to:
1. Enforce the expense invariants at runtime (amount >= 0, known category)
2. Provide clear validation error messages at the HTTP boundary
3. Be serializable for the API and for logging

DESIGN DECISION: Timestamps (created_at/updated_at) are audit data.
The calendar `date` of an expense is user data and is what every filter,
sort and report works on.
"""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from spendwise.models.base import Money, Total, WireModel, utcnow


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    DESIGN DECISION: Using explicit categories rather than free text ensures
    consistent grouping in the category breakdown.
    """
    FOOD = "Food"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    BILLS = "Bills"
    SHOPPING = "Shopping"
    HEALTHCARE = "Healthcare"
    EDUCATION = "Education"
    OTHER = "Other"


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class Expense(WireModel):
    """
    A stored expense.

    Owned by exactly one user. Only the owner may read, update or delete it.
    """

    id: int = Field(
        ...,
        ge=1,
        description="Store-assigned identifier, never reused"
    )
    user_id: int = Field(
        ...,
        ge=1,
        description="Owner of this expense"
    )
    amount: Money
    category: ExpenseCategory
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="What the money was spent on"
    )
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)
    date: dt.date = Field(
        ...,
        description="Calendar date of the expense"
    )


class ExpenseCreate(WireModel):
    """Fields a user supplies when recording an expense."""

    amount: Money
    category: ExpenseCategory
    description: str = Field(..., min_length=1, max_length=500)
    date: Optional[dt.date] = Field(
        default=None,
        description="Defaults to today when omitted"
    )


class ExpenseUpdate(WireModel):
    """
    Partial update of an expense.

    Only the fields the caller actually sent are replaced.
    """

    amount: Optional[Money] = None
    category: Optional[ExpenseCategory] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    date: Optional[dt.date] = None

    @model_validator(mode='after')
    def reject_explicit_nulls(self) -> 'ExpenseUpdate':
        """A field that is sent must carry a value."""
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        """The supplied fields, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


# =============================================================================
# QUERY MODELS
# =============================================================================

class ExpenseFilter(WireModel):
    """
    Filters and paging for listing expenses.

    page and limit are deliberately unconstrained here: the query engine
    clamps them so that no input can crash a listing.
    """

    category: Optional[ExpenseCategory] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    page: int = 1
    limit: int = 10


class ExpensePage(WireModel):
    """One page of a user's filtered, sorted expenses."""

    items: list[Expense] = Field(default_factory=list)
    total_pages: int = Field(ge=0)
    current_page: int
    total_count: int = Field(ge=0)


# =============================================================================
# AGGREGATION MODELS
# =============================================================================

class CategoryTotal(WireModel):
    """Total spent and number of expenses in one category."""

    category: ExpenseCategory
    total: Total
    count: int = Field(ge=1)


class CategoryBreakdown(WireModel):
    """Spending grouped by category, largest total first."""

    total_amount: Total
    breakdown: list[CategoryTotal] = Field(default_factory=list)

    @property
    def expense_count(self) -> int:
        """Number of expenses that went into the breakdown."""
        return sum(group.count for group in self.breakdown)


class MonthlyTotal(WireModel):
    """Total spent and number of expenses in one calendar month."""

    month: int = Field(ge=1, le=12)
    total: Total
    count: int = Field(ge=1)
