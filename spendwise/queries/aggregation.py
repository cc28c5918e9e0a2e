"""
Aggregation Engine

Category breakdown and monthly trend over one user's expenses.

Amounts are summed as Decimal, so totals are exact and
sum(group totals) == total_amount holds to the cent.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from spendwise.models.expense import (
    CategoryBreakdown,
    CategoryTotal,
    Expense,
    MonthlyTotal,
)
from spendwise.queries.executor import filter_by_date_range
from spendwise.services.storage import ExpenseStorageInterface


class AggregationExecutor:
    """
    Computes reports for a single user.
    """

    def __init__(self, storage: ExpenseStorageInterface):
        self._storage = storage

    async def category_breakdown(
        self,
        user_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> CategoryBreakdown:
        """
        Total and count per category, largest total first.

        The date range follows the listing rule: applied only when both
        bounds are given. Equal totals are ordered by category name.
        """
        expenses = await self._storage.find_all_by_user(user_id)
        expenses = filter_by_date_range(expenses, start_date, end_date)

        groups = self._group(expenses, key=lambda e: e.category)
        breakdown = [
            CategoryTotal(category=category, total=total, count=count)
            for category, (total, count) in groups.items()
        ]
        breakdown.sort(key=lambda g: (-g.total, g.category.value))

        return CategoryBreakdown(
            total_amount=sum((e.amount for e in expenses), Decimal("0")),
            breakdown=breakdown,
        )

    async def monthly_trend(self, user_id: int, year: int) -> list[MonthlyTotal]:
        """
        Total and count per calendar month of one year.

        Only months with at least one expense appear; there is no
        zero-filling of empty months.
        """
        expenses = await self._storage.find_all_by_user(user_id)
        in_year = [e for e in expenses if e.date.year == year]

        groups = self._group(in_year, key=lambda e: e.date.month)
        return [
            MonthlyTotal(month=month, total=total, count=count)
            for month, (total, count) in sorted(groups.items())
        ]

    @staticmethod
    def _group(expenses: list[Expense], key) -> dict:
        """Map of group key -> (total amount, count)."""
        totals: dict = defaultdict(lambda: Decimal("0"))
        counts: dict = defaultdict(int)
        for expense in expenses:
            k = key(expense)
            totals[k] += expense.amount
            counts[k] += 1
        return {k: (totals[k], counts[k]) for k in totals}

