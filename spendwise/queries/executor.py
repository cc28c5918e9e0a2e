"""
Query Execution Engine

DESIGN DECISION: Query execution is DETERMINISTIC.
Given the same stored expenses and the same filter, a listing always
returns the same items in the same order on the same page.

The engine works only on records the storage returns for one owner.
It never sees another user's expenses, so it cannot leak them.

Listing pipeline:
1. All expenses of the user
2. Category filter (exact match)
3. Date range filter, applied only when BOTH bounds are given
4. Sort by date, newest first; same-date records by id (oldest first)
5. Page arithmetic: total_pages = ceil(total_count / limit)
6. Slice the requested page; pages past the end are empty, not errors
"""

import math
from datetime import date
from typing import Iterable, Optional

from spendwise.config import get_settings
from spendwise.models.expense import Expense, ExpenseFilter, ExpensePage
from spendwise.services.storage import ExpenseStorageInterface


def filter_by_date_range(
    expenses: Iterable[Expense],
    start_date: Optional[date],
    end_date: Optional[date],
) -> list[Expense]:
    """
    Keep expenses dated within [start_date, end_date], inclusive.

    NOTE: With only one bound the range is not applied at all and every
    expense is kept. Listing and stats have always behaved this way and
    clients depend on it.
    """
    expenses = list(expenses)
    if start_date is None or end_date is None:
        return expenses
    return [e for e in expenses if start_date <= e.date <= end_date]


def sort_newest_first(expenses: Iterable[Expense]) -> list[Expense]:
    """Date descending; ties broken by id ascending."""
    return sorted(expenses, key=lambda e: (-e.date.toordinal(), e.id))


class QueryExecutor:
    """
    Lists a user's expenses with filtering, sorting and pagination.

    GUARANTEES:
    - Only returns records owned by the requested user
    - Concatenating pages 1..total_pages yields every match exactly once
    - Never fails on odd paging input (limit is clamped, bad pages are empty)
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        max_page_size: Optional[int] = None,
    ):
        self._storage = storage
        self._max_page_size = max_page_size or get_settings().app.max_page_size

    async def list_expenses(self, user_id: int, query: ExpenseFilter) -> ExpensePage:
        """Execute a listing for one user."""
        expenses = await self._storage.find_all_by_user(user_id)

        if query.category is not None:
            expenses = [e for e in expenses if e.category == query.category]

        expenses = filter_by_date_range(expenses, query.start_date, query.end_date)
        expenses = sort_newest_first(expenses)

        limit = self.clamp_limit(query.limit)
        total_count = len(expenses)
        total_pages = math.ceil(total_count / limit)

        return ExpensePage(
            items=self._page_slice(expenses, query.page, limit),
            total_pages=total_pages,
            current_page=query.page,
            total_count=total_count,
        )

    def clamp_limit(self, limit: int) -> int:
        """Page size within [1, max_page_size]."""
        return max(1, min(limit, self._max_page_size))

    @staticmethod
    def _page_slice(expenses: list[Expense], page: int, limit: int) -> list[Expense]:
        if page < 1:
            # Python slicing would wrap around on negative offsets
            return []
        start = (page - 1) * limit
        return expenses[start:start + limit]
