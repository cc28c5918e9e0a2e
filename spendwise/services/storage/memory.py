"""
In-Memory Storage Implementation

DESIGN DECISION: The in-memory stores are the default backend because
durability is out of scope. They still behave like a real backend:
1. One asyncio.Lock per store serializes every access to the collection
2. Identifiers come from a per-store counter and are never reused
3. Callers get copies; mutating a returned record changes nothing stored

TRADEOFFS:
- Data lives as long as the process
- Filtering is a linear scan per user (fine for personal use)
"""

import asyncio
import itertools
from collections import deque
from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from spendwise.models.audit import AuditEvent
from spendwise.models.base import utcnow
from spendwise.models.expense import Expense, ExpenseCategory
from spendwise.models.user import User
from spendwise.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    UserStorageInterface,
)


UPDATABLE_EXPENSE_FIELDS = frozenset({"amount", "category", "date", "description"})


class InMemoryUserStorage(UserStorageInterface):
    """User store backed by a dict keyed by id."""

    def __init__(self):
        self._users: dict[int, User] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
    ) -> User:
        async with self._lock:
            for existing in self._users.values():
                if existing.username == username or existing.email == email:
                    raise DuplicateError("User already exists")

            now = utcnow()
            user = User(
                id=next(self._ids),
                username=username,
                email=email,
                password_hash=password_hash,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            return user.model_copy()

    async def get_by_id(self, user_id: int) -> Optional[User]:
        async with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        async with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user.model_copy()
            return None

    async def get_by_username(self, username: str) -> Optional[User]:
        async with self._lock:
            for user in self._users.values():
                if user.username == username:
                    return user.model_copy()
            return None


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """
    Expense store backed by an insertion-ordered dict keyed by id.
    """

    def __init__(self):
        self._expenses: dict[int, Expense] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def create_expense(
        self,
        user_id: int,
        amount: Decimal,
        category: ExpenseCategory,
        expense_date: Optional[date],
        description: str,
    ) -> Expense:
        now = utcnow()
        async with self._lock:
            expense = Expense(
                id=next(self._ids),
                user_id=user_id,
                amount=amount,
                category=category,
                date=expense_date or date.today(),
                description=description,
                created_at=now,
                updated_at=now,
            )
            self._expenses[expense.id] = expense
            return expense.model_copy()

    async def find_all_by_user(self, user_id: int) -> list[Expense]:
        async with self._lock:
            return [
                expense.model_copy()
                for expense in self._expenses.values()
                if expense.user_id == user_id
            ]

    async def find_owned(self, expense_id: int, user_id: int) -> Optional[Expense]:
        async with self._lock:
            return self._find_owned_locked(expense_id, user_id)

    async def update_expense(
        self,
        expense_id: int,
        user_id: int,
        changes: dict[str, Any],
    ) -> Expense:
        unknown = set(changes) - UPDATABLE_EXPENSE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        async with self._lock:
            current = self._expenses.get(expense_id)
            if current is None or current.user_id != user_id:
                raise NotFoundError(f"Expense {expense_id} not found")

            data = current.model_dump()
            data.update(changes)
            data["updated_at"] = utcnow()
            updated = Expense.model_validate(data)

            self._expenses[expense_id] = updated
            return updated.model_copy()

    async def delete_expense(self, expense_id: int, user_id: int) -> bool:
        async with self._lock:
            if self._find_owned_locked(expense_id, user_id) is None:
                return False
            del self._expenses[expense_id]
            return True

    def _find_owned_locked(self, expense_id: int, user_id: int) -> Optional[Expense]:
        """Caller must hold the lock."""
        expense = self._expenses.get(expense_id)
        if expense is None or expense.user_id != user_id:
            return None
        return expense.model_copy()


class InMemoryAuditStorage(AuditStorageInterface):
    """
    Append-only audit log holding the most recent events.

    Once `max_events` is reached the oldest event is dropped for each new one.
    """

    def __init__(self, max_events: int = 1000):
        self._events: deque[AuditEvent] = deque(maxlen=max_events)
        self._lock = asyncio.Lock()

    async def append_event(self, event: AuditEvent) -> bool:
        async with self._lock:
            self._events.append(event)
            return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        async with self._lock:
            return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        async with self._lock:
            if limit <= 0:
                return []
            return list(reversed(list(self._events)[-limit:]))
