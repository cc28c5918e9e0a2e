"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Ship in-memory storage today and swap in a real database later
2. Keep the query and aggregation engines ignorant of where data lives
3. Use throwaway stores in tests

Every implementation owns its collection exclusively, assigns
monotonically increasing identifiers that are never reused, and
serializes mutations against reads of the same collection.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from spendwise.models.audit import AuditEvent
from spendwise.models.expense import Expense, ExpenseCategory
from spendwise.models.user import User


class UserStorageInterface(ABC):
    """
    Abstract interface for user storage.

    Users are never deleted.
    """

    @abstractmethod
    async def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
    ) -> User:
        """
        Insert a new user.

        The uniqueness check and the insert are one atomic step.

        Args:
            username: Already trimmed username
            email: Already trimmed and lowercased email
            password_hash: One-way hash of the password

        Returns:
            The stored user with its assigned id

        Raises:
            DuplicateError: If the username or email is taken
        """
        pass

    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Look up by normalized (trimmed, lowercased) email."""
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[User]:
        """Look up by trimmed username (exact match)."""
        pass


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage.

    Every read and write is scoped to an owner. No method ever returns
    an expense that belongs to a different user than the one asked about.
    """

    @abstractmethod
    async def create_expense(
        self,
        user_id: int,
        amount: Decimal,
        category: ExpenseCategory,
        expense_date: Optional[date],
        description: str,
    ) -> Expense:
        """
        Record a new expense.

        Args:
            user_id: Owner of the expense
            amount: Non-negative amount
            category: One of the fixed categories
            expense_date: Calendar date; today when None
            description: Free text, stored trimmed

        Returns:
            The stored expense with its assigned id
        """
        pass

    @abstractmethod
    async def find_all_by_user(self, user_id: int) -> list[Expense]:
        """
        All expenses of one user.

        No ordering guarantee; ordering is the query engine's job.
        """
        pass

    @abstractmethod
    async def find_owned(self, expense_id: int, user_id: int) -> Optional[Expense]:
        """
        The expense with this id, if and only if it belongs to user_id.
        """
        pass

    @abstractmethod
    async def update_expense(
        self,
        expense_id: int,
        user_id: int,
        changes: dict[str, Any],
    ) -> Expense:
        """
        Replace only the supplied fields of an owned expense.

        Args:
            expense_id: Expense to update
            user_id: Must own the expense
            changes: Subset of amount, category, date, description

        Returns:
            The updated expense

        Raises:
            NotFoundError: If the expense does not exist or is not owned
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: int, user_id: int) -> bool:
        """
        Delete an owned expense.

        Returns:
            True if a record was removed, False if none was owned
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one request).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage (or not owned by the caller)."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
