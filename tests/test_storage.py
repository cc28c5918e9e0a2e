"""
Tests for the in-memory stores.

Covers ownership scoping, identifier assignment and copy semantics.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from spendwise.models.audit import AuditEventBuilder
from spendwise.models.expense import ExpenseCategory
from spendwise.services.storage import DuplicateError, InMemoryAuditStorage, NotFoundError


def add_expense(storage, user_id, amount="10", category=ExpenseCategory.FOOD,
                expense_date=date(2024, 1, 5), description="Lunch"):
    return asyncio.run(storage.create_expense(
        user_id=user_id,
        amount=Decimal(amount),
        category=category,
        expense_date=expense_date,
        description=description,
    ))


class TestUserStorage:
    """Tests for InMemoryUserStorage."""

    def test_create_and_lookup(self, user_storage):
        user = asyncio.run(user_storage.create_user("alice", "alice@example.com", "hash"))
        assert user.id == 1
        assert asyncio.run(user_storage.get_by_id(1)).username == "alice"
        assert asyncio.run(user_storage.get_by_email("alice@example.com")).id == 1
        assert asyncio.run(user_storage.get_by_username("alice")).id == 1

    def test_missing_user_is_none(self, user_storage):
        assert asyncio.run(user_storage.get_by_id(99)) is None
        assert asyncio.run(user_storage.get_by_email("nobody@example.com")) is None

    def test_duplicate_email_rejected(self, user_storage):
        asyncio.run(user_storage.create_user("alice", "alice@example.com", "hash"))
        with pytest.raises(DuplicateError):
            asyncio.run(user_storage.create_user("other", "alice@example.com", "hash"))

    def test_duplicate_username_rejected(self, user_storage):
        asyncio.run(user_storage.create_user("alice", "alice@example.com", "hash"))
        with pytest.raises(DuplicateError):
            asyncio.run(user_storage.create_user("alice", "other@example.com", "hash"))

    def test_returned_user_is_a_copy(self, user_storage):
        user = asyncio.run(user_storage.create_user("alice", "alice@example.com", "hash"))
        user.username = "mallory"
        assert asyncio.run(user_storage.get_by_id(user.id)).username == "alice"


class TestExpenseStorage:
    """Tests for InMemoryExpenseStorage."""

    def test_create_assigns_increasing_ids(self, expense_storage):
        first = add_expense(expense_storage, user_id=1)
        second = add_expense(expense_storage, user_id=2)
        assert (first.id, second.id) == (1, 2)
        assert first.created_at == first.updated_at

    def test_create_defaults_date_to_today(self, expense_storage):
        expense = add_expense(expense_storage, user_id=1, expense_date=None)
        assert expense.date == date.today()

    def test_find_all_by_user_is_scoped(self, expense_storage):
        add_expense(expense_storage, user_id=1)
        add_expense(expense_storage, user_id=2)
        add_expense(expense_storage, user_id=1)
        mine = asyncio.run(expense_storage.find_all_by_user(1))
        assert [e.id for e in mine] == [1, 3]
        assert all(e.user_id == 1 for e in mine)

    def test_find_owned_never_crosses_users(self, expense_storage):
        """For every id/user combination only the owner gets a record."""
        owners = {}
        for user_id in (1, 2, 3):
            for _ in range(2):
                owners[add_expense(expense_storage, user_id=user_id).id] = user_id

        for expense_id in list(owners) + [99]:
            for user_id in (1, 2, 3, 4):
                found = asyncio.run(expense_storage.find_owned(expense_id, user_id))
                if owners.get(expense_id) == user_id:
                    assert found is not None and found.user_id == user_id
                else:
                    assert found is None

    def test_update_replaces_only_given_fields(self, expense_storage):
        expense = add_expense(expense_storage, user_id=1)
        updated = asyncio.run(expense_storage.update_expense(
            expense.id, 1, {"amount": Decimal("99.99")},
        ))
        assert updated.amount == Decimal("99.99")
        assert updated.description == "Lunch"
        assert updated.date == expense.date
        assert updated.created_at == expense.created_at
        assert updated.updated_at >= expense.updated_at

    def test_update_of_other_users_expense_is_not_found(self, expense_storage):
        expense = add_expense(expense_storage, user_id=1)
        with pytest.raises(NotFoundError):
            asyncio.run(expense_storage.update_expense(expense.id, 2, {"amount": Decimal("1")}))
        assert asyncio.run(expense_storage.find_owned(expense.id, 1)).amount == Decimal("10")

    def test_update_rejects_unknown_fields(self, expense_storage):
        expense = add_expense(expense_storage, user_id=1)
        with pytest.raises(ValueError, match="user_id"):
            asyncio.run(expense_storage.update_expense(expense.id, 1, {"user_id": 2}))

    def test_delete(self, expense_storage):
        expense = add_expense(expense_storage, user_id=1)
        assert asyncio.run(expense_storage.delete_expense(expense.id, 2)) is False
        assert asyncio.run(expense_storage.delete_expense(expense.id, 1)) is True
        assert asyncio.run(expense_storage.delete_expense(expense.id, 1)) is False
        assert asyncio.run(expense_storage.find_owned(expense.id, 1)) is None

    def test_ids_not_reused_after_delete(self, expense_storage):
        first = add_expense(expense_storage, user_id=1)
        asyncio.run(expense_storage.delete_expense(first.id, 1))
        second = add_expense(expense_storage, user_id=1)
        assert second.id == first.id + 1

    def test_concurrent_creates_get_distinct_ids(self, expense_storage):
        async def create_many():
            return await asyncio.gather(*[
                expense_storage.create_expense(1, Decimal("1"), ExpenseCategory.OTHER, None, f"item {i}")
                for i in range(20)
            ])

        created = asyncio.run(create_many())
        assert sorted(e.id for e in created) == list(range(1, 21))


class TestAuditStorage:
    """Tests for InMemoryAuditStorage."""

    def test_recent_events_newest_first(self, audit_storage):
        for user_id in (1, 2, 3):
            asyncio.run(audit_storage.append_event(AuditEventBuilder.login_succeeded(user_id)))

        recent = asyncio.run(audit_storage.get_recent_events(limit=2))
        assert [e.user_id for e in recent] == [3, 2]

    def test_events_by_correlation_id(self, audit_storage):
        from uuid import uuid4

        correlation_id = uuid4()
        asyncio.run(audit_storage.append_event(AuditEventBuilder.login_failed(correlation_id)))
        asyncio.run(audit_storage.append_event(AuditEventBuilder.login_failed()))

        events = asyncio.run(audit_storage.get_events_by_correlation_id(correlation_id))
        assert len(events) == 1
        assert events[0].correlation_id == correlation_id

    def test_oldest_events_dropped_past_capacity(self):
        storage = InMemoryAuditStorage(max_events=3)
        for user_id in range(1, 6):
            asyncio.run(storage.append_event(AuditEventBuilder.login_succeeded(user_id)))

        recent = asyncio.run(storage.get_recent_events(limit=10))
        assert [e.user_id for e in recent] == [5, 4, 3]

    def test_non_positive_limit(self, audit_storage):
        asyncio.run(audit_storage.append_event(AuditEventBuilder.login_failed()))
        assert asyncio.run(audit_storage.get_recent_events(limit=0)) == []
