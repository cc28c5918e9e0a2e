"""
Integration tests for the orchestrator flows.

Flows run against in-memory stores with an audit store attached, so every
test can also check what was recorded.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from spendwise.config import AppSettings
from spendwise.models.audit import AuditEventType
from spendwise.models.expense import (
    ExpenseCategory,
    ExpenseCreate,
    ExpenseFilter,
    ExpenseUpdate,
)
from spendwise.orchestrator import AuthFlow, ExpenseFlow, create_app_components
from spendwise.services.auth import (
    DuplicateIdentityError,
    InvalidCredentialsError,
    SessionIssuer,
    TokenExpiredError,
    TokenInvalidError,
)
from spendwise.services.storage import NotFoundError


@pytest.fixture
def auth_flow(credentials, sessions, audit_logger):
    return AuthFlow(credentials, sessions, audit_logger)


@pytest.fixture
def expense_flow(expense_storage, audit_logger):
    return ExpenseFlow(expense_storage, audit_logger=audit_logger)


def recorded_types(audit_storage):
    events = asyncio.run(audit_storage.get_recent_events())
    return [e.event_type for e in reversed(events)]


def new_expense(amount="10", category=ExpenseCategory.FOOD, expense_date=date(2024, 1, 5),
                description="Lunch"):
    return ExpenseCreate(
        amount=Decimal(amount),
        category=category,
        date=expense_date,
        description=description,
    )


class TestAuthFlow:
    """Tests for AuthFlow."""

    def test_register_signs_in(self, auth_flow, audit_storage):
        user, session = asyncio.run(auth_flow.register("alice", "alice@example.com", "secret1"))
        assert session.user_id == user.id
        assert asyncio.run(auth_flow.authenticate(session.token)).id == user.id
        assert recorded_types(audit_storage) == [AuditEventType.USER_REGISTERED]

    def test_duplicate_registration_is_audited(self, auth_flow, audit_storage):
        asyncio.run(auth_flow.register("alice", "alice@example.com", "secret1"))
        with pytest.raises(DuplicateIdentityError):
            asyncio.run(auth_flow.register("bob", "Alice@Example.com", "secret1"))
        assert recorded_types(audit_storage)[-1] == AuditEventType.REGISTRATION_REJECTED

    def test_login(self, auth_flow, audit_storage):
        registered, _ = asyncio.run(auth_flow.register("alice", "alice@example.com", "secret1"))
        user, session = asyncio.run(auth_flow.login("alice@example.com", "secret1"))
        assert user.id == registered.id
        assert session.user_id == registered.id
        assert recorded_types(audit_storage)[-1] == AuditEventType.LOGIN_SUCCEEDED

    def test_failed_login_is_audited(self, auth_flow, audit_storage):
        with pytest.raises(InvalidCredentialsError):
            asyncio.run(auth_flow.login("nobody@example.com", "secret1"))
        assert recorded_types(audit_storage) == [AuditEventType.LOGIN_FAILED]

    def test_missing_token(self, auth_flow, audit_storage):
        with pytest.raises(TokenInvalidError):
            asyncio.run(auth_flow.authenticate(None))
        events = asyncio.run(audit_storage.get_recent_events())
        assert events[0].details == {"reason": "missing"}

    def test_expired_token(self, auth_flow, clock):
        _, session = asyncio.run(auth_flow.register("alice", "alice@example.com", "secret1"))
        clock.now = session.expires_at
        with pytest.raises(TokenExpiredError):
            asyncio.run(auth_flow.authenticate(session.token))

    def test_token_for_unknown_user(self, auth_flow, sessions):
        from spendwise.models.user import User

        ghost = User(id=99, username="ghost", email="ghost@example.com", password_hash="h")
        with pytest.raises(TokenInvalidError):
            asyncio.run(auth_flow.authenticate(sessions.issue(ghost).token))

    def test_logout_clears_cookie(self, auth_flow, audit_storage):
        cookie = asyncio.run(auth_flow.logout())
        assert cookie.is_clear
        assert recorded_types(audit_storage) == [AuditEventType.SESSION_REVOKED]

    def test_profile_is_public(self, auth_flow):
        user, _ = asyncio.run(auth_flow.register("alice", "alice@example.com", "secret1"))
        assert "password_hash" not in AuthFlow.profile(user).model_dump()


class TestExpenseFlow:
    """Tests for ExpenseFlow."""

    def test_create_and_get(self, expense_flow, audit_storage):
        created = asyncio.run(expense_flow.create_expense(1, new_expense()))
        fetched = asyncio.run(expense_flow.get_expense(1, created.id))
        assert fetched == created
        assert recorded_types(audit_storage) == [AuditEventType.EXPENSE_CREATED]

    def test_create_without_date_uses_today(self, expense_flow):
        data = ExpenseCreate(amount=Decimal("1"), category=ExpenseCategory.OTHER, description="x")
        assert asyncio.run(expense_flow.create_expense(1, data)).date == date.today()

    def test_get_other_users_expense_is_not_found(self, expense_flow, audit_storage):
        created = asyncio.run(expense_flow.create_expense(1, new_expense()))
        with pytest.raises(NotFoundError):
            asyncio.run(expense_flow.get_expense(2, created.id))
        assert recorded_types(audit_storage)[-1] == AuditEventType.EXPENSE_NOT_FOUND

    def test_partial_update(self, expense_flow):
        created = asyncio.run(expense_flow.create_expense(1, new_expense()))
        updated = asyncio.run(expense_flow.update_expense(
            1, created.id, ExpenseUpdate(description="Dinner"),
        ))
        assert updated.description == "Dinner"
        assert updated.amount == created.amount
        assert updated.category == created.category
        assert updated.date == created.date

    def test_update_other_users_expense(self, expense_flow):
        created = asyncio.run(expense_flow.create_expense(1, new_expense()))
        with pytest.raises(NotFoundError):
            asyncio.run(expense_flow.update_expense(2, created.id, ExpenseUpdate(amount=Decimal("0"))))
        assert asyncio.run(expense_flow.get_expense(1, created.id)).amount == Decimal("10")

    def test_delete_non_owned_keeps_expense(self, expense_flow):
        """Deleting someone else's expense reports not found and changes nothing."""
        created = asyncio.run(expense_flow.create_expense(1, new_expense()))
        with pytest.raises(NotFoundError):
            asyncio.run(expense_flow.delete_expense(2, created.id))
        assert asyncio.run(expense_flow.get_expense(1, created.id)).id == created.id

    def test_delete_twice(self, expense_flow, audit_storage):
        created = asyncio.run(expense_flow.create_expense(1, new_expense()))
        asyncio.run(expense_flow.delete_expense(1, created.id))
        with pytest.raises(NotFoundError):
            asyncio.run(expense_flow.delete_expense(1, created.id))
        assert AuditEventType.EXPENSE_DELETED in recorded_types(audit_storage)

    def test_list_defaults(self, expense_flow):
        for _ in range(12):
            asyncio.run(expense_flow.create_expense(1, new_expense()))
        page = asyncio.run(expense_flow.list_expenses(1))
        assert len(page.items) == 10
        assert page.total_pages == 2

    def test_list_with_filter(self, expense_flow):
        asyncio.run(expense_flow.create_expense(1, new_expense(category=ExpenseCategory.BILLS)))
        asyncio.run(expense_flow.create_expense(1, new_expense()))
        page = asyncio.run(expense_flow.list_expenses(1, ExpenseFilter(category=ExpenseCategory.BILLS)))
        assert page.total_count == 1

    def test_reports(self, expense_flow, sample_expenses):
        for amount, category, expense_date, description in sample_expenses:
            asyncio.run(expense_flow.create_expense(1, ExpenseCreate(
                amount=amount, category=category, date=expense_date, description=description,
            )))
        breakdown = asyncio.run(expense_flow.category_breakdown(1))
        trend = asyncio.run(expense_flow.monthly_trend(1, year=2024))
        assert breakdown.total_amount == Decimal("35")
        assert [m.month for m in trend] == [1, 2]

    def test_trend_defaults_to_current_year(self, expense_flow):
        asyncio.run(expense_flow.create_expense(1, new_expense(expense_date=date.today())))
        asyncio.run(expense_flow.create_expense(1, new_expense(expense_date=date(2000, 1, 1))))
        trend = asyncio.run(expense_flow.monthly_trend(1))
        assert [m.month for m in trend] == [date.today().month]


class TestComponentFactory:
    """Tests for create_app_components."""

    def test_components_share_nothing_between_calls(self, auth_settings, app_settings):
        auth_a, expenses_a = create_app_components(auth_settings, app_settings)
        auth_b, _ = create_app_components(auth_settings, app_settings)

        user, session = asyncio.run(auth_a.register("alice", "alice@example.com", "secret1"))
        asyncio.run(expenses_a.create_expense(user.id, new_expense()))

        with pytest.raises(TokenInvalidError):
            asyncio.run(auth_b.authenticate(session.token))

    def test_sessions_follow_settings(self, auth_settings, app_settings):
        auth_flow, _ = create_app_components(auth_settings, app_settings)
        assert isinstance(auth_flow.sessions, SessionIssuer)
        assert auth_flow.sessions.cookie_name == auth_settings.cookie_name

    def test_audit_buffer_follows_settings(self, auth_settings):
        auth_flow, _ = create_app_components(auth_settings, AppSettings(audit_buffer_size=2))
        for _ in range(3):
            asyncio.run(auth_flow.logout())

        recent = asyncio.run(auth_flow.audit_logger.storage.get_recent_events())
        assert len(recent) == 2

    def test_audit_buffer_must_hold_something(self):
        with pytest.raises(ValidationError):
            AppSettings(audit_buffer_size=0)
