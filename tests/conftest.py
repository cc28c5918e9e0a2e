"""
Shared fixtures for SpendWise tests.

Everything runs against fresh in-memory stores. bcrypt is run at its
lowest work factor so the suite stays fast.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from spendwise.audit import AuditLogger
from spendwise.config import AppSettings, AuthSettings
from spendwise.models.expense import ExpenseCategory
from spendwise.services.auth import CredentialStore, SessionIssuer
from spendwise.services.storage import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryUserStorage,
)


TEST_SECRET = "test-secret-with-at-least-32-chars"


class FixedClock:
    """Controllable source of "now" for session tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def auth_settings():
    return AuthSettings(jwt_secret=TEST_SECRET, bcrypt_rounds=4)


@pytest.fixture
def app_settings():
    return AppSettings()


@pytest.fixture
def user_storage():
    return InMemoryUserStorage()


@pytest.fixture
def expense_storage():
    return InMemoryExpenseStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def credentials(user_storage):
    return CredentialStore(user_storage, rounds=4)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def sessions(clock):
    return SessionIssuer(secret=TEST_SECRET, clock=clock)


@pytest.fixture
def sample_expenses():
    """The three expenses used by the reporting scenarios."""
    return [
        (Decimal("10"), ExpenseCategory.FOOD, date(2024, 1, 5), "Groceries"),
        (Decimal("5"), ExpenseCategory.FOOD, date(2024, 1, 20), "Coffee"),
        (Decimal("20"), ExpenseCategory.BILLS, date(2024, 2, 1), "Phone bill"),
    ]
