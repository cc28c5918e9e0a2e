"""
Tests for the Streamlit dashboard.

The script is loaded as a module for its helpers and driven with
AppTest for rendering.
"""

import importlib.util
import threading
from decimal import Decimal
from pathlib import Path

import pytest
import streamlit as st
from streamlit.testing.v1 import AppTest

from spendwise.config import get_settings
from spendwise.models.expense import ExpenseCategory, ExpenseCreate, ExpenseFilter
from spendwise.orchestrator import create_app_components


DASHBOARD = Path(__file__).resolve().parent.parent / "app" / "main.py"


@pytest.fixture
def dashboard():
    spec = importlib.util.spec_from_file_location("spendwise_dashboard", DASHBOARD)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    yield module
    st.cache_resource.clear()


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setenv("AUTH_JWT_SECRET", "dashboard-test-secret-0123456789")
    monkeypatch.setenv("AUTH_BCRYPT_ROUNDS", "4")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    st.cache_resource.clear()


class TestRunAsync:
    """Tests for the helper that drives the async core from script threads."""

    def test_returns_result(self, dashboard):
        async def answer():
            return 42

        assert dashboard.run_async(answer()) == 42

    def test_sessions_on_many_threads_share_components(self, dashboard, auth_settings, app_settings):
        """Concurrent sessions against one set of stores lose nothing."""
        auth_flow, expense_flow = create_app_components(auth_settings, app_settings)
        user, _ = dashboard.run_async(auth_flow.register("alice", "alice@example.com", "secret1"))
        errors = []

        def add_expenses():
            try:
                for _ in range(20):
                    dashboard.run_async(expense_flow.create_expense(user.id, ExpenseCreate(
                        amount=Decimal("1"),
                        category=ExpenseCategory.OTHER,
                        description="coffee",
                    )))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=add_expenses) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        page = dashboard.run_async(expense_flow.list_expenses(user.id, ExpenseFilter(limit=100)))
        assert page.total_count == 80
        assert len({e.id for e in page.items}) == 80


class TestDashboardPage:
    """Tests for the rendered script."""

    def test_signed_out_shows_auth_page(self, configured):
        at = AppTest.from_file(str(DASHBOARD), default_timeout=30)
        at.run()

        assert not at.exception
        assert at.title[0].value == "Welcome to SpendWise"

    def test_missing_secret_is_reported(self, monkeypatch):
        monkeypatch.delenv("AUTH_JWT_SECRET", raising=False)
        get_settings.cache_clear()
        try:
            at = AppTest.from_file(str(DASHBOARD), default_timeout=30)
            at.run()
            assert "not configured" in at.error[0].value
        finally:
            get_settings.cache_clear()
            st.cache_resource.clear()
