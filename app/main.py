"""
Streamlit Dashboard for SpendWise

A single-user front end over the same flows the HTTP API uses.

DESIGN PRINCIPLES:
1. Nothing is shown before the user signs in
2. The session token lives in st.session_state and is re-validated
   on every rerun, exactly like a cookie on an HTTP request
3. Clear error messages, never internals

Run with:
    streamlit run app/main.py
"""

import asyncio
import threading
from datetime import date
from decimal import Decimal

import streamlit as st

from spendwise.audit import create_correlation_id
from spendwise.config import get_settings
from spendwise.models.expense import (
    ExpenseCategory,
    ExpenseCreate,
    ExpenseFilter,
    ExpenseUpdate,
)
from spendwise.models.user import User
from spendwise.orchestrator import AuthFlow, ExpenseFlow, create_app_components
from spendwise.services.auth import (
    DuplicateIdentityError,
    InvalidCredentialsError,
    UnauthenticatedError,
)
from spendwise.services.storage import NotFoundError


# Page configuration
st.set_page_config(
    page_title="SpendWise",
    page_icon="💸",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_core_lock() -> threading.Lock:
    """One lock for every browser session in this process."""
    return threading.Lock()


def run_async(coro):
    """
    Helper to run async functions in Streamlit.

    Each browser session runs the script on its own thread, but they all
    share the cached components below, whose stores guard themselves with
    asyncio locks bound to a single loop. Calls are therefore run one at a
    time, each on a fresh loop.
    """
    with get_core_lock():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(coro)
        finally:
            loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components()


def current_user(auth_flow: AuthFlow):
    """Resolve the stored token; drop it if it is no longer valid."""
    token = st.session_state.get("token")
    if not token:
        return None
    try:
        return run_async(auth_flow.authenticate(token, create_correlation_id()))
    except UnauthenticatedError:
        st.session_state.token = None
        return None


def main():
    """Main application entry point."""
    try:
        auth_flow, expense_flow = get_components()
    except ValueError as e:
        st.error(f"SpendWise is not configured: {e}")
        st.info("Set AUTH_JWT_SECRET in the environment or in a .env file.")
        st.stop()

    user = current_user(auth_flow)

    st.sidebar.title("💸 SpendWise")
    st.sidebar.markdown("---")

    if user is None:
        render_auth_page(auth_flow)
        return

    st.sidebar.markdown(f"Signed in as **{user.username}**")
    page = st.sidebar.radio(
        "Navigate to:",
        ["➕ Add Expense", "📋 Expenses", "📊 Reports", "⚙️ Settings"],
        index=0,
    )
    if st.sidebar.button("🚪 Log out"):
        run_async(auth_flow.logout(correlation_id=create_correlation_id()))
        st.session_state.token = None
        st.rerun()

    if page == "➕ Add Expense":
        render_add_page(expense_flow, user)
    elif page == "📋 Expenses":
        render_expenses_page(expense_flow, user)
    elif page == "📊 Reports":
        render_reports_page(expense_flow, user)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_auth_page(auth_flow: AuthFlow):
    """Sign in or create an account."""
    st.title("Welcome to SpendWise")
    login_tab, register_tab = st.tabs(["Log in", "Register"])

    with login_tab:
        with st.form("login"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Log in", type="primary")
        if submitted:
            try:
                _, session = run_async(auth_flow.login(
                    email,
                    password,
                    correlation_id=create_correlation_id(),
                ))
                st.session_state.token = session.token
                st.rerun()
            except InvalidCredentialsError:
                st.error("Invalid credentials")

    with register_tab:
        with st.form("register"):
            username = st.text_input("Username")
            email = st.text_input("Email", key="register_email")
            password = st.text_input("Password", type="password", key="register_password")
            submitted = st.form_submit_button("Create account", type="primary")
        if submitted:
            if len(username.strip()) < 3:
                st.error("Username must be at least 3 characters")
            elif len(password) < 6:
                st.error("Password must be at least 6 characters")
            else:
                try:
                    _, session = run_async(auth_flow.register(
                        username,
                        email,
                        password,
                        correlation_id=create_correlation_id(),
                    ))
                    st.session_state.token = session.token
                    st.rerun()
                except DuplicateIdentityError:
                    st.error("User already exists")


def render_add_page(expense_flow: ExpenseFlow, user: User):
    """Record a new expense."""
    st.title("➕ Add Expense")

    with st.form("add_expense", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            amount = st.number_input(
                "Amount *",
                min_value=0.0,
                step=0.01,
                format="%.2f",
            )
            category = st.selectbox(
                "Category *",
                options=list(ExpenseCategory),
                format_func=lambda c: c.value,
            )
        with col2:
            expense_date = st.date_input("Date *", value=date.today())
            description = st.text_input("Description *", max_chars=500)
        submitted = st.form_submit_button("💾 Save", type="primary")

    if submitted:
        if not description.strip():
            st.error("Please enter a description")
            return
        expense = run_async(expense_flow.create_expense(
            user.id,
            ExpenseCreate(
                amount=Decimal(str(amount)),
                category=category,
                description=description,
                date=expense_date,
            ),
            correlation_id=create_correlation_id(),
        ))
        st.success(
            f"Saved: {expense.category.value} {expense.amount:,.2f} "
            f"on {expense.date.strftime('%d %B %Y')}"
        )


def render_expenses_page(expense_flow: ExpenseFlow, user: User):
    """Browse, edit and delete expenses."""
    st.title("📋 Your Expenses")

    col1, col2, col3 = st.columns(3)
    with col1:
        category_filter = st.selectbox(
            "Filter by Category",
            options=[None] + list(ExpenseCategory),
            format_func=lambda c: "All Categories" if c is None else c.value,
        )
    with col2:
        date_range = st.date_input("Date Range", value=[])
    with col3:
        page_number = st.number_input("Page", min_value=1, value=1, step=1)

    start_date, end_date = (date_range[0], date_range[1]) if len(date_range) == 2 else (None, None)
    page = run_async(expense_flow.list_expenses(
        user.id,
        ExpenseFilter(
            category=category_filter,
            start_date=start_date,
            end_date=end_date,
            page=int(page_number),
            limit=get_settings().app.default_page_size,
        ),
        correlation_id=create_correlation_id(),
    ))

    st.caption(
        f"Page {page.current_page} of {max(page.total_pages, 1)} "
        f"({page.total_count} expenses)"
    )
    if not page.items:
        st.info("No expenses here yet. Use 'Add Expense' to record one.")
        return

    for expense in page.items:
        label = f"{expense.date} · {expense.category.value} · {expense.amount:,.2f} · {expense.description}"
        with st.expander(label):
            with st.form(f"edit_{expense.id}"):
                amount = st.number_input(
                    "Amount",
                    min_value=0.0,
                    step=0.01,
                    format="%.2f",
                    value=float(expense.amount),
                )
                category = st.selectbox(
                    "Category",
                    options=list(ExpenseCategory),
                    index=list(ExpenseCategory).index(expense.category),
                    format_func=lambda c: c.value,
                )
                expense_date = st.date_input("Date", value=expense.date)
                description = st.text_input("Description", value=expense.description)
                save, delete = st.columns(2)
                with save:
                    saved = st.form_submit_button("✅ Save changes")
                with delete:
                    deleted = st.form_submit_button("🗑️ Delete")

            try:
                if saved:
                    run_async(expense_flow.update_expense(
                        user.id,
                        expense.id,
                        ExpenseUpdate(
                            amount=Decimal(str(amount)),
                            category=category,
                            date=expense_date,
                            description=description,
                        ),
                        correlation_id=create_correlation_id(),
                    ))
                    st.rerun()
                if deleted:
                    run_async(expense_flow.delete_expense(
                        user.id,
                        expense.id,
                        correlation_id=create_correlation_id(),
                    ))
                    st.rerun()
            except NotFoundError:
                st.error("This expense no longer exists")


def render_reports_page(expense_flow: ExpenseFlow, user: User):
    """Category breakdown and monthly trend."""
    st.title("📊 Reports")

    date_range = st.date_input("Date Range (optional)", value=[])
    start_date, end_date = (date_range[0], date_range[1]) if len(date_range) == 2 else (None, None)

    breakdown = run_async(expense_flow.category_breakdown(
        user.id,
        start_date=start_date,
        end_date=end_date,
        correlation_id=create_correlation_id(),
    ))

    st.markdown(
        f'<div class="big-number">{breakdown.total_amount:,.2f}</div>',
        unsafe_allow_html=True,
    )
    st.caption(f"across {breakdown.expense_count} expenses")

    if breakdown.breakdown:
        st.subheader("By category")
        st.bar_chart(
            [
                {"category": g.category.value, "total": float(g.total)}
                for g in breakdown.breakdown
            ],
            x="category",
            y="total",
        )

    st.subheader("Monthly trend")
    year = st.number_input(
        "Year",
        min_value=1,
        max_value=9999,
        value=date.today().year,
        step=1,
    )
    trend = run_async(expense_flow.monthly_trend(
        user.id,
        year=int(year),
        correlation_id=create_correlation_id(),
    ))
    if trend:
        st.line_chart(
            [{"month": m.month, "total": float(m.total)} for m in trend],
            x="month",
            y="total",
        )
    else:
        st.info(f"No expenses recorded in {int(year)}.")


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    from spendwise.config import validate_all_settings

    status = validate_all_settings()

    sections = [
        ("Authentication (session signing, password hashing)", "auth"),
        ("Application (logging, paging)", "app"),
    ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
