"""
Main Orchestrator for SpendWise

This module ties together all the components and defines the
end-to-end flows for:
1. Authentication (register / login / logout / resolve session)
2. Expenses (create / read / update / delete / list / reports)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No expense operation runs without a user resolved from a valid session
- Every expense operation is scoped to that user
- Every significant step is audited

Transport layers (the HTTP API, the dashboard) call these flows and
nothing below them.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from spendwise.audit import AuditLogger, configure_logging
from spendwise.config import AppSettings, AuthSettings, get_settings
from spendwise.models.expense import (
    CategoryBreakdown,
    Expense,
    ExpenseCreate,
    ExpenseFilter,
    ExpensePage,
    ExpenseUpdate,
    MonthlyTotal,
)
from spendwise.models.user import PublicUser, SessionCookie, SessionToken, User
from spendwise.queries import AggregationExecutor, QueryExecutor
from spendwise.services.auth import (
    CredentialStore,
    DuplicateIdentityError,
    InvalidCredentialsError,
    SessionIssuer,
    TokenExpiredError,
    TokenInvalidError,
)
from spendwise.services.storage import (
    ExpenseStorageInterface,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryUserStorage,
    NotFoundError,
    UserStorageInterface,
)


class AuthFlow:
    """
    Orchestrates registration, login, logout and session resolution.

    Failures surface as typed exceptions:
    - DuplicateIdentityError on registration conflicts
    - InvalidCredentialsError on any failed login
    - TokenInvalidError / TokenExpiredError when a session is refused
    """

    def __init__(
        self,
        credentials: CredentialStore,
        sessions: SessionIssuer,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._credentials = credentials
        self._sessions = sessions
        self._audit_logger = audit_logger

    @property
    def sessions(self) -> SessionIssuer:
        return self._sessions

    @property
    def audit_logger(self) -> Optional[AuditLogger]:
        return self._audit_logger

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[User, SessionToken]:
        """
        Create an account and sign it in.

        Returns:
            (user, session)
        """
        try:
            user = await self._credentials.register(username, email, password)
        except DuplicateIdentityError:
            if self._audit_logger:
                await self._audit_logger.log_registration_rejected(
                    username=username.strip(),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_user_registered(
                user_id=user.id,
                username=user.username,
                correlation_id=correlation_id,
            )

        return user, self._sessions.issue(user)

    async def login(
        self,
        email: str,
        password: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[User, SessionToken]:
        """
        Verify credentials and issue a session.

        Returns:
            (user, session)
        """
        try:
            user = await self._credentials.verify(email, password)
        except InvalidCredentialsError:
            if self._audit_logger:
                await self._audit_logger.log_login_failed(correlation_id=correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_login_succeeded(
                user_id=user.id,
                correlation_id=correlation_id,
            )

        return user, self._sessions.issue(user)

    async def logout(self, correlation_id: Optional[UUID] = None) -> SessionCookie:
        """
        Clear the session cookie.

        The token itself stays valid until it expires.
        """
        if self._audit_logger:
            await self._audit_logger.log_session_revoked(correlation_id=correlation_id)
        return self._sessions.revoke()

    async def authenticate(
        self,
        token: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> User:
        """
        Resolve a session token to its user.

        Raises:
            TokenInvalidError: Missing, malformed or forged token, or unknown user
            TokenExpiredError: Token past its validity window
        """
        if not token:
            await self._reject("missing", correlation_id)
            raise TokenInvalidError("Not authenticated")

        try:
            user_id = self._sessions.validate(token)
        except TokenExpiredError:
            await self._reject("expired", correlation_id)
            raise
        except TokenInvalidError:
            await self._reject("invalid", correlation_id)
            raise

        user = await self._credentials.find_by_id(user_id)
        if user is None:
            await self._reject("unknown_user", correlation_id)
            raise TokenInvalidError("Not authenticated")

        return user

    def session_cookie(self, session: SessionToken) -> SessionCookie:
        return self._sessions.session_cookie(session)

    @staticmethod
    def profile(user: User) -> PublicUser:
        return user.to_public()

    async def _reject(self, reason: str, correlation_id: Optional[UUID]) -> None:
        if self._audit_logger:
            await self._audit_logger.log_session_rejected(
                reason=reason,
                correlation_id=correlation_id,
            )


class ExpenseFlow:
    """
    Orchestrates everything a signed-in user does with expenses.

    CRITICAL: Every method takes the acting user's id and passes it down.
    There is no way to reach another user's records through this class.
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        query_executor: Optional[QueryExecutor] = None,
        aggregator: Optional[AggregationExecutor] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._query_executor = query_executor or QueryExecutor(storage)
        self._aggregator = aggregator or AggregationExecutor(storage)
        self._audit_logger = audit_logger

    async def create_expense(
        self,
        user_id: int,
        data: ExpenseCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        expense = await self._storage.create_expense(
            user_id=user_id,
            amount=data.amount,
            category=data.category,
            expense_date=data.date,
            description=data.description,
        )

        if self._audit_logger:
            await self._audit_logger.log_expense_created(
                expense_id=expense.id,
                user_id=user_id,
                category=expense.category.value,
                amount=str(expense.amount),
                correlation_id=correlation_id,
            )

        return expense

    async def get_expense(
        self,
        user_id: int,
        expense_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Raises:
            NotFoundError: If the expense does not exist or is not owned
        """
        expense = await self._storage.find_owned(expense_id, user_id)
        if expense is None:
            await self._not_found(expense_id, user_id, "read", correlation_id)
            raise NotFoundError("Expense not found")
        return expense

    async def update_expense(
        self,
        user_id: int,
        expense_id: int,
        data: ExpenseUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Replace the fields present in `data`; leave the rest untouched.

        Raises:
            NotFoundError: If the expense does not exist or is not owned
        """
        changes = data.changes()
        try:
            expense = await self._storage.update_expense(expense_id, user_id, changes)
        except NotFoundError:
            await self._not_found(expense_id, user_id, "update", correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_updated(
                expense_id=expense_id,
                user_id=user_id,
                fields=sorted(changes),
                correlation_id=correlation_id,
            )

        return expense

    async def delete_expense(
        self,
        user_id: int,
        expense_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Raises:
            NotFoundError: If the expense does not exist or is not owned
        """
        deleted = await self._storage.delete_expense(expense_id, user_id)
        if not deleted:
            await self._not_found(expense_id, user_id, "delete", correlation_id)
            raise NotFoundError("Expense not found")

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )

    async def list_expenses(
        self,
        user_id: int,
        query: Optional[ExpenseFilter] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ExpensePage:
        page = await self._query_executor.list_expenses(user_id, query or ExpenseFilter())

        if self._audit_logger:
            await self._audit_logger.log_query_executed(
                query_type="list",
                user_id=user_id,
                result_count=len(page.items),
                correlation_id=correlation_id,
            )

        return page

    async def category_breakdown(
        self,
        user_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> CategoryBreakdown:
        result = await self._aggregator.category_breakdown(user_id, start_date, end_date)

        if self._audit_logger:
            await self._audit_logger.log_query_executed(
                query_type="category_breakdown",
                user_id=user_id,
                result_count=len(result.breakdown),
                correlation_id=correlation_id,
            )

        return result

    async def monthly_trend(
        self,
        user_id: int,
        year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[MonthlyTotal]:
        """Defaults to the current calendar year."""
        year = year if year is not None else date.today().year
        result = await self._aggregator.monthly_trend(user_id, year)

        if self._audit_logger:
            await self._audit_logger.log_query_executed(
                query_type="monthly_trend",
                user_id=user_id,
                result_count=len(result),
                correlation_id=correlation_id,
            )

        return result

    async def _not_found(
        self,
        expense_id: int,
        user_id: int,
        operation: str,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_expense_not_found(
                expense_id=expense_id,
                user_id=user_id,
                operation=operation,
                correlation_id=correlation_id,
            )


def create_app_components(
    auth_settings: Optional[AuthSettings] = None,
    app_settings: Optional[AppSettings] = None,
    user_storage: Optional[UserStorageInterface] = None,
    expense_storage: Optional[ExpenseStorageInterface] = None,
) -> tuple[AuthFlow, ExpenseFlow]:
    """
    Factory function to create all application components.

    Args:
        auth_settings: Defaults to the environment configuration
        app_settings: Defaults to the environment configuration
        user_storage: Defaults to a fresh in-memory store
        expense_storage: Defaults to a fresh in-memory store

    Returns:
        (auth_flow, expense_flow)
    """
    auth_settings = auth_settings or get_settings().auth
    app_settings = app_settings or get_settings().app

    configure_logging(app_settings.log_level)

    user_storage = user_storage or InMemoryUserStorage()
    expense_storage = expense_storage or InMemoryExpenseStorage()
    audit_logger = AuditLogger(InMemoryAuditStorage(max_events=app_settings.audit_buffer_size))

    auth_flow = AuthFlow(
        credentials=CredentialStore(user_storage, rounds=auth_settings.bcrypt_rounds),
        sessions=SessionIssuer.from_settings(auth_settings),
        audit_logger=audit_logger,
    )

    expense_flow = ExpenseFlow(
        storage=expense_storage,
        query_executor=QueryExecutor(expense_storage, max_page_size=app_settings.max_page_size),
        aggregator=AggregationExecutor(expense_storage),
        audit_logger=audit_logger,
    )

    return auth_flow, expense_flow
