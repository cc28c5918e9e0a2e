"""
HTTP API for SpendWise

A thin FastAPI layer over the orchestrator flows. It only:
1. Validates request structure (types and formats)
2. Reads the session cookie and resolves the user before expense routes
3. Sets and clears the session cookie
4. Maps typed core errors to status codes

Business rules (ownership, uniqueness, filtering) live in the core.

Run with:
    uvicorn spendwise.api:create_app --factory
"""

from datetime import date
from typing import Optional
from uuid import UUID

import structlog
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from spendwise import __version__
from spendwise.audit import create_correlation_id
from spendwise.config import AppSettings, get_settings
from spendwise.models.expense import (
    CategoryBreakdown,
    Expense,
    ExpenseCategory,
    ExpenseCreate,
    ExpenseFilter,
    ExpensePage,
    ExpenseUpdate,
    MonthlyTotal,
)
from spendwise.models.user import (
    LoginRequest,
    PublicUser,
    RegisterRequest,
    SessionCookie,
    User,
)
from spendwise.orchestrator import AuthFlow, ExpenseFlow, create_app_components
from spendwise.services.auth import (
    DuplicateIdentityError,
    InvalidCredentialsError,
    UnauthenticatedError,
)
from spendwise.services.storage import NotFoundError


logger = structlog.get_logger(__name__)


class MessageResponse(BaseModel):
    message: str


class AuthResponse(BaseModel):
    message: str
    user: PublicUser


class ProfileResponse(BaseModel):
    user: PublicUser


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_auth_flow(request: Request) -> AuthFlow:
    return request.app.state.auth_flow


def get_expense_flow(request: Request) -> ExpenseFlow:
    return request.app.state.expense_flow


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.app_settings


def get_correlation_id() -> UUID:
    """One id per request; FastAPI caches it for every dependency."""
    return create_correlation_id()


async def get_current_user(
    request: Request,
    auth_flow: AuthFlow = Depends(get_auth_flow),
    correlation_id: UUID = Depends(get_correlation_id),
) -> User:
    token = request.cookies.get(auth_flow.sessions.cookie_name)
    return await auth_flow.authenticate(token, correlation_id)


def apply_cookie(response: Response, cookie: SessionCookie) -> None:
    if cookie.is_clear:
        response.delete_cookie(
            cookie.name,
            httponly=cookie.http_only,
            secure=cookie.secure,
        )
    else:
        response.set_cookie(
            cookie.name,
            cookie.value,
            max_age=cookie.max_age,
            httponly=cookie.http_only,
            secure=cookie.secure,
            samesite="lax",
        )


# =============================================================================
# AUTH ROUTES
# =============================================================================

auth_router = APIRouter()


@auth_router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    form: RegisterRequest,
    response: Response,
    auth_flow: AuthFlow = Depends(get_auth_flow),
    correlation_id: UUID = Depends(get_correlation_id),
):
    user, session = await auth_flow.register(
        form.username,
        form.email,
        form.password,
        correlation_id=correlation_id,
    )
    apply_cookie(response, auth_flow.session_cookie(session))
    return AuthResponse(message="User registered successfully", user=user.to_public())


@auth_router.post("/login", response_model=AuthResponse)
async def login(
    form: LoginRequest,
    response: Response,
    auth_flow: AuthFlow = Depends(get_auth_flow),
    correlation_id: UUID = Depends(get_correlation_id),
):
    user, session = await auth_flow.login(
        form.email,
        form.password,
        correlation_id=correlation_id,
    )
    apply_cookie(response, auth_flow.session_cookie(session))
    return AuthResponse(message="Login successful", user=user.to_public())


@auth_router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    auth_flow: AuthFlow = Depends(get_auth_flow),
    correlation_id: UUID = Depends(get_correlation_id),
):
    apply_cookie(response, await auth_flow.logout(correlation_id=correlation_id))
    return MessageResponse(message="Logout successful")


@auth_router.get("/profile", response_model=ProfileResponse)
async def profile(current_user: User = Depends(get_current_user)):
    return ProfileResponse(user=AuthFlow.profile(current_user))


# =============================================================================
# EXPENSE ROUTES
# =============================================================================

expense_router = APIRouter()


@expense_router.get("", response_model=ExpensePage)
async def list_expenses(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    category: Optional[ExpenseCategory] = Query(None),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    current_user: User = Depends(get_current_user),
    expense_flow: ExpenseFlow = Depends(get_expense_flow),
    settings: AppSettings = Depends(get_app_settings),
    correlation_id: UUID = Depends(get_correlation_id),
):
    query = ExpenseFilter(
        category=category,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit if limit is not None else settings.default_page_size,
    )
    return await expense_flow.list_expenses(
        current_user.id,
        query,
        correlation_id=correlation_id,
    )


@expense_router.get("/stats", response_model=CategoryBreakdown)
async def expense_stats(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    current_user: User = Depends(get_current_user),
    expense_flow: ExpenseFlow = Depends(get_expense_flow),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await expense_flow.category_breakdown(
        current_user.id,
        start_date=start_date,
        end_date=end_date,
        correlation_id=correlation_id,
    )


@expense_router.get("/trends", response_model=list[MonthlyTotal])
async def monthly_trends(
    year: Optional[int] = Query(None, ge=1, le=9999),
    current_user: User = Depends(get_current_user),
    expense_flow: ExpenseFlow = Depends(get_expense_flow),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await expense_flow.monthly_trend(
        current_user.id,
        year=year,
        correlation_id=correlation_id,
    )


@expense_router.get("/{expense_id}", response_model=Expense)
async def get_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    expense_flow: ExpenseFlow = Depends(get_expense_flow),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await expense_flow.get_expense(
        current_user.id,
        expense_id,
        correlation_id=correlation_id,
    )


@expense_router.post(
    "",
    response_model=Expense,
    status_code=status.HTTP_201_CREATED,
)
async def create_expense(
    data: ExpenseCreate,
    current_user: User = Depends(get_current_user),
    expense_flow: ExpenseFlow = Depends(get_expense_flow),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await expense_flow.create_expense(
        current_user.id,
        data,
        correlation_id=correlation_id,
    )


@expense_router.put("/{expense_id}", response_model=Expense)
async def update_expense(
    expense_id: int,
    data: ExpenseUpdate,
    current_user: User = Depends(get_current_user),
    expense_flow: ExpenseFlow = Depends(get_expense_flow),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await expense_flow.update_expense(
        current_user.id,
        expense_id,
        data,
        correlation_id=correlation_id,
    )


@expense_router.delete("/{expense_id}", response_model=MessageResponse)
async def delete_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    expense_flow: ExpenseFlow = Depends(get_expense_flow),
    correlation_id: UUID = Depends(get_correlation_id),
):
    await expense_flow.delete_expense(
        current_user.id,
        expense_id,
        correlation_id=correlation_id,
    )
    return MessageResponse(message="Expense deleted successfully")


# =============================================================================
# ERROR MAPPING
# =============================================================================

def _field_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        # Drop the "body"/"query"/"path" prefix from the location
        location = [str(part) for part in error.get("loc", ())[1:]]
        errors.append({
            "field": ".".join(location) or "request",
            "message": error.get("msg", "Invalid value"),
        })
    return errors


def register_error_handlers(app: FastAPI) -> None:
    """Translate core exceptions into responses without leaking internals."""

    @app.exception_handler(RequestValidationError)
    async def validation_failed(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"errors": _field_errors(exc)},
        )

    @app.exception_handler(DuplicateIdentityError)
    async def duplicate_identity(request: Request, exc: DuplicateIdentityError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "User already exists"},
        )

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials(request: Request, exc: InvalidCredentialsError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Invalid credentials"},
        )

    @app.exception_handler(UnauthenticatedError)
    async def unauthenticated(request: Request, exc: UnauthenticatedError):
        # Expired, forged and missing tokens all look the same from outside
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": "Not authenticated"},
        )

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"message": "Expense not found"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": message},
        )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.error(
            "unhandled_error",
            path=request.url.path,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        audit_logger = request.app.state.auth_flow.audit_logger
        if audit_logger:
            await audit_logger.log_error(
                error_type=type(exc).__name__,
                error_message=str(exc),
                path=request.url.path,
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Something went wrong!"},
        )


# =============================================================================
# APP FACTORY
# =============================================================================

def create_app(
    auth_flow: Optional[AuthFlow] = None,
    expense_flow: Optional[ExpenseFlow] = None,
    app_settings: Optional[AppSettings] = None,
) -> FastAPI:
    """
    Build the API.

    Flows default to fresh in-memory components configured from the
    environment (AUTH_JWT_SECRET must be set).
    """
    if auth_flow is None or expense_flow is None:
        auth_flow, expense_flow = create_app_components(app_settings=app_settings)

    app = FastAPI(title="SpendWise API", version=__version__)
    app.state.auth_flow = auth_flow
    app.state.expense_flow = expense_flow
    app.state.app_settings = app_settings or get_settings().app

    app.include_router(auth_router, prefix="/api/auth", tags=["authentication"])
    app.include_router(expense_router, prefix="/api/expenses", tags=["expenses"])
    register_error_handlers(app)

    @app.get("/health")
    def health():
        return {"status": "ok", "environment": app.state.app_settings.app_environment}

    return app


def run(host: str = "127.0.0.1", port: int = 4000) -> None:
    uvicorn.run("spendwise.api:create_app", factory=True, host=host, port=port)
