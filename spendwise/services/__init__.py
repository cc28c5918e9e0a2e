"""Services package."""

from spendwise.services.auth import (
    AuthError,
    CredentialStore,
    DuplicateIdentityError,
    InvalidCredentialsError,
    SessionIssuer,
    TokenExpiredError,
    TokenInvalidError,
    UnauthenticatedError,
)
from spendwise.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryUserStorage,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)

__all__ = [
    # Auth services
    "AuthError",
    "CredentialStore",
    "DuplicateIdentityError",
    "InvalidCredentialsError",
    "SessionIssuer",
    "TokenExpiredError",
    "TokenInvalidError",
    "UnauthenticatedError",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "ExpenseStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryUserStorage",
    "NotFoundError",
    "StorageError",
    "UserStorageInterface",
]
