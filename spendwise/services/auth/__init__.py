"""Authentication services package."""

from spendwise.services.auth.credentials import (
    AuthError,
    CredentialStore,
    DuplicateIdentityError,
    InvalidCredentialsError,
    normalize_email,
    normalize_username,
)
from spendwise.services.auth.sessions import (
    SessionIssuer,
    TokenExpiredError,
    TokenInvalidError,
    UnauthenticatedError,
)

__all__ = [
    "AuthError",
    "CredentialStore",
    "DuplicateIdentityError",
    "InvalidCredentialsError",
    "SessionIssuer",
    "TokenExpiredError",
    "TokenInvalidError",
    "UnauthenticatedError",
    "normalize_email",
    "normalize_username",
]
