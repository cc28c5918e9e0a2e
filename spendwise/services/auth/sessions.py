"""
Session Issuer

Mints and validates stateless session tokens (signed JWTs).

DESIGN DECISION: Sessions carry no server-side state.
A token is valid if its signature checks out and it has not expired.
Logout clears the cookie on the client only; a captured token stays
usable until it expires. This is a known, accepted limitation.

Callers only ever see UnauthenticatedError (or a subclass). The exact
reason a token was refused goes to the log, never to the client.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
import structlog

from spendwise.config import AuthSettings
from spendwise.models.user import SessionCookie, SessionToken, User
from spendwise.services.auth.credentials import AuthError


class UnauthenticatedError(AuthError):
    """The request does not carry a usable session."""
    pass


class TokenInvalidError(UnauthenticatedError):
    """Token is malformed, tampered with, or signed with another secret."""
    pass


class TokenExpiredError(UnauthenticatedError):
    """Token was valid but its validity window has passed."""
    pass


def _utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class SessionIssuer:
    """
    Issues and validates session tokens bound to a user id.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
        cookie_name: str = "token",
        cookie_secure: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            secret: Signing secret
            ttl: Validity window from issuance
            algorithm: JWT HMAC algorithm
            cookie_name: Name of the session cookie
            cookie_secure: Mark the cookie HTTPS-only
            clock: Source of "now"; override in tests
        """
        self._secret = secret
        self._ttl = ttl
        self._algorithm = algorithm
        self._cookie_name = cookie_name
        self._cookie_secure = cookie_secure
        self._clock = clock or _utc_clock
        self._logger = structlog.get_logger(__name__)

    @classmethod
    def from_settings(
        cls,
        settings: AuthSettings,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "SessionIssuer":
        return cls(
            secret=settings.jwt_secret,
            ttl=settings.session_ttl,
            algorithm=settings.jwt_algorithm,
            cookie_name=settings.cookie_name,
            cookie_secure=settings.cookie_secure,
            clock=clock,
        )

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    def issue(self, user: User) -> SessionToken:
        """Mint a token for this user, valid for the configured window."""
        # JWT timestamps have whole-second resolution
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + self._ttl

        token = jwt.encode(
            {
                "sub": str(user.id),
                "iat": issued_at,
                "exp": expires_at,
            },
            self._secret,
            algorithm=self._algorithm,
        )
        return SessionToken(
            token=token,
            user_id=user.id,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def validate(self, token: str) -> int:
        """
        Verify signature and expiry.

        Returns:
            The user id the token was issued for

        Raises:
            TokenExpiredError: Signature fine, window passed
            TokenInvalidError: Anything else wrong with the token
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                # Expiry is checked against our own clock below
                options={
                    "require": ["sub", "iat", "exp"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            self._logger.info("session_token_rejected", reason="invalid", detail=str(e))
            raise TokenInvalidError("Invalid session") from e

        try:
            user_id = int(claims["sub"])
            expires_at = float(claims["exp"])
        except (TypeError, ValueError) as e:
            self._logger.info("session_token_rejected", reason="bad_claims")
            raise TokenInvalidError("Invalid session") from e

        if self._clock().timestamp() >= expires_at:
            self._logger.info("session_token_rejected", reason="expired", user_id=user_id)
            raise TokenExpiredError("Session expired")

        return user_id

    def session_cookie(self, session: SessionToken) -> SessionCookie:
        """Cookie that carries this session to the client."""
        return SessionCookie(
            name=self._cookie_name,
            value=session.token,
            max_age=int(self._ttl.total_seconds()),
            http_only=True,
            secure=self._cookie_secure,
        )

    def revoke(self) -> SessionCookie:
        """
        Cookie that clears the session on the client.

        Nothing changes on the signing side.
        """
        return SessionCookie(
            name=self._cookie_name,
            value="",
            max_age=0,
            http_only=True,
            secure=self._cookie_secure,
        )
