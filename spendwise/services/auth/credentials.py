"""
Credential Store

Registers users and verifies passwords.

SECURITY BOUNDARIES:
1. Raw passwords are hashed with bcrypt and never stored
2. A failed login looks the same whether the email is unknown or the
   password is wrong (same exception, same message, comparable timing)
3. Hashing runs in a worker thread so a slow hash never stalls the event loop

Identity normalization: usernames are trimmed, emails trimmed and lowercased.
Uniqueness is enforced on both at creation time by the user storage.
"""

import asyncio
from typing import Optional

import bcrypt
import structlog

from spendwise.config import get_settings
from spendwise.models.user import User
from spendwise.services.storage import DuplicateError, UserStorageInterface


# bcrypt only considers the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class AuthError(Exception):
    """Base exception for authentication errors."""
    pass


class DuplicateIdentityError(AuthError):
    """Username or email already registered."""
    pass


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password. Deliberately does not say which."""
    pass


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_username(username: str) -> str:
    return username.strip()


class CredentialStore:
    """
    Registration and password verification on top of a user storage.
    """

    def __init__(
        self,
        storage: UserStorageInterface,
        rounds: Optional[int] = None,
    ):
        """
        Args:
            storage: Where users live
            rounds: bcrypt work factor. Defaults to the configured value.
        """
        self._storage = storage
        self._rounds = rounds if rounds is not None else get_settings().auth.bcrypt_rounds
        self._logger = structlog.get_logger(__name__)
        self._dummy_hash: Optional[str] = None

    async def register(self, username: str, email: str, raw_password: str) -> User:
        """
        Create a user.

        Raises:
            DuplicateIdentityError: If the username or email is taken
        """
        username = normalize_username(username)
        email = normalize_email(email)

        # Cheap pre-check so a taken identity does not pay for a hash;
        # the storage repeats the check atomically on insert.
        if await self._storage.get_by_email(email) or await self._storage.get_by_username(username):
            raise DuplicateIdentityError("User already exists")

        password_hash = await asyncio.to_thread(self._hash, raw_password)

        try:
            user = await self._storage.create_user(username, email, password_hash)
        except DuplicateError as e:
            raise DuplicateIdentityError("User already exists") from e

        self._logger.info("user_created", user_id=user.id)
        return user

    async def verify(self, email: str, raw_password: str) -> User:
        """
        Check an email/password pair.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        user = await self._storage.get_by_email(normalize_email(email))

        if user is None:
            # Burn the same hashing time as a real check
            stored_hash = await self._get_dummy_hash()
        else:
            stored_hash = user.password_hash

        matches = await asyncio.to_thread(self._check, raw_password, stored_hash)

        if user is None or not matches:
            raise InvalidCredentialsError("Invalid credentials")
        return user

    async def find_by_id(self, user_id: int) -> Optional[User]:
        return await self._storage.get_by_id(user_id)

    def _hash(self, raw_password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(_encode(raw_password), salt).decode("utf-8")

    @staticmethod
    def _check(raw_password: str, stored_hash: str) -> bool:
        return bcrypt.checkpw(_encode(raw_password), stored_hash.encode("utf-8"))

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await asyncio.to_thread(self._hash, "not-a-real-password")
        return self._dummy_hash


def _encode(raw_password: str) -> bytes:
    return raw_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
