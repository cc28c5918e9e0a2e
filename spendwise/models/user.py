"""
User and Session Models for SpendWise

CRITICAL: The password hash never leaves the process.
It is excluded from every dump; the boundary returns PublicUser.
"""

from datetime import datetime

from pydantic import ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from spendwise.models.base import WireModel, utcnow


class PublicUser(WireModel):
    """What clients are allowed to see about a user."""

    id: int
    username: str
    email: str


class User(WireModel):
    """
    A registered user.

    username is stored trimmed, email trimmed and lowercased.
    Both are unique across the store.
    """

    id: int = Field(..., ge=1)
    username: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., max_length=254)
    password_hash: str = Field(..., exclude=True, repr=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> PublicUser:
        return PublicUser(id=self.id, username=self.username, email=self.email)


class CredentialsForm(WireModel):
    """Base for forms carrying a password. Passwords are taken verbatim."""

    model_config = ConfigDict(
        str_strip_whitespace=False,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("username", "email", mode="before", check_fields=False)
    @classmethod
    def strip_identity(cls, v):
        return v.strip() if isinstance(v, str) else v


class RegisterRequest(CredentialsForm):
    """Registration form."""

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    password: str = Field(..., min_length=6, max_length=72, repr=False)


class LoginRequest(CredentialsForm):
    """Login form."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72, repr=False)


class SessionToken(WireModel):
    """A signed session credential and the claims it carries."""

    token: str = Field(..., repr=False)
    user_id: int
    issued_at: datetime
    expires_at: datetime


class SessionCookie(WireModel):
    """
    Instruction for the transport layer to set or clear the session cookie.

    A cookie with max_age 0 and an empty value clears the session.
    """

    name: str
    value: str = Field(default="", repr=False)
    max_age: int = Field(ge=0)
    http_only: bool = True
    secure: bool = False

    @property
    def is_clear(self) -> bool:
        return self.max_age == 0
