"""
Configuration Management for SpendWise

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what secrets and tunables exist and
ensures all required configuration is validated at startup.
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    """Credential hashing and session token configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    jwt_secret: str = Field(
        ...,
        min_length=16,
        description="Secret used to sign session tokens"
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="HMAC algorithm for session tokens"
    )
    session_ttl_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="How long a session token stays valid"
    )
    # bcrypt accepts 4..31; anything above 16 makes a login take seconds
    bcrypt_rounds: int = Field(
        default=10,
        ge=4,
        le=16,
        description="bcrypt work factor"
    )
    cookie_name: str = Field(
        default="token",
        description="Name of the session cookie"
    )
    cookie_secure: bool = Field(
        default=False,
        description="Only send the session cookie over HTTPS"
    )

    @field_validator('jwt_algorithm')
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Only symmetric HMAC algorithms are supported."""
        allowed = {"HS256", "HS384", "HS512"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported algorithm: {v}. Allowed: {sorted(allowed)}")
        return v.upper()

    @property
    def session_ttl(self) -> timedelta:
        """Session validity window."""
        return timedelta(days=self.session_ttl_days)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for the structured log"
    )

    # Pagination
    default_page_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Page size used when the caller does not pass one"
    )
    max_page_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Upper bound for the requested page size"
    )

    # Audit
    audit_buffer_size: int = Field(
        default=1000,
        ge=1,
        description="Number of recent audit events kept in memory"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in levels:
            raise ValueError(f"Unknown log level: {v}")
        return v.upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.auth
        results["auth"] = True
    except Exception as e:
        results["auth"] = False
        results["auth_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
