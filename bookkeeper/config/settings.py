"""
Configuration Management for Bazar Bookkeeper

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for the financial assistant."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Upper bound on a single assistant request"
    )


class SecuritySettings(BaseSettings):
    """Login, verification code and session watchdog configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    max_failed_attempts: int = Field(
        default=4,
        ge=1,
        description="Failed logins before email verification kicks in"
    )
    attempt_window_minutes: int = Field(
        default=60,
        ge=1,
        description="Failed attempt counter resets after this much quiet time"
    )
    two_factor_ttl_minutes: int = Field(
        default=5,
        ge=1,
        description="Lifetime of a second-factor code"
    )
    email_verification_ttl_minutes: int = Field(
        default=15,
        ge=1,
        description="Lifetime of an email verification code"
    )
    auto_logout_minutes: int = Field(
        default=30,
        ge=1,
        description="Inactivity timeout before automatic logout"
    )
    password_hash_rounds: int = Field(
        default=600_000,
        ge=1000,
        description="PBKDF2 rounds for new password hashes"
    )
    code_length: int = Field(
        default=6,
        ge=4,
        le=10,
        description="Number of digits in verification codes"
    )
    max_code_attempts: int = Field(
        default=5,
        ge=1,
        description="Wrong guesses before a verification code stops working"
    )


class StorageSettings(BaseSettings):
    """Key-value storage backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="sqlite",
        description="Storage backend: 'memory' or 'sqlite'"
    )
    sqlite_path: str = Field(
        default="data/bookkeeper.sqlite3",
        description="Path of the SQLite database file"
    )

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Only the backends we ship are accepted."""
        normalized = v.strip().lower()
        if normalized not in {"memory", "sqlite"}:
            raise ValueError(f"Unsupported storage backend: {v}")
        return normalized

    @property
    def sqlite_file(self) -> Path:
        return Path(self.sqlite_path).expanduser().resolve(strict=False)


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
        description="Root log level"
    )

    # Defaults for new accounts
    default_language: str = Field(
        default="en",
        pattern="^(en|ru|ky)$",
        description="Language for new accounts and the assistant"
    )
    default_currency: str = Field(
        default="KGS",
        min_length=3,
        max_length=3,
        description="ISO currency code for new accounts"
    )

    # Demo accounts
    seed_demo_data: bool = Field(
        default=True,
        description="Create the demo accounts on startup if missing"
    )

    # Assistant conversation
    history_window: int = Field(
        default=8,
        ge=1,
        le=50,
        description="Number of recent chat messages sent as context"
    )


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
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def security(self) -> SecuritySettings:
        return SecuritySettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

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

    for name in ("gemini", "security", "storage", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
