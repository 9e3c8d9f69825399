"""
User and Credential Models

The session record and the stored account are deliberately separate types:
- User: what the rest of the application sees (session record)
- StoredUser: the account entry in the user collection, carrying the
  password hash and verification flags

CRITICAL: A StoredUser is never written to the session key.
Use StoredUser.to_public() to drop the credential fields.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Language(str, Enum):
    """Supported interface languages."""
    EN = "en"
    RU = "ru"
    KY = "ky"


class UserRole(str, Enum):
    OWNER = "owner"
    ACCOUNTANT = "accountant"
    STAFF = "staff"


class SubscriptionPlan(str, Enum):
    FREE = "free"
    PRO = "pro"
    BUSINESS = "business"


class CodePurpose(str, Enum):
    """What a transient code unlocks."""
    TWO_FACTOR = "two_factor"
    EMAIL_VERIFICATION = "email_verification"


class User(BaseModel):
    """
    The current-session view of an account.

    Contains no credential material.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Opaque user identifier"
    )
    business_name: str = Field(
        ...,
        max_length=100,
        description="Business or trading name"
    )
    email: str = Field(
        ...,
        max_length=254,
        description="Normalized (lower-cased, trimmed) email"
    )
    phone: str = Field(
        default="",
        max_length=30,
    )
    role: UserRole = UserRole.OWNER
    language: Language = Language.EN
    currency: str = Field(
        default="KGS",
        min_length=3,
        max_length=3,
    )
    subscription_plan: SubscriptionPlan = SubscriptionPlan.FREE
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class StoredUser(User):
    """
    An entry in the persisted user collection.

    password_hash is a salted one-way hash; the plain password is never stored.
    """

    password_hash: str = Field(
        ...,
        min_length=1,
        description="Salted one-way password hash"
    )
    two_factor_enabled: bool = False
    email_confirm_enabled: bool = False

    def to_public(self) -> User:
        """Strip credential and verification fields."""
        return User.model_validate(
            self.model_dump(exclude={"password_hash", "two_factor_enabled", "email_confirm_enabled"})
        )


# Fields a signed-in user may change through update_user()
UPDATABLE_USER_FIELDS = frozenset({
    "business_name",
    "phone",
    "role",
    "language",
    "currency",
    "subscription_plan",
})


class LoginAttemptRecord(BaseModel):
    """Failed login counter for one email address."""

    count: int = Field(default=0, ge=0)
    last_attempt: datetime

    def is_stale(self, now: datetime, window_seconds: float) -> bool:
        """True if the window since the last attempt has elapsed."""
        return (now - self.last_attempt).total_seconds() > window_seconds


class TransientCode(BaseModel):
    """
    A short-lived numeric code (second factor or email verification).

    Consumed on successful verification. Wrong guesses are counted on
    the record; once the limit is reached the code is treated as
    expired until the next issue overwrites it.
    """

    code: str = Field(
        ...,
        pattern=r"^[0-9]{4,10}$",
    )
    expires_at: datetime
    purpose: CodePurpose
    failed_attempts: int = Field(default=0, ge=0)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_usable(self, now: datetime, max_attempts: int) -> bool:
        return not self.is_expired(now) and self.failed_attempts < max_attempts
