"""
Typed results returned by the Session Guard.

Expected failures (wrong password, expired code, ...) are reported as a
``failed`` result carrying the AuthError, never raised at the caller.
Verification steps are statuses, not errors.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from bookkeeper.auth.errors import AuthError
from bookkeeper.models.user import User


class LoginState(str, Enum):
    """Where a single login attempt ended up."""
    START = "start"
    CREDENTIALS_CHECKED = "credentials_checked"
    SECOND_FACTOR_PENDING = "second_factor_pending"
    EMAIL_VERIFICATION_PENDING = "email_verification_pending"
    AUTHENTICATED = "authenticated"
    TERMINAL = "terminal"


class AuthStatus(str, Enum):
    AUTHENTICATED = "authenticated"
    REGISTERED = "registered"
    SECOND_FACTOR_REQUIRED = "second_factor_required"
    EMAIL_VERIFICATION_REQUIRED = "email_verification_required"
    FAILED = "failed"


class AuthResult(BaseModel):
    """Outcome of register() or login()."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: AuthStatus
    user: Optional[User] = None
    error: Optional[AuthError] = None
    message: str = ""
    code_expires_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.status in (AuthStatus.AUTHENTICATED, AuthStatus.REGISTERED)

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None

    @property
    def state(self) -> LoginState:
        if self.status == AuthStatus.SECOND_FACTOR_REQUIRED:
            return LoginState.SECOND_FACTOR_PENDING
        if self.status == AuthStatus.EMAIL_VERIFICATION_REQUIRED:
            return LoginState.EMAIL_VERIFICATION_PENDING
        if self.ok:
            return LoginState.AUTHENTICATED
        return LoginState.TERMINAL

    @classmethod
    def failure(cls, error: AuthError) -> "AuthResult":
        return cls(status=AuthStatus.FAILED, error=error, message=error.message)

    @classmethod
    def success(cls, user: User, status: AuthStatus = AuthStatus.AUTHENTICATED) -> "AuthResult":
        return cls(status=status, user=user)
