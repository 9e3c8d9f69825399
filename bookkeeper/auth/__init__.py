"""
Authentication Package

Registration, login with attempt counting, verification codes,
the current session and the inactivity watchdog.
"""

from bookkeeper.auth.errors import (
    AuthError,
    CodeExpiredError,
    CodeNotIssuedError,
    DuplicateUserError,
    InvalidCodeError,
    InvalidPasswordError,
    NotAuthenticatedError,
    UserNotFoundError,
    ValidationError,
    WeakPasswordError,
)
from bookkeeper.auth.guard import SessionGuard
from bookkeeper.auth.passwords import (
    PasswordHasher,
    PasswordStrength,
    StrengthReport,
    evaluate_password_strength,
)
from bookkeeper.auth.results import AuthResult, AuthStatus, LoginState
from bookkeeper.auth.sanitize import sanitize_email, sanitize_text, validate_email
from bookkeeper.auth.watchdog import (
    ActivityEvents,
    AsyncioScheduler,
    InactivityWatchdog,
    Scheduler,
)

__all__ = [
    # Errors
    "AuthError",
    "CodeExpiredError",
    "CodeNotIssuedError",
    "DuplicateUserError",
    "InvalidCodeError",
    "InvalidPasswordError",
    "NotAuthenticatedError",
    "UserNotFoundError",
    "ValidationError",
    "WeakPasswordError",
    # Guard
    "SessionGuard",
    "AuthResult",
    "AuthStatus",
    "LoginState",
    # Passwords
    "PasswordHasher",
    "PasswordStrength",
    "StrengthReport",
    "evaluate_password_strength",
    # Input normalization
    "sanitize_email",
    "sanitize_text",
    "validate_email",
    # Watchdog
    "ActivityEvents",
    "AsyncioScheduler",
    "InactivityWatchdog",
    "Scheduler",
]
