"""
Authentication error taxonomy.

Every error carries a stable ``code`` (for programs and tests) and a
user-facing ``message`` (for the UI). The Session Guard returns these
inside an AuthResult rather than raising them at its callers.
"""


class AuthError(Exception):
    """Base class for authentication failures."""

    code = "auth_error"
    default_message = "An error occurred, please try again"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    """Malformed email, password or required field."""
    code = "validation_error"
    default_message = "Please check the entered data"


class WeakPasswordError(ValidationError):
    code = "weak_password"
    default_message = (
        "Password is too weak. Use at least 8 characters with upper and lower "
        "case letters, digits and special characters"
    )


class DuplicateUserError(AuthError):
    code = "duplicate_user"
    default_message = "A user with this email already exists"


class UserNotFoundError(AuthError):
    code = "user_not_found"
    default_message = "User not found"


class InvalidPasswordError(AuthError):
    code = "invalid_password"
    default_message = "Invalid password"


class CodeExpiredError(AuthError):
    code = "code_expired"
    default_message = "The code has expired. Request a new one"


class InvalidCodeError(AuthError):
    code = "invalid_code"
    default_message = "Invalid code"


class CodeNotIssuedError(InvalidCodeError):
    """A code was supplied but none is outstanding."""
    code = "code_not_issued"
    default_message = "No code was requested. Request a new one"


class NotAuthenticatedError(AuthError):
    code = "not_authenticated"
    default_message = "Please sign in first"
