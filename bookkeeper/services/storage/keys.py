"""Storage key naming: '<namespace>_<id-or-email>'."""

SESSION_USER = "bazar_user"
ALL_USERS = "bazar_users"

TRANSACTIONS_PREFIX = "bazar_transactions_"
LOGIN_ATTEMPTS_PREFIX = "login_attempts_"
TWO_FACTOR_PREFIX = "2fa_code_"
EMAIL_VERIFICATION_PREFIX = "email_verification_"
AUDIT_PREFIX = "bazar_audit_"


def transactions_key(user_id: str) -> str:
    return f"{TRANSACTIONS_PREFIX}{user_id}"


def login_attempts_key(email: str) -> str:
    return f"{LOGIN_ATTEMPTS_PREFIX}{email}"


def two_factor_key(email: str) -> str:
    return f"{TWO_FACTOR_PREFIX}{email}"


def email_verification_key(email: str) -> str:
    return f"{EMAIL_VERIFICATION_PREFIX}{email}"


def audit_key(event_id: str) -> str:
    return f"{AUDIT_PREFIX}{event_id}"
