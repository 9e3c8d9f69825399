"""
Password strength scoring and hashing.

Scoring rubric (one point each):
- at least 8 characters
- an uppercase letter
- a lowercase letter
- a digit
- a special character from !@#$%^&*(),.?":{}|<>

weak: 0-2, medium: 3-4, strong: 5. Registration rejects weak passwords.

Hashing uses passlib's pbkdf2_sha256 with a random per-record salt.
"""

import re
from enum import Enum
from typing import NamedTuple

from passlib.context import CryptContext


SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'
MIN_PASSWORD_LENGTH = 8

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"[0-9]")
_SPECIAL = re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]")


class PasswordStrength(str, Enum):
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


class StrengthReport(NamedTuple):
    score: int
    label: PasswordStrength


def evaluate_password_strength(password: str) -> StrengthReport:
    """Score a password against the five-point rubric."""
    checks = (
        len(password) >= MIN_PASSWORD_LENGTH,
        _UPPER.search(password) is not None,
        _LOWER.search(password) is not None,
        _DIGIT.search(password) is not None,
        _SPECIAL.search(password) is not None,
    )
    score = sum(checks)

    if score <= 2:
        label = PasswordStrength.WEAK
    elif score <= 4:
        label = PasswordStrength.MEDIUM
    else:
        label = PasswordStrength.STRONG
    return StrengthReport(score=score, label=label)


class PasswordHasher:
    """
    Salted one-way password hashing.

    Stored hashes embed their own salt and round count, so changing
    ``rounds`` only affects newly created hashes.
    """

    def __init__(self, rounds: int = 600_000):
        self._context = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """False for a mismatch or an unrecognized hash format."""
        try:
            return self._context.verify(password, password_hash)
        except ValueError:
            return False
