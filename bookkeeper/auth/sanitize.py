"""
Input normalization for account fields.

Emails are compared after normalization, so two spellings of the same
address ("  Demo@Example.com ", "demo@example.com") map to one account.
"""

import re

# Pragmatic RFC 5322 subset: dotted local part, hostname labels of 1-63
# characters, at least one dot in the domain.
EMAIL_PATTERN = re.compile(
    r"^[a-z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
    r"(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)+$",
    re.IGNORECASE,
)

BUSINESS_NAME_MAX_LENGTH = 100
PHONE_MAX_LENGTH = 30
EMAIL_MAX_LENGTH = 254

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")
_REPEATED_AT = re.compile(r"@+")
_HTML_BRACKETS = re.compile(r"[<>]")


def sanitize_email(email: str) -> str:
    """Lower-case, trim, drop control chars and whitespace, collapse '@@'."""
    if not email:
        return ""
    cleaned = email.strip().lower()
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    cleaned = _WHITESPACE.sub("", cleaned)
    return _REPEATED_AT.sub("@", cleaned)


def validate_email(email: str) -> bool:
    """True if the (already sanitized) email looks deliverable."""
    if not email or len(email) > EMAIL_MAX_LENGTH:
        return False
    return EMAIL_PATTERN.match(email) is not None


def sanitize_text(text: str, max_length: int) -> str:
    """Strip control chars and angle brackets, cap length, trim."""
    if not text:
        return ""
    cleaned = _CONTROL_CHARS.sub("", text)
    cleaned = _HTML_BRACKETS.sub("", cleaned)
    return cleaned[:max_length].strip()
