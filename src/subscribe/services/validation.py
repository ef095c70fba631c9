"""Form validation for subscription requests."""

import re

MAX_EMAIL_LENGTH = 254

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# Runs of the same separator are almost always typos or junk
REPEATED_SPECIALS = re.compile(r"\.{2,}|@{2,}|_{2,}|-{2,}")


def normalize_email(email: str | None) -> str:
    """Trim and lower-case an email address. Missing becomes empty."""
    return (email or "").strip().lower()


def is_valid_email(email: str | None) -> bool:
    """Check the structure of an email address.

    Examples:
        is_valid_email("jane@example.com") -> True
        is_valid_email("jane..doe@example.com") -> False
    """
    if not isinstance(email, str) or not email:
        return False
    if len(email) > MAX_EMAIL_LENGTH:
        return False
    if not EMAIL_PATTERN.fullmatch(email):
        return False
    return REPEATED_SPECIALS.search(email) is None


def honeypot_filled(value: str | None) -> bool:
    """True when the hidden field that humans never see has content."""
    return bool(value and value.strip())
