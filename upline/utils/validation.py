"""Input validation utilities."""

import re

from upline.config.constants import (
    EMAIL_MAX_LENGTH,
    FULL_NAME_MAX_LENGTH,
    MAX_PAGE_SIZE,
)
from upline.utils.exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email(email: str) -> bool:
    """
    Validate email format.

    Args:
        email: Email address

    Returns:
        True if valid
    """
    if not email or not isinstance(email, str):
        return False

    if len(email) > EMAIL_MAX_LENGTH:
        return False

    return bool(EMAIL_PATTERN.match(email))


def normalize_email(email: str) -> str:
    """
    Normalize email for storage and lookups.

    Args:
        email: Email address

    Returns:
        Stripped, lower-cased email

    Raises:
        ValidationError: If email is invalid
    """
    normalized = sanitize_input(email or "", EMAIL_MAX_LENGTH + 1).lower()
    if not validate_email(normalized):
        raise ValidationError("Invalid email address")
    return normalized


def normalize_full_name(full_name: str) -> str:
    """
    Normalize a display name.

    Raises:
        ValidationError: If name is blank or too long
    """
    if not isinstance(full_name, str):
        raise ValidationError("Full name is required")
    name = full_name.strip().replace("\x00", "")
    if not name:
        raise ValidationError("Full name is required")
    if len(name) > FULL_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Full name must be at most {FULL_NAME_MAX_LENGTH} characters"
        )
    return name


def normalize_referral_code(code: str | None) -> str | None:
    """
    Normalize a free-text referral code.

    Args:
        code: Code as typed by the user (may be None or blank)

    Returns:
        Stripped code, or None if nothing was entered
    """
    if code is None:
        return None
    code = sanitize_input(code, 64)
    return code or None


def sanitize_input(text: str, max_length: int = 500) -> str:
    """
    Sanitize user input.

    Args:
        text: User input
        max_length: Maximum length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Trim whitespace
    text = text.strip()

    # Limit length
    if len(text) > max_length:
        text = text[:max_length]

    # Remove null bytes
    text = text.replace("\x00", "")

    return text


def validate_limit(limit: int) -> int:
    """
    Check the size of a list query.

    Raises:
        ValidationError: limit is not an integer in 1..MAX_PAGE_SIZE
    """
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError("limit must be an integer")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    return limit


def validate_pagination(page: int, limit: int) -> tuple[int, int]:
    """
    Check paging arguments of list queries.

    Args:
        page: Requested page, values below 1 mean the first page
        limit: Items per page (1..MAX_PAGE_SIZE)

    Returns:
        (page, offset)

    Raises:
        ValidationError: limit out of range
    """
    validate_limit(limit)
    page = max(page, 1)
    return page, (page - 1) * limit
