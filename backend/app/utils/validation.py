"""
Validation utilities for input validation and error handling.
"""
import re
from datetime import date, datetime
from typing import Any

from fastapi import HTTPException

PHONE_DIGITS = 8

DEGREE_LEVELS = ("Bachelor", "Master", "Engineering")
APPLICATION_TYPES = ("Solo", "Pair")
USER_ROLES = ("user", "admin")

_NON_DIGITS = re.compile(r"\D+")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def validate_account_email(email: str) -> str:
    """Validate email format for user accounts."""
    if not email or not isinstance(email, str):
        raise HTTPException(status_code=400, detail="Email is required")

    email = normalize_email(email)
    if len(email) > 255:
        raise HTTPException(status_code=400, detail="Email too long (max 255 characters)")

    # Basic email regex
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    if not re.match(pattern, email):
        raise HTTPException(status_code=400, detail="Invalid email format")

    return email


def validate_application_email(email: str | None) -> str:
    """
    Minimal applicant email check: an "@" followed later by a ".".

    Deliberately looser than account emails; the form accepts anything a
    mail client would plausibly take.
    """
    email = normalize_email(email)
    at = email.find("@")
    if at <= 0 or email.rfind(".") < at or len(email) > 255:
        raise HTTPException(status_code=400, detail="Invalid email address")
    return email


def normalize_phone(phone: str | None) -> str:
    """Strip everything but digits; the result must be exactly 8 digits long."""
    digits = _NON_DIGITS.sub("", phone or "")
    if len(digits) != PHONE_DIGITS:
        raise HTTPException(
            status_code=400,
            detail=f"Phone number must contain exactly {PHONE_DIGITS} digits",
        )
    return digits


def parse_start_date(value: str | None) -> date | None:
    # A malformed date is dropped rather than rejected; the field is optional.
    if not value or not value.strip():
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def validate_choice(value: Any, field_name: str, choices: tuple[str, ...]) -> str:
    """Validate that a value is one of a fixed set of choices (case-sensitive)."""
    if value not in choices:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {field_name}. Must be one of: {', '.join(choices)}",
        )
    return value


def validate_string_field(value: Any, field_name: str, max_length: int = 1000) -> str:
    """Validate a required string field: trimmed, non-empty, bounded length."""
    if value is None:
        raise HTTPException(status_code=400, detail=f"{field_name} is required")

    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{field_name} must be a string")

    value = value.strip()

    if not value:
        raise HTTPException(status_code=400, detail=f"{field_name} cannot be empty")

    if len(value) > max_length:
        raise HTTPException(
            status_code=400,
            detail=f"{field_name} must not exceed {max_length} characters"
        )

    return value


def validate_role(role: str | None) -> str:
    """Validate user role; an empty role means a regular user."""
    if role is None or (isinstance(role, str) and not role.strip()):
        return "user"
    if not isinstance(role, str):
        raise HTTPException(status_code=400, detail="Role must be a string")

    role = role.strip().lower()
    if role not in USER_ROLES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid role. Must be one of: {', '.join(USER_ROLES)}"
        )

    return role


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent directory traversal and other attacks."""
    if not filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    # Remove any path separators
    filename = filename.replace("/", "_").replace("\\", "_")

    # Remove any null bytes
    filename = filename.replace("\x00", "")

    # Remove directory traversal sequences
    filename = filename.replace("..", "_")

    # Remove leading dots to prevent hidden files
    filename = filename.lstrip(".")

    # Leave room for the nanosecond prefix
    if len(filename) > 200:
        raise HTTPException(status_code=400, detail="Filename too long")

    # Ensure it has some content
    if not filename or filename == "_":
        raise HTTPException(status_code=400, detail="Invalid filename")

    return filename
