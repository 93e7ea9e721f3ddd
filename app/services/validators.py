"""Input validation rules shared by request schemas and the auth service."""

import re
from dataclasses import dataclass, field

MIN_PASSWORD_LENGTH = 8

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


@dataclass
class PasswordValidation:
    """Outcome of a password strength check."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_password_strength(password: str) -> PasswordValidation:
    """Check a password against the strength policy, collecting every violated rule."""
    errors = []

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")

    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")

    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")

    return PasswordValidation(is_valid=not errors, errors=errors)


def is_valid_email(email: str) -> bool:
    """Check for a local@domain.tld shape without stray dots."""
    if ".." in email or email.startswith(".") or email.endswith("."):
        return False
    if "@." in email or ".@" in email:
        return False
    return EMAIL_PATTERN.fullmatch(email) is not None
