"""Form validation shared by accounts and profiles."""

from __future__ import annotations

import re

from mindscribe.shared.errors import ValidationError

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def require_email(email: str) -> str:
    """Return the trimmed email or raise ValidationError."""
    email = email.strip()
    if not is_valid_email(email):
        raise ValidationError("Please enter a valid email address")
    return email


def require_fields(**fields: str) -> None:
    """Raise ValidationError if any field is empty after trimming."""
    if any(not (value or "").strip() for value in fields.values()):
        raise ValidationError("Please fill in all fields")


def check_new_password(password: str, confirm: str, min_length: int = 6) -> None:
    """Apply the password rules used by registration and password change."""
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters long")
    if password != confirm:
        raise ValidationError("Passwords do not match")
