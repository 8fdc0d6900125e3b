"""Sign-up, profile and password validation.

All checks run before anything is written and raise ``ValidationError``
with the message shown to the user.
"""
import re
from typing import Iterable, Optional

from config.business_config import business_config
from config.settings import settings
from errors import ValidationError

USERNAME_MIN_LENGTH = 3


def is_allowed_email(email: Optional[str],
                     domains: Optional[Iterable[str]] = None) -> bool:
    """True when ``email`` ends with ``@<domain>`` for an allowed domain."""
    if not email or not isinstance(email, str):
        return False
    normalized = email.strip().lower()
    allowed = settings.allowed_email_domains if domains is None else domains
    return any(normalized.endswith("@" + d.lower()) for d in allowed)


def allowed_domains_text(domains: Optional[Iterable[str]] = None) -> str:
    """``@a.com``, ``@a.com or @b.com``, ``@a.com, @b.com or @c.com``."""
    items = [f"@{d}" for d in (settings.allowed_email_domains if domains is None else domains)]
    if len(items) <= 1:
        return "".join(items)
    return f"{', '.join(items[:-1])} or {items[-1]}"


def password_strength(password: str) -> int:
    """Strength score 0-100 shown next to the sign-up password field."""
    score = 0
    if len(password) >= 8:
        score += 25
    if len(password) >= 12:
        score += 15
    if re.search(r"[A-Z]", password):
        score += 20
    if re.search(r"[a-z]", password):
        score += 20
    if re.search(r"\d", password):
        score += 10
    if re.search(r"[^A-Za-z0-9]", password):
        score += 10
    return score


def validate_password(password: Optional[str], confirm: Optional[str] = None,
                      label: str = "Password") -> None:
    """Length and confirmation checks.

    Raises:
        ValidationError: Missing, too short, or confirmation mismatch.
    """
    if not password:
        raise ValidationError(f"{label} is required")
    if len(password) < settings.min_password_length:
        raise ValidationError(
            f"{label} must be at least {settings.min_password_length} characters long"
        )
    if confirm is not None and password != confirm:
        raise ValidationError(f"{label}s do not match")


def validate_username(username: Optional[str]) -> str:
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username is required")
    if len(username) < USERNAME_MIN_LENGTH:
        raise ValidationError(
            f"Username must be at least {USERNAME_MIN_LENGTH} characters long"
        )
    return username


def validate_signup(full_name: Optional[str], email: Optional[str],
                    password: Optional[str], confirm_password: Optional[str],
                    username: Optional[str] = None) -> None:
    """Validate the sign-up form in the order the form shows errors.

    Raises:
        ValidationError: First failing rule.
    """
    if not (full_name or "").strip():
        raise ValidationError("Full name is required")
    if not (email or "").strip():
        raise ValidationError("Email address is required")
    if not is_allowed_email(email):
        raise ValidationError(
            business_config.get_branding_messages()["signup_restriction_message"]
        )
    if username is not None:
        validate_username(username)
    validate_password(password, confirm_password)
