"""
Username/password rules for accounts.

Accounts are identified by username; the identity provider only understands
email addresses, so each username maps to a synthetic address.
"""
import re

from filerelay.errors import BadRequest

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,30}$")
MIN_PASSWORD_LENGTH = 6


def validate_username(username: str) -> str:
    username = (username or "").strip()
    if not USERNAME_PATTERN.match(username):
        raise BadRequest(
            "Invalid username",
            details="Username must be 3-30 characters: letters, numbers and underscores only",
        )
    return username


def validate_password(password: str) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(
            "Invalid password",
            details=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    return password


def email_for_username(username: str, domain: str) -> str:
    """Synthetic email address the provider stores for a username."""
    return f"{username.lower()}@{domain}"
