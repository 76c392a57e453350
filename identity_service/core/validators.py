"""Input validation helpers for tenant signup and role payloads."""
from __future__ import annotations
import re

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,254}$")
HTTP_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"}


def validate_identifier(value: str, field: str) -> str:
    """Validate a realm name or client id.

    These values end up in Keycloak admin URL paths, so only URL-safe
    characters are accepted.

    Args:
        value: Raw input
        field: Field name for error messages (e.g., "realmName")

    Returns:
        Trimmed identifier

    Raises:
        ValueError: If the identifier is missing or malformed
    """
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{field} is required")
    if not IDENTIFIER_PATTERN.match(value):
        raise ValueError(f"{field} may only contain letters, digits, '.', '-' and '_'")
    return value


def validate_role_name(value: str, field: str = "name") -> str:
    """Validate a role name.

    Keycloak role names are free text (`orders:read`, `Order Reader`), so
    only a blank name is rejected. The name is returned unchanged.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} is required")
    return value


def validate_username(raw: str) -> str:
    """Validate a username; Keycloak stores usernames lower-cased."""
    username = (raw or "").strip().lower()
    if len(username) < 3:
        raise ValueError("Username must be at least 3 characters")
    if len(username) > 255:
        raise ValueError("Username must not exceed 255 characters")
    if any(char.isspace() for char in username):
        raise ValueError("Username must not contain whitespace")
    return username


def validate_email(email: str) -> str:
    """Validate email address.

    Returns:
        Normalized email address

    Raises:
        ValueError: If email is invalid
    """
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValueError("Invalid email format")

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain:
        raise ValueError("Invalid email format")
    if len(email) > 254:
        raise ValueError("Email exceeds maximum length")

    return email


def validate_password(password: str) -> str:
    if not password:
        raise ValueError("Password is required")
    return password


def validate_http_method(method: str) -> str:
    """Upper-case and check an HTTP method name used in role URL entries."""
    normalized = (method or "GET").strip().upper()
    if normalized not in HTTP_METHODS:
        raise ValueError(f"Unsupported HTTP method '{method}'")
    return normalized
