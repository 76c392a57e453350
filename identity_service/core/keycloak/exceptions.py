"""Keycloak-specific exceptions for error handling."""
from __future__ import annotations
from typing import Optional


class KeycloakError(Exception):
    """Base exception for all Keycloak operations."""
    pass


class KeycloakAPIError(KeycloakError):
    """HTTP error from Keycloak Admin or OIDC API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")

    @classmethod
    def from_response(cls, resp) -> "KeycloakAPIError":
        """Build the error from a failed response.

        The admin API reports `errorMessage`, the OIDC endpoints report
        `error` / `error_description`; anything else falls back to the raw body.
        """
        message = ""
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("errorMessage") or body.get("error_description") or body.get("error") or ""
        return cls(resp.status_code, str(message or resp.text or "no response body"), resp.url)

    @property
    def conflict(self) -> bool:
        """Keycloak answers 409 when the realm/client/user/role already exists."""
        return self.status_code == 409


class KeycloakNotFoundError(KeycloakError):
    """A named realm resource does not exist."""

    kind = "Resource"

    def __init__(self, name: str, realm: Optional[str] = None):
        self.name = name
        self.realm = realm
        where = f" in realm '{realm}'" if realm else ""
        super().__init__(f"{self.kind} '{name}' not found{where}")


class RealmNotFoundError(KeycloakNotFoundError):
    kind = "Realm"


class ClientNotFoundError(KeycloakNotFoundError):
    kind = "Client"


class RoleNotFoundError(KeycloakNotFoundError):
    kind = "Role"


class UserNotFoundError(KeycloakNotFoundError):
    kind = "User"
