"""Keycloak user management operations."""
from __future__ import annotations
import logging
from typing import Any, Optional

from .client import KeycloakClient
from .exceptions import KeycloakError, UserNotFoundError
from .realm import id_from_location

logger = logging.getLogger(__name__)


class UserService:
    """Service for managing Keycloak users."""

    def __init__(self, client: KeycloakClient):
        """Initialize user service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def get_user_by_username(self, realm: str, username: str) -> Optional[dict]:
        """Return the user whose username matches, ignoring case.

        Keycloak stores usernames lower-cased.

        Args:
            realm: Realm name
            username: Username to search for

        Returns:
            User representation or None if not found
        """
        resp = self.client.get(
            f"/admin/realms/{realm}/users", params={"username": username, "exact": "true"}
        )
        wanted = username.lower()
        for user in resp.json() or []:
            if str(user.get("username") or "").lower() == wanted:
                return user
        return None

    def require_user(self, realm: str, username: str) -> dict:
        """Like get_user_by_username() but raises UserNotFoundError."""
        user = self.get_user_by_username(realm, username)
        if not user:
            raise UserNotFoundError(username, realm)
        return user

    def list_users(self, realm: str) -> list[dict]:
        """Return the users of a realm."""
        resp = self.client.get(f"/admin/realms/{realm}/users")
        return resp.json() or []

    def create_user(self, realm: str, payload: dict[str, Any]) -> str:
        """Create a user from a Keycloak user representation.

        The payload is forwarded unchanged; Keycloak validates it.

        Args:
            realm: Realm name
            payload: User representation (username, email, credentials, ...)

        Returns:
            The id of the created user
        """
        resp = self.client.post(f"/admin/realms/{realm}/users", json=payload)
        user_id = id_from_location(resp)
        if not user_id:
            username = payload.get("username")
            if not username:
                raise KeycloakError("User created but Keycloak returned no id and payload has no username")
            user_id = self.require_user(realm, username)["id"]
        logger.info("[user] User '%s' created in realm '%s' (id=%s)", payload.get("username"), realm, user_id)
        return user_id

    def set_password(self, realm: str, user_id: str, password: str, temporary: bool = False) -> None:
        """Reset a user's password."""
        self.client.put(
            f"/admin/realms/{realm}/users/{user_id}/reset-password",
            json={"type": "password", "temporary": temporary, "value": password},
        )
        logger.info("[user] Password set for user %s in realm '%s'", user_id, realm)
