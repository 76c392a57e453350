"""Keycloak client role management operations."""
from __future__ import annotations
import logging
from typing import Iterable
from urllib.parse import quote

from identity_service.core.models import RoleRequest

from .client import KeycloakClient
from .exceptions import KeycloakAPIError, RoleNotFoundError
from .realm import RealmService
from .users import UserService

logger = logging.getLogger(__name__)

REALM_MANAGEMENT_CLIENT = "realm-management"


class RoleService:
    """Service for managing client roles and their assignment to users."""

    def __init__(self, client: KeycloakClient):
        """Initialize role service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client
        self.realms = RealmService(client)
        self.users = UserService(client)

    def _role_path(self, realm: str, client_uuid: str, role_name: str) -> str:
        # role names are free text
        return f"/admin/realms/{realm}/clients/{client_uuid}/roles/{quote(role_name, safe='')}"

    def get_client_role(self, realm: str, client_uuid: str, role_name: str) -> dict:
        """Return a client role representation.

        Raises:
            RoleNotFoundError: If the role does not exist on the client
        """
        try:
            resp = self.client.get(self._role_path(realm, client_uuid, role_name))
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                raise RoleNotFoundError(role_name, realm) from exc
            raise
        return resp.json()

    def create_client_roles(self, realm: str, client_id: str, roles: Iterable[RoleRequest]) -> list[str]:
        """Create every requested role on a client.

        Args:
            realm: Realm name
            client_id: Client ID (not UUID)
            roles: Role requests

        Returns:
            Names of the roles created, in request order
        """
        client_uuid = self.realms.get_client_uuid(realm, client_id)
        created = []
        for role in roles:
            self.client.post(
                f"/admin/realms/{realm}/clients/{client_uuid}/roles",
                json=role.to_representation(),
            )
            created.append(role.name)
            logger.info("[role] Role '%s' created on client '%s' in realm '%s'", role.name, client_id, realm)
        return created

    def update_client_role(self, realm: str, client_uuid: str, role_name: str, role: RoleRequest) -> bool:
        """Replace the representation of an existing client role.

        Returns:
            True when Keycloak accepted the update
        """
        resp = self.client.put(
            self._role_path(realm, client_uuid, role_name),
            json=role.to_representation(),
        )
        ok = resp.status_code in (200, 204)
        if ok:
            logger.info("[role] Role '%s' updated on client %s in realm '%s'", role_name, client_uuid, realm)
        return ok

    def delete_client_role(self, realm: str, client_uuid: str, role_name: str) -> bool:
        """Delete a client role.

        Returns:
            True when Keycloak accepted the deletion
        """
        resp = self.client.delete(self._role_path(realm, client_uuid, role_name))
        ok = resp.status_code in (200, 204)
        if ok:
            logger.info("[role] Role '%s' deleted from client %s in realm '%s'", role_name, client_uuid, realm)
        return ok

    def assign_client_role(self, realm: str, username: str, client_id: str, role_name: str) -> None:
        """Assign a client-level role to a user.

        Raises:
            UserNotFoundError: If the user does not exist
            ClientNotFoundError: If the client does not exist
            RoleNotFoundError: If the role does not exist on the client
        """
        user = self.users.require_user(realm, username)
        client_uuid = self.realms.get_client_uuid(realm, client_id)
        self._map_client_role(realm, user["id"], client_uuid, role_name)
        logger.info("[role] Assigned '%s' from '%s' to '%s' in realm '%s'", role_name, client_id, username, realm)

    def assign_realm_management_role(self, realm: str, user_id: str, role_name: str = "realm-admin") -> None:
        """Grant a realm-management client role (e.g. realm-admin) to a user id."""
        client_uuid = self.realms.get_client_uuid(realm, REALM_MANAGEMENT_CLIENT)
        self._map_client_role(realm, user_id, client_uuid, role_name)
        logger.info("[role] Granted %s/%s to user %s in realm '%s'", REALM_MANAGEMENT_CLIENT, role_name, user_id, realm)

    def _map_client_role(self, realm: str, user_id: str, client_uuid: str, role_name: str) -> None:
        role_rep = self.get_client_role(realm, client_uuid, role_name)
        self.client.post(
            f"/admin/realms/{realm}/users/{user_id}/role-mappings/clients/{client_uuid}",
            json=[{"id": role_rep["id"], "name": role_rep["name"]}],
        )
