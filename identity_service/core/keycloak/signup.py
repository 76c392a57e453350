"""Tenant signup: realm, client, admin user and initial client roles."""
from __future__ import annotations
import logging

from identity_service.core.models import SignupRequest

from .client import KeycloakClient
from .realm import RealmService
from .roles import RoleService
from .users import UserService

logger = logging.getLogger(__name__)


class SignupService:
    """Provision a new tenant with an admin-authenticated Keycloak client."""

    def __init__(self, client: KeycloakClient):
        """Initialize signup service.

        Args:
            client: Keycloak client holding a master admin token
        """
        self.client = client
        self.realms = RealmService(client)
        self.users = UserService(client)
        self.roles = RoleService(client)

    def signup(self, request: SignupRequest) -> dict:
        """Create the realm, its client, the admin user and requested roles.

        Steps run in order and stop at the first failure; nothing already
        created is rolled back.

        Returns:
            Summary with the realm, client UUID, admin user id and role names
        """
        realm = request.realm_name
        logger.info("[signup] Provisioning tenant %r", request)

        self.realms.create_realm(realm)
        client_uuid = self.realms.create_client(realm, request.client_id, public_client=request.public_client)

        user_id = self.users.create_user(realm, request.admin_user_payload())
        self.roles.assign_realm_management_role(realm, user_id, "realm-admin")

        roles = []
        if request.roles:
            roles = self.roles.create_client_roles(realm, request.client_id, request.roles)

        logger.info("[signup] Tenant '%s' ready (client=%s, admin=%s)", realm, request.client_id, request.admin_username)
        return {
            "realm": realm,
            "client_uuid": client_uuid,
            "admin_user_id": user_id,
            "roles": roles,
        }
