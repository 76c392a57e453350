"""Keycloak Admin API client library.

Architecture:
- client.py: HTTP client, token issuance (password grant)
- realm.py: Realm and client management
- users.py: User creation and lookup
- roles.py: Client role management and assignment
- tokens.py: Token checks against the userinfo endpoint
- signup.py: Tenant provisioning (realm + client + admin user)
- exceptions.py: Typed exceptions for error handling

Usage:
    from identity_service.core.keycloak import KeycloakClient, RealmService

    client = KeycloakClient("http://keycloak:8080")
    client.authenticate_admin("admin", "password")
    realms = RealmService(client).list_realms()
"""
from .client import (
    KeycloakClient,
    request_token,
    get_admin_token,
    create_client_with_token,
    token_endpoint,
    REQUEST_TIMEOUT,
)
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    KeycloakNotFoundError,
    RealmNotFoundError,
    ClientNotFoundError,
    RoleNotFoundError,
    UserNotFoundError,
)
from .realm import RealmService, id_from_location
from .users import UserService
from .roles import RoleService, REALM_MANAGEMENT_CLIENT
from .tokens import TokenService
from .signup import SignupService

__all__ = [
    # Client
    "KeycloakClient",
    "request_token",
    "get_admin_token",
    "create_client_with_token",
    "token_endpoint",
    "REQUEST_TIMEOUT",

    # Exceptions
    "KeycloakError",
    "KeycloakAPIError",
    "KeycloakNotFoundError",
    "RealmNotFoundError",
    "ClientNotFoundError",
    "RoleNotFoundError",
    "UserNotFoundError",

    # Services
    "RealmService",
    "UserService",
    "RoleService",
    "TokenService",
    "SignupService",
    "REALM_MANAGEMENT_CLIENT",
    "id_from_location",
]
