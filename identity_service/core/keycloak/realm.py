"""Keycloak realm and client management operations."""
from __future__ import annotations
import logging
from typing import Optional

import requests

from .client import KeycloakClient
from .exceptions import ClientNotFoundError, KeycloakAPIError, RealmNotFoundError

logger = logging.getLogger(__name__)


def id_from_location(resp: requests.Response) -> Optional[str]:
    """Extract the created resource id from a Keycloak 201 Location header."""
    location = resp.headers.get("Location") or ""
    location = location.rstrip("/")
    if not location:
        return None
    return location.rsplit("/", 1)[-1] or None


class RealmService:
    """Service for managing Keycloak realms and their clients."""

    def __init__(self, client: KeycloakClient):
        """Initialize realm service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def create_realm(self, realm: str) -> None:
        """Create a new enabled realm.

        Args:
            realm: Realm name

        Raises:
            KeycloakAPIError: If Keycloak rejects the creation (409 when it exists)
        """
        payload = {"realm": realm, "enabled": True}
        try:
            self.client.post("/admin/realms", json=payload)
        except KeycloakAPIError as e:
            if e.conflict:
                logger.warning("[realm] Realm '%s' already exists", realm)
            raise
        logger.info("[realm] Realm '%s' created", realm)

    def _get_in_realm(self, realm: str, path: str, **kwargs) -> requests.Response:
        """GET below /admin/realms/{realm}, mapping 404 to RealmNotFoundError."""
        try:
            return self.client.get(f"/admin/realms/{realm}{path}", **kwargs)
        except KeycloakAPIError as e:
            if e.status_code == 404:
                raise RealmNotFoundError(realm) from e
            raise

    def list_realms(self) -> list[dict]:
        """Return every realm representation visible to the token."""
        resp = self.client.get("/admin/realms")
        return resp.json() or []

    def get_client(self, realm: str, client_id: str) -> Optional[dict]:
        """Return the client representation matching client_id, if it exists.

        Args:
            realm: Realm name
            client_id: Client ID to find

        Returns:
            Client representation or None if not found
        """
        resp = self._get_in_realm(realm, "/clients", params={"clientId": client_id})
        for client in resp.json() or []:
            if client.get("clientId") == client_id:
                return client
        return None

    def get_client_uuid(self, realm: str, client_id: str) -> str:
        """Resolve the internal UUID of a client.

        Raises:
            ClientNotFoundError: If no client with that clientId exists
        """
        client = self.get_client(realm, client_id)
        if not client or not client.get("id"):
            raise ClientNotFoundError(client_id, realm)
        return client["id"]

    def list_clients(self, realm: str) -> list[dict]:
        """Return every client of a realm."""
        resp = self._get_in_realm(realm, "/clients")
        return resp.json() or []

    def create_client(self, realm: str, client_id: str, public_client: bool = True) -> str:
        """Register an OIDC client in a realm.

        Public clients get the standard and direct-access flows; confidential
        clients additionally get a service account.

        Args:
            realm: Realm name
            client_id: Client ID
            public_client: Whether the client is public (no secret)

        Returns:
            Internal UUID of the new client
        """
        payload = {
            "clientId": client_id,
            "enabled": True,
            "protocol": "openid-connect",
            "publicClient": public_client,
            "standardFlowEnabled": True,
            "directAccessGrantsEnabled": True,
            "serviceAccountsEnabled": not public_client,
        }
        if not public_client:
            payload["clientAuthenticatorType"] = "client-secret"

        resp = self.client.post(f"/admin/realms/{realm}/clients", json=payload)
        client_uuid = id_from_location(resp) or self.get_client_uuid(realm, client_id)
        logger.info("[client] Client '%s' created in realm '%s' (public=%s)", client_id, realm, public_client)
        return client_uuid
