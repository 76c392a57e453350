"""Low-level HTTP client for Keycloak Admin API.

Handles token issuance and authenticated HTTP operations.
"""
from __future__ import annotations
import logging
from typing import Optional, Dict, Any

import requests

from .exceptions import KeycloakAPIError

REQUEST_TIMEOUT = 10

logger = logging.getLogger(__name__)


class KeycloakClient:
    """HTTP client for Keycloak Admin API.

    The client carries a single bearer token: either a master admin token
    obtained through authenticate_admin() or a token supplied by the caller
    of the HTTP API (see create_client_with_token()).

    Usage:
        client = KeycloakClient("http://keycloak:8080")
        client.authenticate_admin("admin", "password")
        response = client.get("/admin/realms")
    """

    def __init__(self, base_url: str, timeout: int = REQUEST_TIMEOUT):
        """Initialize Keycloak client.

        Args:
            base_url: Keycloak base URL (e.g. http://keycloak:8080)
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token: Optional[str] = None

    @property
    def token(self) -> Optional[str]:
        return self._token

    def authenticate_admin(
        self,
        username: str,
        password: str,
        realm: str = "master",
        client_id: str = "admin-cli",
    ) -> str:
        """Authenticate as admin user via direct access grant.

        Args:
            username: Admin username
            password: Admin password
            realm: Authentication realm (default: master)
            client_id: Public client used for the grant (default: admin-cli)

        Returns:
            Access token
        """
        token_map = request_token(
            self.base_url, realm, username, password, client_id, timeout=self.timeout
        )
        access_token = token_map.get("access_token")
        if not access_token:
            raise KeycloakAPIError(401, "No access token returned for admin login", realm)
        self._token = access_token
        return access_token

    def use_token(self, token: str) -> None:
        """Use a pre-obtained access token for subsequent calls."""
        self._token = token

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        if not self._token:
            raise KeycloakAPIError(401, "Not authenticated - call authenticate_admin or use_token first", "")
        headers = dict(extra or {})
        headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with the current token.

        Args:
            path: API endpoint path (e.g., "/admin/realms/demo/users")
            params: Query parameters

        Returns:
            Response object

        Raises:
            KeycloakAPIError: On HTTP error
        """
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.get(f"{self.base_url}{path}", params=params, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def post(self, path: str, json: Any = None, data: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with the current token.

        Args:
            path: API endpoint path
            json: JSON payload
            data: Form data payload

        Returns:
            Response object

        Raises:
            KeycloakAPIError: On HTTP error
        """
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.post(
            f"{self.base_url}{path}", json=json, data=data, headers=headers, timeout=self.timeout, **kwargs
        )
        self._handle_error(resp)
        return resp

    def put(self, path: str, json: Any = None, **kwargs) -> requests.Response:
        """Execute PUT request with the current token."""
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.put(f"{self.base_url}{path}", json=json, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def delete(self, path: str, **kwargs) -> requests.Response:
        """Execute DELETE request with the current token."""
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.delete(f"{self.base_url}{path}", headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            KeycloakAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise KeycloakAPIError.from_response(resp)


# ─────────────────────────────────────────────────────────────────────────────
# Token endpoint helpers
# ─────────────────────────────────────────────────────────────────────────────
def token_endpoint(kc_url: str, realm: str) -> str:
    """Return the OIDC token endpoint for a realm."""
    return f"{kc_url.rstrip('/')}/realms/{realm}/protocol/openid-connect/token"


def request_token(
    kc_url: str,
    realm: str,
    username: str,
    password: str,
    client_id: str,
    client_secret: Optional[str] = None,
    timeout: int = REQUEST_TIMEOUT,
) -> Dict[str, Any]:
    """Issue a token for a realm user via the password grant.

    Args:
        kc_url: Keycloak base URL
        realm: Realm the user belongs to
        username: Username
        password: Password
        client_id: Client performing the grant
        client_secret: Secret for confidential clients (omitted when empty)

    Returns:
        The full token response (access_token, refresh_token, expires_in, ...)

    Raises:
        KeycloakAPIError: If Keycloak rejects the grant
    """
    url = token_endpoint(kc_url, realm)
    data = {
        "grant_type": "password",
        "client_id": client_id,
        "username": username,
        "password": password,
    }
    if client_secret:
        data["client_secret"] = client_secret

    resp = requests.post(url, data=data, timeout=timeout)
    if resp.status_code != 200:
        logger.warning("[token] Token request for realm '%s' rejected (status %s)", realm, resp.status_code)
        raise KeycloakAPIError.from_response(resp)
    return resp.json()


def get_admin_token(
    kc_url: str,
    username: str,
    password: str,
    realm: str = "master",
    client_id: str = "admin-cli",
    timeout: int = REQUEST_TIMEOUT,
) -> str:
    """Obtain an admin access token via direct access grant."""
    client = KeycloakClient(kc_url, timeout=timeout)
    return client.authenticate_admin(username, password, realm, client_id)


def create_client_with_token(kc_url: str, token: str, timeout: int = REQUEST_TIMEOUT) -> KeycloakClient:
    """Create a KeycloakClient that forwards a pre-obtained token.

    Args:
        kc_url: Keycloak base URL
        token: Access token (admin token or caller-supplied bearer token)

    Returns:
        KeycloakClient instance with token pre-set
    """
    client = KeycloakClient(kc_url, timeout=timeout)
    client.use_token(token)
    return client
