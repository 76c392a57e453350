"""Keycloak token checks against the realm's OIDC endpoints."""
from __future__ import annotations
import logging

import requests

from .client import REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


class TokenService:
    """Checks access tokens against a realm's userinfo endpoint."""

    def __init__(self, base_url: str, timeout: int = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def userinfo_endpoint(self, realm: str) -> str:
        return f"{self.base_url}/realms/{realm}/protocol/openid-connect/userinfo"

    def validate_token(self, realm: str, token: str) -> bool:
        """Return True when Keycloak accepts the token for the realm.

        Network failures count as an invalid token.
        """
        if not token:
            return False
        try:
            resp = requests.get(
                self.userinfo_endpoint(realm),
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("[token] Userinfo call for realm '%s' failed: %s", realm, exc)
            return False
        valid = resp.status_code == 200
        if not valid:
            logger.info("[token] Token rejected by realm '%s' (status %s)", realm, resp.status_code)
        return valid
