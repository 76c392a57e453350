"""
Bearer token helpers and per-realm JWT validation.

Tokens handed to this service may come from any realm hosted by the
configured Keycloak server. The realm is read from the (unverified) `iss`
claim, checked against the configured Keycloak base URLs, and the token is
then verified with that realm's JWKS signing keys.

Security:
- RSA-SHA256 signature verification via JWKS (RFC 7517)
- Expiration and issuer validation (RFC 7519)
- Signing keys fetched from the configured Keycloak URL, never from the
  issuer named inside the token
"""

import logging
from collections import OrderedDict
from functools import wraps
from typing import Any, Dict, List, Optional, Tuple

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidIssuerError,
    InvalidSignatureError,
    PyJWKClientError,
)
from flask import abort, current_app, g, request

from identity_service.core.validators import IDENTIFIER_PATTERN

logger = logging.getLogger(__name__)

# JWKS clients of realms whose keys were fetched, least recently used first.
# Keyed by (keycloak_url, realm).
MAX_JWKS_CLIENTS = 32
_jwks_clients: "OrderedDict[Tuple[str, str], PyJWKClient]" = OrderedDict()


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


# ============================================================================
# Authorization header parsing
# ============================================================================

def bearer_token_from_header(header: Optional[str], require_prefix: bool = False) -> Optional[str]:
    """Strip the `Bearer ` prefix from an Authorization header value.

    Args:
        header: Raw header value
        require_prefix: Return None unless the value starts with `Bearer `

    Returns:
        The token, or None when absent/malformed
    """
    if not header:
        return None
    if header.startswith("Bearer "):
        token = header[7:].strip()
        return token or None
    if require_prefix:
        return None
    return header.strip() or None


def require_bearer_token(fn):
    """Decorator for routes that forward the caller's token to Keycloak.

    A missing Authorization header is a client error (400). The token is
    not validated here; Keycloak rejects it if it is not acceptable.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = bearer_token_from_header(request.headers.get("Authorization"))
        if not token:
            logger.warning("Request to %s missing Authorization header", request.path)
            abort(400, description="Authorization header required")
        g.bearer_token = token
        return fn(*args, **kwargs)
    return wrapper


# ============================================================================
# Claims helpers
# ============================================================================

def realm_from_issuer(issuer: str) -> str:
    """Return the realm named in an issuer URL (text after the last /realms/)."""
    marker = "/realms/"
    if marker in issuer:
        return issuer[issuer.rindex(marker) + len(marker):]
    return issuer


def trusted_realm(issuer: str, trusted_bases: List[str]) -> str:
    """Return the realm of an issuer that belongs to a trusted Keycloak base URL.

    Raises:
        TokenValidationError: If the issuer is foreign or names no realm
    """
    issuer = (issuer or "").rstrip("/")
    for base in trusted_bases:
        prefix = f"{base.rstrip('/')}/realms/"
        if issuer.startswith(prefix):
            realm = issuer[len(prefix):]
            if IDENTIFIER_PATTERN.match(realm):
                return realm
    raise TokenValidationError(f"Untrusted issuer: {issuer or '<missing>'}")


def extract_roles(claims: Dict[str, Any]) -> List[str]:
    """Realm roles followed by every client role found in the claims.

    Unexpected shapes (non-dict access blocks, non-list role lists) are
    ignored rather than rejected.
    """
    roles: List[str] = []

    realm_access = claims.get("realm_access")
    if isinstance(realm_access, dict) and isinstance(realm_access.get("roles"), list):
        roles.extend(str(role) for role in realm_access["roles"])

    resource_access = claims.get("resource_access")
    if isinstance(resource_access, dict):
        for client_access in resource_access.values():
            if not isinstance(client_access, dict):
                continue
            client_roles = client_access.get("roles")
            if isinstance(client_roles, list):
                roles.extend(str(role) for role in client_roles)

    return roles


# ============================================================================
# JWT validation
# ============================================================================

def _jwks_cache_key(realm: str) -> Tuple[str, str]:
    cfg = current_app.config["APP_CONFIG"]
    return cfg.keycloak_url.rstrip("/"), realm


def get_jwks_client(realm: str) -> PyJWKClient:
    """
    Get the JWKS client for a realm, reusing a cached one when present.

    The JWKS URL is built from the configured Keycloak URL so a token can
    only be verified with keys served by our own Keycloak. New clients are
    not cached here: see remember_jwks_client().
    """
    key = _jwks_cache_key(realm)
    client = _jwks_clients.get(key)
    if client is not None:
        _jwks_clients.move_to_end(key)
        return client

    cfg = current_app.config["APP_CONFIG"]
    jwks_url = f"{cfg.keycloak_url.rstrip('/')}/realms/{realm}/protocol/openid-connect/certs"
    logger.info("Initializing JWKS client for: %s", jwks_url)
    return PyJWKClient(
        jwks_url,
        cache_keys=True,
        max_cached_keys=16,
        lifespan=cfg.jwks_cache_lifespan,
        headers={"User-Agent": "identity-service/1.0"},
    )


def remember_jwks_client(realm: str, client: PyJWKClient) -> None:
    """Cache a JWKS client once it has served a signing key.

    Realms whose key lookup failed are never cached. The cache holds at most
    MAX_JWKS_CLIENTS entries.
    """
    key = _jwks_cache_key(realm)
    _jwks_clients[key] = client
    _jwks_clients.move_to_end(key)
    while len(_jwks_clients) > MAX_JWKS_CLIENTS:
        evicted, _ = _jwks_clients.popitem(last=False)
        logger.debug("Evicted JWKS client for %s", evicted)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Validate a Keycloak-issued JWT and return its claims.

    Validations performed:
    1. Issuer belongs to the configured Keycloak server
    2. Signature (RS256, realm JWKS)
    3. Expiration / not-before

    Audience is not checked: tokens from any client of the realm are accepted.

    Raises:
        TokenValidationError: If any validation fails
    """
    cfg = current_app.config["APP_CONFIG"]

    try:
        unverified = jwt.decode(token, options={"verify_signature": False})
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}")

    issuer = str(unverified.get("iss") or "")
    realm = trusted_realm(issuer, cfg.trusted_issuer_bases)

    try:
        jwks_client = get_jwks_client(realm)
        signing_key = jwks_client.get_signing_key_from_jwt(token)
        remember_jwks_client(realm, jwks_client)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=issuer,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_nbf": True,
                "verify_iss": True,
                "verify_aud": False,
                "require": ["exp", "iss"],
            },
            leeway=5,
        )
    except ExpiredSignatureError:
        raise TokenValidationError("Token expired (exp claim)")
    except InvalidIssuerError as e:
        raise TokenValidationError(f"Invalid issuer: {e}")
    except InvalidSignatureError:
        raise TokenValidationError("Invalid signature (token tampered or wrong key)")
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
    except PyJWKClientError as e:
        raise TokenValidationError(f"Signing key unavailable for realm '{realm}': {e}")
    except Exception as e:
        logger.error("JWT validation failed: %s", e)
        raise TokenValidationError(f"Token validation failed: {e}")

    logger.debug("JWT validated for realm %s, client %s", realm, claims.get("azp"))
    return claims
