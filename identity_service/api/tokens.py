"""Token issuance and validation routes."""
from __future__ import annotations
import logging

from flask import Blueprint, abort, jsonify, request

from identity_service.api.decorators import (
    TokenValidationError,
    bearer_token_from_header,
    decode_token,
    extract_roles,
    realm_from_issuer,
)
from identity_service.api.helpers.context import app_config, required_param, text_response
from identity_service.core.keycloak import KeycloakAPIError, TokenService, request_token
from identity_service.core.models import optional_str

bp = Blueprint("tokens", __name__)

logger = logging.getLogger(__name__)

# Keycloak answers rejected credentials with 401 (bad password) or 400 (invalid_grant)
CREDENTIAL_REJECTION_STATUSES = {400, 401}


@bp.route("/token", methods=["POST"])
def issue_token():
    """Issue a token for a realm user and return Keycloak's full token map."""
    realm = required_param("realm")
    username = required_param("username")
    password = required_param("password")
    client_id = required_param("client_id")
    client_secret = optional_str(request.values.get("client_secret"))

    cfg = app_config()
    try:
        token = request_token(
            cfg.keycloak_url, realm, username, password, client_id, client_secret, timeout=cfg.request_timeout
        )
    except Exception as e:
        logger.warning("[token] Token request failed for realm '%s': %s", realm, e)
        return jsonify({"error": "Unauthorized", "message": str(e)}), 401
    return jsonify(token)


@bp.route("/<realm>/login", methods=["POST"])
def login(realm: str):
    """Authenticate a realm user and return only the access token fields."""
    credentials = request.get_json(silent=True)
    if not isinstance(credentials, dict):
        abort(400, description="Request body must be a JSON object with username and password")

    logger.info("[login] Login request received for realm: %s", realm)
    logger.debug("[login] Received credential keys: %s", sorted(credentials.keys()))

    cfg = app_config()
    username = credentials.get("username")
    password = credentials.get("password")
    client_id = credentials.get("client_id") or cfg.default_login_client_id
    client_secret = optional_str(credentials.get("client_secret"))

    try:
        logger.info("[login] Authenticating user '%s' with clientId '%s'", username, client_id)
        token_map = request_token(
            cfg.keycloak_url, realm, username, password, client_id, client_secret, timeout=cfg.request_timeout
        )
    except KeycloakAPIError as e:
        if e.status_code in CREDENTIAL_REJECTION_STATUSES:
            logger.warning("[login] Keycloak rejected credentials for '%s' in realm '%s'", username, realm)
            return jsonify({"error": "Invalid credentials"}), 401
        logger.error("[login] Login failed: %s", e, exc_info=True)
        return jsonify({"error": "Login failed", "message": str(e)}), 500
    except Exception as e:
        logger.error("[login] Login failed: %s", e, exc_info=True)
        return jsonify({"error": "Login failed", "message": str(e)}), 500

    access_token = token_map.get("access_token")
    if not access_token:
        logger.warning("[login] No token returned by Keycloak for '%s'", username)
        return jsonify({"error": "Invalid credentials"}), 401

    logger.info("[login] Returning Keycloak token for '%s' in realm '%s'", username, realm)
    return jsonify({
        "access_token": access_token,
        "expires_in": token_map.get("expires_in"),
        "token_type": token_map.get("token_type"),
    })


@bp.route("/validate", methods=["GET"])
def validate():
    """Verify a bearer token locally and report its realm, product and roles."""
    header = request.headers.get("Authorization")
    if not header:
        return jsonify({
            "status": "INVALID",
            "message": "Authorization header required",
        }), 400
    token = bearer_token_from_header(header, require_prefix=True)
    if not token:
        return jsonify({
            "status": "INVALID",
            "message": "Authorization header malformed",
        }), 401

    try:
        claims = decode_token(token)
    except TokenValidationError as e:
        logger.warning("[validate] Token validation failed: %s", e)
        return jsonify({
            "status": "INVALID",
            "message": f"Token invalid or expired: {e}",
        }), 401

    realm = realm_from_issuer(str(claims.get("iss", "")))
    product = str(claims.get("azp", ""))
    roles = extract_roles(claims)
    logger.info("[validate] Token validated. Realm: %s, Product: %s, Roles: %s", realm, product, roles)

    return jsonify({
        "status": "VALID",
        "realm": realm,
        "product": product,
        "roles": roles,
    })


@bp.route("/token/validate", methods=["GET"])
def validate_with_keycloak():
    """Ask Keycloak whether a token is accepted by the given realm."""
    realm = required_param("realm")
    token = bearer_token_from_header(request.headers.get("Authorization"))
    if not token:
        abort(400, description="Authorization header required")

    cfg = app_config()
    valid = TokenService(cfg.keycloak_url, timeout=cfg.request_timeout).validate_token(realm, token)
    if valid:
        return text_response("Token is valid")
    return text_response("Token is invalid", 400)
