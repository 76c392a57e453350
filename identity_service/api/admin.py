"""Realm, client, user and role administration routes.

Two kinds of routes live here:
- routes acting with the configured master admin credentials
  (signup, realm creation, listings, role update/delete)
- routes forwarding the caller's bearer token to Keycloak
  (client/user creation, client role creation and assignment)
"""
from __future__ import annotations
import logging

from flask import Blueprint, jsonify, request

from identity_service.api.decorators import require_bearer_token
from identity_service.api.helpers.context import (
    admin_client,
    bool_param,
    caller_client,
    required_param,
    text_response,
)
from identity_service.core.keycloak import RealmService, RoleService, SignupService, UserService
from identity_service.core.models import RoleRequest, SignupRequest, parse_role_requests

bp = Blueprint("admin", __name__)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Signup
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/signup", methods=["POST"])
def signup():
    """Create a tenant realm with its client and admin user."""
    try:
        signup_request = SignupRequest.from_dict(request.get_json(silent=True))
        logger.info("[signup] Received signup request: %r", signup_request)
        SignupService(admin_client()).signup(signup_request)
    except Exception as e:
        logger.error("[signup] Signup failed: %s", e, exc_info=True)
        return text_response(f"Signup failed: {e}", 400)

    logger.info("[signup] Signup completed successfully for realm: %s", signup_request.realm_name)
    return text_response("Realm, client, and admin user created successfully.")


# ─────────────────────────────────────────────────────────────────────────────
# Realms
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/realm", methods=["POST"])
def create_realm():
    realm_name = required_param("realmName")
    try:
        RealmService(admin_client()).create_realm(realm_name)
    except Exception as e:
        logger.warning("[realm] Failed to create realm '%s': %s", realm_name, e)
        return text_response(f"Failed to create realm: {e}", 400)
    return text_response(f"Realm created successfully: {realm_name}")


@bp.route("/realms", methods=["GET"])
def list_realms():
    try:
        realms = RealmService(admin_client()).list_realms()
    except Exception as e:
        logger.warning("[realm] Failed to list realms: %s", e)
        return text_response("", 400)
    return jsonify(realms)


# ─────────────────────────────────────────────────────────────────────────────
# Clients
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/<realm>/clients", methods=["POST"])
@require_bearer_token
def create_client(realm: str):
    client_id = required_param("clientId")
    public_client = bool_param("publicClient", default=True)
    try:
        RealmService(caller_client()).create_client(realm, client_id, public_client)
    except Exception as e:
        logger.warning("[client] Failed to create client '%s' in realm '%s': %s", client_id, realm, e)
        return text_response(f"Failed to create client: {e}", 400)
    return text_response("Client created successfully")


@bp.route("/client/<realm>/<client_name>/uuid", methods=["GET"])
def get_client_uuid(realm: str, client_name: str):
    try:
        client_uuid = RealmService(admin_client()).get_client_uuid(realm, client_name)
    except Exception as e:
        return text_response(f"Failed to get client UUID: {e}", 400)
    return text_response(client_uuid)


@bp.route("/clients/<realm>", methods=["GET"])
def list_clients(realm: str):
    try:
        clients = RealmService(admin_client()).list_clients(realm)
    except Exception as e:
        logger.warning("[client] Failed to list clients of realm '%s': %s", realm, e)
        return text_response("", 400)
    return jsonify(clients)


# ─────────────────────────────────────────────────────────────────────────────
# Users
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/<realm>/users", methods=["POST"])
@require_bearer_token
def create_user(realm: str):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return text_response("Failed to create user: request body must be a JSON object", 400)
    try:
        user_id = UserService(caller_client()).create_user(realm, payload)
    except Exception as e:
        logger.warning("[user] Failed to create user in realm '%s': %s", realm, e)
        return text_response(f"Failed to create user: {e}", 400)
    return text_response(user_id)


@bp.route("/users/<realm>", methods=["GET"])
def list_users(realm: str):
    try:
        users = UserService(admin_client()).list_users(realm)
    except Exception as e:
        logger.warning("[user] Failed to list users of realm '%s': %s", realm, e)
        return text_response("", 400)
    return jsonify(users)


# ─────────────────────────────────────────────────────────────────────────────
# Client roles
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/<realm>/clients/<client_name>/roles", methods=["POST"])
@require_bearer_token
def create_client_roles(realm: str, client_name: str):
    try:
        roles = parse_role_requests(request.get_json(silent=True))
    except ValueError as e:
        return text_response(f"Failed to create roles: {e}", 400)

    try:
        RoleService(caller_client()).create_client_roles(realm, client_name, roles)
    except Exception as e:
        logger.error("[role] Failed to create roles on '%s' in realm '%s': %s", client_name, realm, e)
        return text_response(f"Failed to create roles: {e}", 500)
    return text_response(f"Roles created successfully for client: {client_name}")


@bp.route("/role/<realm>/<client>/<role_name>", methods=["PUT"])
def update_role(realm: str, client: str, role_name: str):
    payload = request.get_json(silent=True)
    if isinstance(payload, dict) and not payload.get("name"):
        payload = {**payload, "name": role_name}
    try:
        role = RoleRequest.from_dict(payload)
        kc = admin_client()
        client_uuid = RealmService(kc).get_client_uuid(realm, client)
        ok = RoleService(kc).update_client_role(realm, client_uuid, role_name, role)
    except Exception as e:
        return text_response(f"Failed to update role: {e}", 400)
    if ok:
        return text_response("Role updated successfully")
    return text_response("Failed to update role", 400)


@bp.route("/role/<realm>/<client>/<role_name>", methods=["DELETE"])
def delete_role(realm: str, client: str, role_name: str):
    try:
        kc = admin_client()
        client_uuid = RealmService(kc).get_client_uuid(realm, client)
        ok = RoleService(kc).delete_client_role(realm, client_uuid, role_name)
    except Exception as e:
        return text_response(f"Failed to delete role: {e}", 400)
    if ok:
        return text_response("Role deleted successfully")
    return text_response("Failed to delete role", 400)


@bp.route("/<realm>/users/<username>/clients/<client_name>/roles", methods=["POST"])
@require_bearer_token
def assign_client_role(realm: str, username: str, client_name: str):
    role_name = required_param("roleName")
    try:
        RoleService(caller_client()).assign_client_role(realm, username, client_name, role_name)
    except Exception as e:
        logger.warning("[role] Failed to assign '%s' to '%s': %s", role_name, username, e)
        return text_response(f"Failed to assign role: {e}", 400)
    return text_response("Role assigned successfully")
