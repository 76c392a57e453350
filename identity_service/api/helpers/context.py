"""Request-scoped helpers shared by the API blueprints."""
from __future__ import annotations

from flask import Response, abort, current_app, g, request

from identity_service.config.settings import AppConfig
from identity_service.core.keycloak import KeycloakClient, create_client_with_token

TRUE_VALUES = {"1", "true", "yes", "on"}


def app_config() -> AppConfig:
    return current_app.config["APP_CONFIG"]


def text_response(body: str, status: int = 200) -> Response:
    """Plain-text response, as returned by most forwarding routes."""
    return Response(body, status=status, mimetype="text/plain")


def required_param(name: str) -> str:
    """Read a required query/form parameter, aborting with 400 when absent."""
    value = request.values.get(name)
    if value is None or value == "":
        abort(400, description=f"Required parameter '{name}' is not present")
    return value


def bool_param(name: str, default: bool) -> bool:
    value = request.values.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in TRUE_VALUES


def admin_client() -> KeycloakClient:
    """Keycloak client authenticated with the configured master admin credentials."""
    cfg = app_config()
    client = KeycloakClient(cfg.keycloak_url, timeout=cfg.request_timeout)
    client.authenticate_admin(
        cfg.keycloak_admin,
        cfg.keycloak_admin_password,
        cfg.keycloak_admin_realm,
        cfg.keycloak_admin_client_id,
    )
    return client


def caller_client() -> KeycloakClient:
    """Keycloak client forwarding the caller's bearer token.

    Must be called after @require_bearer_token.
    """
    cfg = app_config()
    return create_client_with_token(cfg.keycloak_url, g.bearer_token, timeout=cfg.request_timeout)
