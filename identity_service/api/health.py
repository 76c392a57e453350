"""Health check endpoints."""
import logging

import requests
from flask import Blueprint, current_app

bp = Blueprint("health", __name__)

logger = logging.getLogger(__name__)


@bp.route("/health")
def health_check():
    """Liveness: the process answers requests."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness: the configured Keycloak answers on its master realm."""
    cfg = current_app.config["APP_CONFIG"]
    url = f"{cfg.keycloak_url.rstrip('/')}/realms/{cfg.keycloak_admin_realm}"
    try:
        resp = requests.get(url, timeout=cfg.request_timeout)
    except requests.RequestException as exc:
        logger.warning("Readiness check failed, Keycloak unreachable: %s", exc)
        return ("keycloak unreachable", 503, {"Content-Type": "text/plain"})
    if resp.status_code != 200:
        return (f"keycloak returned {resp.status_code}", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})
