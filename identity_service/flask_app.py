"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, middleware, and configuration.
"""
from __future__ import annotations
import logging
from pathlib import Path

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from identity_service.config import load_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> Flask:
    """Create and configure Flask application."""
    # Load configuration
    cfg = load_settings()
    _configure_logging(cfg.log_level)

    # Create Flask app
    app = Flask(__name__)
    app.config.setdefault(
        "OPENAPI_SPEC_PATH",
        str(Path(app.root_path).parent / "openapi" / "identity_openapi.yaml"),
    )

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg

    # Image tars and source archives are uploaded through multipart routes
    app.config["MAX_CONTENT_LENGTH"] = cfg.max_upload_bytes

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    # Register blueprints
    from identity_service.api import admin, docs, errors, health, provisioning, tokens

    app.register_blueprint(tokens.bp)
    app.register_blueprint(admin.bp)
    app.register_blueprint(provisioning.bp)
    app.register_blueprint(health.bp)
    app.register_blueprint(docs.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    # Log startup info
    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    logger.info("[flask_app] Mode=%s", mode_label)
    logger.info("[flask_app] Keycloak at %s", cfg.keycloak_url)
    logger.info(
        "[flask_app] Docker Hub %s, GitHub %s",
        "configured" if cfg.docker_username else "not configured",
        "configured" if cfg.github_token and cfg.github_org else "not configured",
    )

    if cfg.demo_mode:
        logger.warning("[flask_app] Demo mode active - do not deploy with demo credentials")

    return app


def _configure_logging(level_name: str) -> None:
    """Apply LOG_LEVEL to the root logger (handler installed once)."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


# ─────────────────────────────────────────────────────────────────────────────
# Application Instance (for Gunicorn)
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
