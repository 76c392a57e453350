"""Gunicorn configuration for the identity service.

Secrets are read by identity_service.config.settings from /run/secrets
(Docker secrets) first and from the environment second; the post_fork
hook only reports which source each worker will see.

Run with:
    gunicorn -c gunicorn.conf.py identity_service.flask_app:app
"""
import os
from pathlib import Path

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:5000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
# Docker pushes and git provisioning run synchronously inside the request
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "900"))
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    secrets_dir = Path("/run/secrets")
    if secrets_dir.exists() and secrets_dir.is_dir():
        secret_files = list(secrets_dir.glob("*"))
        if secret_files:
            worker.log.info(f"Found {len(secret_files)} secrets in /run/secrets")
            return

    worker.log.info("No /run/secrets mount, credentials come from the environment")
    if os.environ.get("DEMO_MODE", "false").lower() == "true":
        worker.log.warning("DEMO_MODE=true - demo Keycloak credentials in use")
