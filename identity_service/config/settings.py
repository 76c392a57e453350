"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when an integration is used without its required settings."""
    pass


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("[settings] Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as e:
            logger.warning("[settings] Failed to read /run/secrets/%s: %s", secret_name, e)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    demo_mode: bool

    # Keycloak
    keycloak_url: str = ""
    keycloak_public_url: str = ""
    keycloak_admin: str = "admin"
    keycloak_admin_password: str = ""
    keycloak_admin_realm: str = "master"
    keycloak_admin_client_id: str = "admin-cli"
    default_login_client_id: str = "product-service"

    # Docker Hub
    docker_hub_url: str = "https://hub.docker.com"
    docker_registry: str = "docker.io"
    docker_username: str = ""
    docker_password: str = ""
    docker_binary: str = "docker"

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_host: str = "github.com"
    github_token: str = ""
    github_org: str = ""
    git_binary: str = "git"
    git_author_name: str = "Identity Service CI"
    git_author_email: str = "ci@identity-service.local"
    git_default_branch: str = "main"

    # Runtime
    request_timeout: int = 10
    jwks_cache_lifespan: int = 3600
    max_upload_bytes: int = 512 * 1024 * 1024
    log_level: str = "INFO"

    @property
    def trusted_issuer_bases(self) -> list[str]:
        """Keycloak base URLs whose issuers are accepted for token validation."""
        bases = [self.keycloak_url.rstrip("/")]
        public = self.keycloak_public_url.rstrip("/")
        if public and public not in bases:
            bases.append(public)
        return [base for base in bases if base]

    def require_docker(self) -> None:
        """Raise ConfigurationError unless Docker Hub credentials are configured."""
        if not self.docker_username or not self.docker_password:
            raise ConfigurationError("DOCKER_USERNAME and DOCKER_PASSWORD are required for Docker Hub operations")

    def require_github(self) -> None:
        """Raise ConfigurationError unless GitHub credentials are configured."""
        if not self.github_token or not self.github_token.strip():
            raise ConfigurationError("GITHUB_TOKEN is missing")
        if not self.github_org or not self.github_org.strip():
            raise ConfigurationError("GITHUB_ORG is missing")


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        logger.info("[demo-mode] Using default for %s", var_name)
        os.environ[var_name] = demo_default
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _int_env(var_name: str, default: int) -> int:
    """Parse an integer environment variable, falling back to default."""
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer (got {raw!r})")


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    # Keycloak
    keycloak_url = _get_or_generate(
        "KEYCLOAK_URL",
        demo_default="http://127.0.0.1:8080",
        demo_mode=demo_mode,
    ).rstrip("/")
    keycloak_public_url = os.environ.get("KEYCLOAK_PUBLIC_URL", "").rstrip("/")

    keycloak_admin = _get_or_generate(
        "KEYCLOAK_ADMIN",
        demo_default=(os.environ.get("KEYCLOAK_ADMIN_DEMO") or "admin"),
        demo_mode=demo_mode,
    )
    keycloak_admin_password = _load_secret_from_file("keycloak_admin_password", "KEYCLOAK_ADMIN_PASSWORD")
    if not keycloak_admin_password:
        keycloak_admin_password = _get_or_generate(
            "KEYCLOAK_ADMIN_PASSWORD",
            demo_default=(os.environ.get("KEYCLOAK_ADMIN_PASSWORD_DEMO") or "admin"),
            demo_mode=demo_mode,
        )
    keycloak_admin_realm = os.environ.get("KEYCLOAK_ADMIN_REALM", "master")
    keycloak_admin_client_id = os.environ.get("KEYCLOAK_ADMIN_CLIENT_ID", "admin-cli")
    default_login_client_id = os.environ.get("LOGIN_DEFAULT_CLIENT_ID", "product-service")

    # Docker Hub (optional until used)
    docker_username = os.environ.get("DOCKER_USERNAME", "")
    docker_password = _load_secret_from_file("docker_password", "DOCKER_PASSWORD") or ""

    # GitHub (optional until used)
    github_token = _load_secret_from_file("github_token", "GITHUB_TOKEN") or ""
    github_org = os.environ.get("GITHUB_ORG", "")

    log_level = os.environ.get("LOG_LEVEL", "DEBUG" if demo_mode else "INFO").upper()

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    logger.info(
        "[settings] Mode=%s; keycloak=%s; docker=%s; github=%s",
        mode_label,
        keycloak_url,
        "configured" if docker_username and docker_password else "disabled",
        "configured" if github_token and github_org else "disabled",
    )
    if demo_mode:
        logger.warning("[settings] Demo credentials in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        keycloak_url=keycloak_url,
        keycloak_public_url=keycloak_public_url,
        keycloak_admin=keycloak_admin,
        keycloak_admin_password=keycloak_admin_password,
        keycloak_admin_realm=keycloak_admin_realm,
        keycloak_admin_client_id=keycloak_admin_client_id,
        default_login_client_id=default_login_client_id,
        docker_hub_url=os.environ.get("DOCKER_HUB_URL", "https://hub.docker.com").rstrip("/"),
        docker_registry=os.environ.get("DOCKER_REGISTRY", "docker.io"),
        docker_username=docker_username,
        docker_password=docker_password,
        docker_binary=os.environ.get("DOCKER_BINARY", "docker"),
        github_api_url=os.environ.get("GITHUB_API_URL", "https://api.github.com").rstrip("/"),
        github_host=os.environ.get("GITHUB_HOST", "github.com"),
        github_token=github_token,
        github_org=github_org,
        git_binary=os.environ.get("GIT_BINARY", "git"),
        git_author_name=os.environ.get("GIT_AUTHOR_NAME", "Identity Service CI"),
        git_author_email=os.environ.get("GIT_AUTHOR_EMAIL", "ci@identity-service.local"),
        git_default_branch=os.environ.get("GIT_DEFAULT_BRANCH", "main"),
        request_timeout=_int_env("REQUEST_TIMEOUT", 10),
        jwks_cache_lifespan=_int_env("JWKS_CACHE_LIFESPAN", 3600),
        max_upload_bytes=_int_env("MAX_UPLOAD_BYTES", 512 * 1024 * 1024),
        log_level=log_level,
    )
