"""Pytest shared fixtures."""
import json
import os
import pathlib
import sys
import time
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("KEYCLOAK_URL", "http://127.0.0.1:8080")

import pytest
import requests
from authlib.jose import jwt as authlib_jwt
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from identity_service.api import decorators
from identity_service.config.settings import AppConfig
from identity_service.flask_app import create_app

KEYCLOAK_URL = "http://kc.test"


class StubResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, payload=None, headers: Optional[dict] = None, url: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.url = url
        self.text = json.dumps(payload) if payload is not None else ""

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(response=self)


class RecordingHTTP:
    """Records requests.<method> calls and answers from a route table.

    Routes map (METHOD, url-suffix) to a StubResponse or a callable
    taking (url, kwargs) and returning one. The longest matching suffix wins.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method: str, suffix: str, response):
        self.routes[(method.upper(), suffix)] = response
        return self

    def calls_to(self, method: str, suffix: str = ""):
        return [c for c in self.calls if c[0] == method.upper() and c[1].endswith(suffix)]

    def _dispatch(self, method: str, url: str, kwargs: dict):
        self.calls.append((method, url, kwargs))
        matches = [
            (suffix, response)
            for (route_method, suffix), response in self.routes.items()
            if route_method == method and url.endswith(suffix)
        ]
        if not matches:
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")
        _suffix, response = max(matches, key=lambda item: len(item[0]))
        if callable(response):
            response = response(url, kwargs)
        if not response.url:
            response.url = url
        return response

    def install(self, monkeypatch):
        for method in ("get", "post", "put", "delete"):
            monkeypatch.setattr(
                requests,
                method,
                lambda url, *args, _m=method.upper(), **kwargs: self._dispatch(_m, url, kwargs),
            )
        return self


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting live Keycloak, Docker Hub or GitHub.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _unexpected(method):
        def _raise(url, *args, **kwargs):
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")
        return _raise

    for method in ("get", "post", "put", "delete"):
        monkeypatch.setattr(requests, method, _unexpected(method.upper()))


@pytest.fixture(autouse=True)
def _reset_jwks_clients():
    decorators._jwks_clients.clear()
    yield
    decorators._jwks_clients.clear()


@pytest.fixture()
def http(monkeypatch):
    """Route table standing in for the requests module."""
    return RecordingHTTP().install(monkeypatch)


# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────
def make_config(**overrides) -> AppConfig:
    base = dict(
        demo_mode=False,
        keycloak_url=KEYCLOAK_URL,
        keycloak_admin="admin",
        keycloak_admin_password="admin-secret",
        docker_username="acme",
        docker_password="docker-secret",
        github_token="ghp_secret",
        github_org="acme-org",
    )
    base.update(overrides)
    return AppConfig(**base)


@pytest.fixture()
def app_config():
    return make_config()


# ─────────────────────────────────────────────────────────────────────────────
# Flask Test Client
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def flask_app(app_config):
    """Application wired to the test configuration."""
    app = create_app()
    app.config.update(TESTING=True, APP_CONFIG=app_config)
    return app


@pytest.fixture()
def client(flask_app):
    with flask_app.test_client() as client:
        with flask_app.app_context():
            yield client


@pytest.fixture()
def admin_token(http):
    """Answer master-realm admin logins with a fixed token."""
    http.add(
        "POST",
        "/realms/master/protocol/openid-connect/token",
        StubResponse(200, {"access_token": "admin-token", "expires_in": 60, "token_type": "Bearer"}),
    )
    return "admin-token"


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pair for JWT Testing
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
        backend=default_backend()
    )

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )

    public_key = private_key.public_key()
    public_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )

    return {
        "private_key": private_key,
        "private_pem": private_pem,
        "public_key": public_key,
        "public_pem": public_pem,
    }


class StaticSigningKey:
    def __init__(self, key):
        self.key = key


class StaticJWKS:
    """PyJWKClient stand-in returning one fixed public key."""

    def __init__(self, public_key):
        self.public_key = public_key
        self.fetch_count = 0

    def get_signing_key_from_jwt(self, token):
        self.fetch_count += 1
        return StaticSigningKey(self.public_key)


@pytest.fixture()
def static_jwks(monkeypatch, rsa_key_pair):
    """Serve the test public key for every realm."""
    jwks = StaticJWKS(rsa_key_pair["public_key"])
    requested_realms = []

    def _get_jwks_client(realm):
        requested_realms.append(realm)
        return jwks

    monkeypatch.setattr(decorators, "get_jwks_client", _get_jwks_client)
    jwks.requested_realms = requested_realms
    return jwks


# ─────────────────────────────────────────────────────────────────────────────
# JWT Token Helpers
# ─────────────────────────────────────────────────────────────────────────────
def create_valid_jwt(
    rsa_key_pair: dict,
    issuer: str = f"{KEYCLOAK_URL}/realms/acme",
    azp: str = "product-service",
    sub: str = "user-123",
    username: str = "alice",
    roles: Optional[list[str]] = None,
    client_roles: Optional[dict] = None,
    exp_offset: int = 3600,
    kid: str = "default-key-id",
) -> str:
    """Create a valid RS256-signed JWT for testing."""
    if roles is None:
        roles = ["offline_access"]

    now = int(time.time())
    header = {"alg": "RS256", "typ": "JWT", "kid": kid}
    payload = {
        "iss": issuer,
        "azp": azp,
        "sub": sub,
        "exp": now + exp_offset,
        "iat": now,
        "preferred_username": username,
        "realm_access": {"roles": roles},
    }
    if client_roles is not None:
        payload["resource_access"] = {
            client: {"roles": client_role_list} for client, client_role_list in client_roles.items()
        }

    private_key = rsa_key_pair["private_key"]
    token = authlib_jwt.encode(header, payload, private_key)
    return token.decode("utf-8") if isinstance(token, bytes) else token


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires running stack)"
    )
