import logging

import pytest

from identity_service import flask_app as flask_module
from identity_service.flask_app import create_app


@pytest.fixture
def demo_env(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")
    monkeypatch.delenv("LOG_LEVEL", raising=False)


def test_create_app_registers_blueprints(demo_env):
    app = create_app()
    assert {"tokens", "admin", "provisioning", "health", "docs"} <= set(app.blueprints)
    assert app.config["APP_CONFIG"].demo_mode is True


def test_upload_limit_follows_config(demo_env, monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "1024")
    app = create_app()
    assert app.config["MAX_CONTENT_LENGTH"] == 1024


def test_log_level_applied(demo_env, monkeypatch):
    root = logging.getLogger()
    previous = root.level
    monkeypatch.setenv("LOG_LEVEL", "warning")
    try:
        create_app()
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous)


def test_openapi_path_defaults_to_bundled_spec(demo_env):
    app = create_app()
    assert app.config["OPENAPI_SPEC_PATH"].endswith("openapi/identity_openapi.yaml")


def test_bundled_openapi_served(client):
    response = client.get("/openapi.json")
    assert response.status_code == 200
    assert response.get_json()["info"]["title"] == "Identity Service API"


def test_module_level_app_for_gunicorn():
    assert flask_module.app.name == "identity_service.flask_app"


def test_unknown_route_is_json(client):
    response = client.get("/no/such/route/here")
    assert response.status_code == 404
    assert response.get_json()["error"] == "Not Found"


def test_openapi_servers_follow_forwarded_host(client):
    response = client.get(
        "/openapi.json",
        headers={"X-Forwarded-Proto": "https", "X-Forwarded-Host": "api.example.com", "X-Forwarded-For": "10.0.0.1"},
    )
    assert response.get_json()["servers"] == [{"url": "https://api.example.com"}]
