import pytest
from flask import Flask, g
from jwt.exceptions import ExpiredSignatureError, InvalidSignatureError, PyJWKClientError

from identity_service.api import decorators

from tests.conftest import KEYCLOAK_URL, create_valid_jwt, make_config


@pytest.fixture
def app_ctx():
    app = Flask(__name__)
    app.config["TESTING"] = False
    app.config["APP_CONFIG"] = make_config(keycloak_public_url="https://login.example.com")
    with app.app_context():
        yield app


class DummySigningKey:
    key = "secret"


class DummyJWKS:
    def get_signing_key_from_jwt(self, token):
        return DummySigningKey()


@pytest.fixture
def acme_token(rsa_key_pair):
    return create_valid_jwt(rsa_key_pair)


class TestBearerTokenFromHeader:
    def test_strips_prefix(self):
        assert decorators.bearer_token_from_header("Bearer abc") == "abc"

    def test_raw_token_accepted_without_prefix(self):
        assert decorators.bearer_token_from_header("abc") == "abc"

    def test_prefix_required(self):
        assert decorators.bearer_token_from_header("abc", require_prefix=True) is None
        assert decorators.bearer_token_from_header("Basic Zm9v", require_prefix=True) is None

    @pytest.mark.parametrize("header", [None, "", "Bearer ", "   "])
    def test_empty(self, header):
        assert decorators.bearer_token_from_header(header) is None


def test_require_bearer_token_sets_g():
    app = Flask(__name__)

    @app.route("/protected")
    @decorators.require_bearer_token
    def protected():
        return g.bearer_token

    with app.test_client() as client:
        assert client.get("/protected", headers={"Authorization": "Bearer t0k"}).data == b"t0k"
        assert client.get("/protected").status_code == 400


class TestIssuerHelpers:
    def test_realm_from_issuer(self):
        assert decorators.realm_from_issuer("http://kc/realms/acme") == "acme"
        assert decorators.realm_from_issuer("no-realm-here") == "no-realm-here"

    def test_trusted_realm_accepts_public_base(self):
        bases = ["http://keycloak:8080", "https://login.example.com"]
        assert decorators.trusted_realm("https://login.example.com/realms/acme", bases) == "acme"

    @pytest.mark.parametrize(
        "issuer",
        [
            "https://evil.example.com/realms/acme",
            "http://keycloak:8080/realms/",
            "http://keycloak:8080/realms/acme/../master",
            "",
        ],
    )
    def test_trusted_realm_rejects(self, issuer):
        with pytest.raises(decorators.TokenValidationError, match="Untrusted issuer"):
            decorators.trusted_realm(issuer, ["http://keycloak:8080"])


def test_extract_roles_realm_then_client_roles():
    claims = {
        "realm_access": {"roles": ["offline_access", "uma_authorization"]},
        "resource_access": {
            "product-service": {"roles": ["reader"]},
            "account": {"roles": ["manage-account"]},
            "broken": "not-a-dict",
        },
    }
    assert decorators.extract_roles(claims) == [
        "offline_access",
        "uma_authorization",
        "reader",
        "manage-account",
    ]


def test_extract_roles_tolerates_missing_blocks():
    assert decorators.extract_roles({}) == []
    assert decorators.extract_roles({"realm_access": {"roles": "admin"}}) == []


def test_get_jwks_client_points_at_configured_keycloak(app_ctx):
    client = decorators.get_jwks_client("acme")
    assert client.uri == f"{KEYCLOAK_URL}/realms/acme/protocol/openid-connect/certs"
    assert decorators._jwks_clients == {}


def test_remembered_jwks_client_is_reused(app_ctx):
    first = decorators.get_jwks_client("acme")
    decorators.remember_jwks_client("acme", first)
    assert decorators.get_jwks_client("acme") is first
    assert decorators.get_jwks_client("other") is not first


def test_jwks_cache_keyed_by_keycloak_url(app_ctx):
    decorators.remember_jwks_client("acme", DummyJWKS())
    app_ctx.config["APP_CONFIG"] = make_config(keycloak_url="http://other-kc.test")
    assert isinstance(decorators.get_jwks_client("acme"), decorators.PyJWKClient)
    assert set(decorators._jwks_clients) == {(KEYCLOAK_URL, "acme")}


def test_jwks_cache_is_bounded(app_ctx):
    for i in range(decorators.MAX_JWKS_CLIENTS + 5):
        decorators.remember_jwks_client(f"realm{i}", DummyJWKS())
    assert len(decorators._jwks_clients) == decorators.MAX_JWKS_CLIENTS
    assert (KEYCLOAK_URL, "realm0") not in decorators._jwks_clients
    assert (KEYCLOAK_URL, f"realm{decorators.MAX_JWKS_CLIENTS + 4}") in decorators._jwks_clients


class TestDecodeToken:
    def test_success_with_real_signature(self, app_ctx, static_jwks, rsa_key_pair):
        token = create_valid_jwt(rsa_key_pair, azp="billing", roles=["user"])
        claims = decorators.decode_token(token)
        assert claims["azp"] == "billing"
        assert static_jwks.requested_realms == ["acme"]

    def test_public_issuer_resolves_same_realm(self, app_ctx, static_jwks, rsa_key_pair):
        token = create_valid_jwt(rsa_key_pair, issuer="https://login.example.com/realms/acme")
        assert decorators.decode_token(token)["iss"] == "https://login.example.com/realms/acme"
        assert static_jwks.requested_realms == ["acme"]

    def test_expired_token(self, app_ctx, static_jwks, rsa_key_pair):
        token = create_valid_jwt(rsa_key_pair, exp_offset=-600)
        with pytest.raises(decorators.TokenValidationError, match="Token expired"):
            decorators.decode_token(token)

    def test_untrusted_issuer_never_fetches_keys(self, app_ctx, static_jwks, rsa_key_pair):
        token = create_valid_jwt(rsa_key_pair, issuer="https://evil.example.com/realms/acme")
        with pytest.raises(decorators.TokenValidationError, match="Untrusted issuer"):
            decorators.decode_token(token)
        assert static_jwks.requested_realms == []

    def test_malformed_token(self, app_ctx):
        with pytest.raises(decorators.TokenValidationError, match="malformed JWT"):
            decorators.decode_token("not-a-jwt")

    def test_expired_error_mapped(self, monkeypatch, app_ctx, acme_token):
        monkeypatch.setattr(decorators, "get_jwks_client", lambda realm: DummyJWKS())
        real_decode = decorators.jwt.decode

        def decode(token, *args, **kwargs):
            if kwargs.get("options", {}).get("verify_signature") is False:
                return real_decode(token, *args, **kwargs)
            raise ExpiredSignatureError("expired")

        monkeypatch.setattr(decorators.jwt, "decode", decode)
        with pytest.raises(decorators.TokenValidationError, match=r"Token expired \(exp claim\)"):
            decorators.decode_token(acme_token)

    def test_invalid_signature_mapped(self, monkeypatch, app_ctx, acme_token):
        monkeypatch.setattr(decorators, "get_jwks_client", lambda realm: DummyJWKS())
        real_decode = decorators.jwt.decode

        def decode(token, *args, **kwargs):
            if kwargs.get("options", {}).get("verify_signature") is False:
                return real_decode(token, *args, **kwargs)
            raise InvalidSignatureError("bad sig")

        monkeypatch.setattr(decorators.jwt, "decode", decode)
        with pytest.raises(decorators.TokenValidationError, match="Invalid signature"):
            decorators.decode_token(acme_token)

    def test_unknown_signing_key(self, monkeypatch, app_ctx, acme_token):
        class MissingKeyJWKS:
            def get_signing_key_from_jwt(self, token):
                raise PyJWKClientError("Unable to find a signing key that matches")

        monkeypatch.setattr(decorators, "get_jwks_client", lambda realm: MissingKeyJWKS())
        with pytest.raises(decorators.TokenValidationError, match="Signing key unavailable for realm 'acme'"):
            decorators.decode_token(acme_token)

    def test_failed_key_lookups_are_not_cached(self, monkeypatch, app_ctx, rsa_key_pair):
        class MissingKeyJWKS:
            def get_signing_key_from_jwt(self, token):
                raise PyJWKClientError("Unable to find a signing key that matches")

        monkeypatch.setattr(decorators, "get_jwks_client", lambda realm: MissingKeyJWKS())
        for i in range(100):
            token = create_valid_jwt(rsa_key_pair, issuer=f"{KEYCLOAK_URL}/realms/bogus{i}")
            with pytest.raises(decorators.TokenValidationError):
                decorators.decode_token(token)
        assert decorators._jwks_clients == {}

    def test_successful_lookup_is_cached(self, app_ctx, static_jwks, rsa_key_pair):
        decorators.decode_token(create_valid_jwt(rsa_key_pair))
        assert decorators._jwks_clients[(KEYCLOAK_URL, "acme")] is static_jwks

    def test_unexpected_exception_wrapped(self, monkeypatch, app_ctx, acme_token):
        monkeypatch.setattr(decorators, "get_jwks_client", lambda realm: DummyJWKS())
        real_decode = decorators.jwt.decode

        def decode(token, *args, **kwargs):
            if kwargs.get("options", {}).get("verify_signature") is False:
                return real_decode(token, *args, **kwargs)
            raise RuntimeError("boom")

        monkeypatch.setattr(decorators.jwt, "decode", decode)
        with pytest.raises(decorators.TokenValidationError, match="Token validation failed: boom"):
            decorators.decode_token(acme_token)

    def test_token_signed_with_other_key(self, app_ctx, static_jwks):
        from cryptography.hazmat.primitives.asymmetric import rsa

        other = {"private_key": rsa.generate_private_key(public_exponent=65537, key_size=2048)}
        token = create_valid_jwt(other)
        with pytest.raises(decorators.TokenValidationError, match="Invalid signature"):
            decorators.decode_token(token)
