"""Request models for signup and client role payloads.

Payloads arrive as camelCase JSON; snake_case keys are accepted as
aliases.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional

from identity_service.core import validators


def _pick(payload: dict, *keys: str, default: Any = None) -> Any:
    """Return the first key present in payload."""
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class UrlEntry:
    """An endpoint a client role grants access to."""
    url: str
    method: str = "GET"

    @classmethod
    def from_dict(cls, payload: Any) -> "UrlEntry":
        if not isinstance(payload, dict):
            raise ValueError("urls entries must be objects with 'url' and 'method'")
        url = str(payload.get("url") or payload.get("uri") or "").strip()
        if not url:
            raise ValueError("urls[].url is required")
        return cls(url=url, method=validators.validate_http_method(payload.get("method") or "GET"))

    def as_attribute(self) -> str:
        return f"{self.method} {self.url}"


@dataclass
class RoleRequest:
    """Client role creation/update request."""
    name: str
    description: str = ""
    urls: list[UrlEntry] = field(default_factory=list)
    attributes: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Any) -> "RoleRequest":
        """Build a RoleRequest from JSON.

        Raises:
            ValueError: If the payload is not an object or the name is blank
        """
        if not isinstance(payload, dict):
            raise ValueError("Role request must be a JSON object")

        name = validators.validate_role_name(_pick(payload, "name", "roleName", default=""))
        raw_urls = _pick(payload, "urls", default=[])
        if not isinstance(raw_urls, list):
            raise ValueError("urls must be a list")

        raw_attributes = _pick(payload, "attributes", default={})
        if not isinstance(raw_attributes, dict):
            raise ValueError("attributes must be an object")
        attributes = {
            str(key): [str(item) for item in value] if isinstance(value, list) else [str(value)]
            for key, value in raw_attributes.items()
        }

        return cls(
            name=name,
            description=str(_pick(payload, "description", default="")),
            urls=[UrlEntry.from_dict(entry) for entry in raw_urls],
            attributes=attributes,
        )

    def to_representation(self) -> dict:
        """Keycloak RoleRepresentation for this request."""
        attributes = dict(self.attributes)
        if self.urls:
            attributes["urls"] = [entry.as_attribute() for entry in self.urls]
        representation: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "clientRole": True,
        }
        if attributes:
            representation["attributes"] = attributes
        return representation


def parse_role_requests(payload: Any) -> list[RoleRequest]:
    """Parse the JSON list body of the client role creation route."""
    if not isinstance(payload, list):
        raise ValueError("Request body must be a JSON list of roles")
    return [RoleRequest.from_dict(entry) for entry in payload]


@dataclass
class SignupRequest:
    """New tenant: a realm, its client and its first admin user."""
    realm_name: str
    client_id: str
    admin_username: str
    admin_password: str
    admin_email: str
    admin_first_name: str = ""
    admin_last_name: str = ""
    public_client: bool = False
    roles: list[RoleRequest] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Any) -> "SignupRequest":
        """Validate and build a SignupRequest.

        Raises:
            ValueError: On a missing or malformed field
        """
        if not isinstance(payload, dict):
            raise ValueError("Signup request must be a JSON object")

        raw_roles = _pick(payload, "roles", default=[])
        roles = parse_role_requests(raw_roles) if raw_roles else []

        return cls(
            realm_name=validators.validate_identifier(_pick(payload, "realmName", "realm_name", default=""), "realmName"),
            client_id=validators.validate_identifier(_pick(payload, "clientId", "client_id", default=""), "clientId"),
            admin_username=validators.validate_username(_pick(payload, "adminUsername", "admin_username", "username", default="")),
            admin_password=validators.validate_password(_pick(payload, "adminPassword", "admin_password", "password", default="")),
            admin_email=validators.validate_email(_pick(payload, "adminEmail", "admin_email", "email", default="")),
            admin_first_name=str(_pick(payload, "adminFirstName", "admin_first_name", "firstName", default="")).strip(),
            admin_last_name=str(_pick(payload, "adminLastName", "admin_last_name", "lastName", default="")).strip(),
            public_client=_as_bool(_pick(payload, "publicClient", "public_client"), default=False),
            roles=roles,
        )

    def __repr__(self) -> str:
        return (
            f"SignupRequest(realm_name={self.realm_name!r}, client_id={self.client_id!r}, "
            f"admin_username={self.admin_username!r}, roles={[role.name for role in self.roles]!r})"
        )

    def admin_user_payload(self) -> dict:
        """Keycloak user representation for the tenant admin."""
        return {
            "username": self.admin_username,
            "email": self.admin_email,
            "firstName": self.admin_first_name,
            "lastName": self.admin_last_name,
            "enabled": True,
            "emailVerified": True,
            "credentials": [
                {"type": "password", "value": self.admin_password, "temporary": False}
            ],
        }


def optional_str(value: Any) -> Optional[str]:
    """Collapse missing or blank values to None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None
