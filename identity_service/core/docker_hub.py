"""Docker Hub repository creation and image push.

Repository creation goes through the Docker Hub HTTP API; pushing an
uploaded image archive shells out to the docker CLI
(login -> load -> tag -> push).
"""
from __future__ import annotations
import logging
import os
import re
import shutil
import tempfile
from typing import BinaryIO, Optional

import requests

from identity_service.config.settings import AppConfig
from identity_service.core.shell import CommandError, run_command

logger = logging.getLogger(__name__)

LOADED_IMAGE_PATTERN = re.compile(r"^Loaded image(?: ID)?:\s*(\S+)\s*$", re.MULTILINE)


class DockerHubError(Exception):
    """Docker Hub API call or docker command failed."""
    pass


def repository_name(realm: str, client_id: str) -> str:
    """Docker Hub repository name for a realm client: realm-clientid, lower-cased."""
    return f"{realm}-{client_id}".lower()


class DockerHubService:
    """Service for a Docker Hub namespace owned by the configured account."""

    def __init__(self, cfg: AppConfig):
        """Initialize Docker Hub service.

        Raises:
            ConfigurationError: If Docker Hub credentials are missing
        """
        cfg.require_docker()
        self.cfg = cfg
        self.base_url = cfg.docker_hub_url.rstrip("/")
        self.namespace = cfg.docker_username
        self.timeout = cfg.request_timeout

    def image_reference(self, realm: str, client_id: str, tag: str = "latest") -> str:
        return f"{self.namespace}/{repository_name(realm, client_id)}:{tag}"

    def login(self) -> str:
        """Exchange the account credentials for a Docker Hub JWT."""
        url = f"{self.base_url}/v2/users/login/"
        try:
            resp = requests.post(
                url,
                json={"username": self.cfg.docker_username, "password": self.cfg.docker_password},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DockerHubError(f"Docker Hub login failed: {exc}") from exc

        if resp.status_code != 200:
            raise DockerHubError(f"Docker Hub login failed: [{resp.status_code}] {resp.text}")
        token = (resp.json() or {}).get("token")
        if not token:
            raise DockerHubError("Docker Hub login failed: no token in response")
        logger.info("[docker] Docker Hub JWT token retrieved")
        return token

    def create_repository(self, realm: str, client_id: str) -> str:
        """Create a private repository for the realm client.

        An existing repository (409) is left as is.

        Returns:
            Full repository name (namespace/name)
        """
        name = repository_name(realm, client_id)
        jwt_token = self.login()
        body = {
            "name": name,
            "namespace": self.namespace,
            "is_private": True,
            "description": f"Repository for {name}",
        }
        url = f"{self.base_url}/v2/repositories/{self.namespace}/"
        try:
            resp = requests.post(
                url,
                json=body,
                headers={"Authorization": f"JWT {jwt_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DockerHubError(f"Docker Hub repo creation failed: {exc}") from exc

        if resp.status_code == 409:
            logger.warning("[docker] Repository already exists, skipping creation: %s", name)
        elif resp.status_code >= 400:
            raise DockerHubError(f"Docker Hub repo creation failed: [{resp.status_code}] {resp.text}")
        else:
            logger.info("[docker] Docker Hub repository created: %s/%s", self.namespace, name)
        return f"{self.namespace}/{name}"

    def push_image(self, stream: BinaryIO, realm: str, client_id: str, tag: str = "latest") -> str:
        """Load an uploaded image archive and push it to the realm client repository.

        Args:
            stream: Readable binary stream of a `docker save` tar archive
            realm: Realm name
            client_id: Client ID
            tag: Tag to push

        Returns:
            The pushed image reference
        """
        target = self.image_reference(realm, client_id, tag)
        fd, archive_path = tempfile.mkstemp(prefix=f"{repository_name(realm, client_id)}-", suffix=".tar")
        try:
            with os.fdopen(fd, "wb") as archive:
                shutil.copyfileobj(stream, archive)

            self._docker_login()
            loaded = self._docker_load(archive_path)
            self._docker("tag", loaded, target)
            self._docker("push", target)
        except CommandError as exc:
            raise DockerHubError(f"Docker push failed: {exc}") from exc
        finally:
            try:
                os.unlink(archive_path)
            except FileNotFoundError:
                pass

        logger.info("[docker] Docker image pushed: %s", target)
        return target

    def _docker(self, *args: str, input: Optional[str] = None):
        return run_command(
            [self.cfg.docker_binary, *args],
            input=input,
            secrets=[self.cfg.docker_password],
        )

    def _docker_login(self) -> None:
        self._docker(
            "login",
            "--username",
            self.cfg.docker_username,
            "--password-stdin",
            self.cfg.docker_registry,
            input=self.cfg.docker_password,
        )

    def _docker_load(self, archive_path: str) -> str:
        """Run `docker load` and return the reference of the loaded image."""
        result = self._docker("load", "-i", archive_path)
        matches = LOADED_IMAGE_PATTERN.findall(result.stdout or "")
        if not matches:
            raise DockerHubError("Docker push failed: could not determine the loaded image from docker load output")
        return matches[-1]
