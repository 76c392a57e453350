"""GitHub repository provisioning for realm clients.

A zip archive of source code becomes the initial commit of a new private
repository in the configured organization.
"""
from __future__ import annotations
import logging
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import BinaryIO

import requests

from identity_service.config.settings import AppConfig
from identity_service.core.shell import CommandError, run_command

logger = logging.getLogger(__name__)


class ProvisioningError(Exception):
    """GitHub repository provisioning failed."""
    pass


class InvalidArchiveError(ProvisioningError):
    """The uploaded archive is not a usable zip file."""
    pass


def repository_name(realm: str, client_id: str) -> str:
    return f"{realm}-{client_id}"


def extract_zip(archive_path: Path, destination: Path) -> int:
    """Extract a zip archive, refusing entries that escape destination.

    Returns:
        Number of files extracted

    Raises:
        InvalidArchiveError: If the archive is corrupt, unsafe or empty
    """
    root = destination.resolve()
    try:
        with zipfile.ZipFile(archive_path) as archive:
            members = archive.infolist()
            for member in members:
                target = (root / member.filename).resolve()
                if target != root and root not in target.parents:
                    raise InvalidArchiveError(f"Archive entry escapes target directory: {member.filename}")
            archive.extractall(root)
    except zipfile.BadZipFile as exc:
        raise InvalidArchiveError(f"Uploaded file is not a valid zip archive: {exc}") from exc

    files = sum(1 for member in members if not member.is_dir())
    if files == 0:
        raise InvalidArchiveError("Uploaded archive contains no files")
    return files


class ProvisioningService:
    """Creates GitHub repositories and pushes uploaded code to them."""

    def __init__(self, cfg: AppConfig):
        """Initialize provisioning service.

        Raises:
            ConfigurationError: If GITHUB_TOKEN or GITHUB_ORG is missing
        """
        cfg.require_github()
        self.cfg = cfg
        self.token = cfg.github_token.strip()
        self.org = cfg.github_org.strip()

    def provision_repo_and_push_zip(self, realm: str, client_id: str, stream: BinaryIO) -> str:
        """Create `<org>/<realm>-<clientId>` and push the zip contents to it.

        Args:
            realm: Realm name
            client_id: Client ID
            stream: Readable binary stream of a zip archive

        Returns:
            Full repository name (org/name)

        Raises:
            InvalidArchiveError: If the upload is not a usable zip archive
            ProvisioningError: If the GitHub call or a git command fails
        """
        repo_name = repository_name(realm, client_id)
        workdir = Path(tempfile.mkdtemp(prefix="repo-"))
        try:
            archive_path = workdir / "upload.zip"
            with archive_path.open("wb") as handle:
                shutil.copyfileobj(stream, handle)

            source_dir = workdir / "src"
            source_dir.mkdir()
            file_count = extract_zip(archive_path, source_dir)
            logger.info("[github] Extracted %d file(s) for %s", file_count, repo_name)

            self.create_repository(repo_name)
            self.push_initial_commit(source_dir, repo_name)
        except InvalidArchiveError:
            raise
        except (CommandError, requests.RequestException, OSError) as exc:
            raise ProvisioningError(f"Provisioning failed: {exc}") from exc
        except ProvisioningError as exc:
            raise ProvisioningError(f"Provisioning failed: {exc}") from exc
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

        logger.info("[github] Repository provisioned: %s/%s", self.org, repo_name)
        return f"{self.org}/{repo_name}"

    def create_repository(self, repo_name: str) -> dict:
        """Create a private repository in the organization.

        Raises:
            ProvisioningError: Unless GitHub answers 201 Created
        """
        url = f"{self.cfg.github_api_url.rstrip('/')}/orgs/{self.org}/repos"
        resp = requests.post(
            url,
            json={"name": repo_name, "private": True},
            headers={
                "Authorization": f"token {self.token}",
                "Accept": "application/vnd.github+json",
            },
            timeout=self.cfg.request_timeout,
        )
        if resp.status_code != 201:
            raise ProvisioningError(f"GitHub repo creation failed: [{resp.status_code}] {resp.text}")
        logger.info("[github] Repository %s/%s created", self.org, repo_name)
        return resp.json()

    def push_initial_commit(self, repo_dir: Path, repo_name: str) -> None:
        """Commit everything in repo_dir and push it as the default branch."""
        branch = self.cfg.git_default_branch
        remote = f"https://{self.cfg.github_host}/{self.org}/{repo_name}.git"
        push_url = f"https://x-access-token:{self.token}@{self.cfg.github_host}/{self.org}/{repo_name}.git"

        self._git(repo_dir, "init")
        self._git(repo_dir, "config", "user.name", self.cfg.git_author_name)
        self._git(repo_dir, "config", "user.email", self.cfg.git_author_email)
        self._git(repo_dir, "symbolic-ref", "HEAD", f"refs/heads/{branch}")
        self._git(repo_dir, "remote", "add", "origin", remote)
        self._git(repo_dir, "add", ".")
        self._git(repo_dir, "commit", "-m", "Initial commit")
        self._git(repo_dir, "push", push_url, branch)

    def _git(self, repo_dir: Path, *args: str):
        return run_command([self.cfg.git_binary, *args], cwd=repo_dir, secrets=[self.token])
