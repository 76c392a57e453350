"""Docker Hub and GitHub provisioning routes for realm clients."""
from __future__ import annotations
import logging

from flask import Blueprint, request

from identity_service.api.helpers.context import app_config, text_response
from identity_service.core.docker_hub import DockerHubService
from identity_service.core.github import InvalidArchiveError, ProvisioningService

bp = Blueprint("provisioning", __name__)

logger = logging.getLogger(__name__)


def _uploaded_file():
    """Return the multipart `file` field, or None when absent/empty."""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return None
    return upload


@bp.route("/docker/<realm>/<client_id>/repository", methods=["POST"])
def create_docker_repository(realm: str, client_id: str):
    try:
        repository = DockerHubService(app_config()).create_repository(realm, client_id)
    except Exception as e:
        logger.error("[docker] Repository creation failed for %s/%s: %s", realm, client_id, e)
        return text_response(f"Docker repository creation failed: {e}", 500)
    return text_response(f"Docker repository ready: {repository}")


@bp.route("/docker/<realm>/<client_id>/image", methods=["POST"])
def push_docker_image(realm: str, client_id: str):
    upload = _uploaded_file()
    if upload is None:
        return text_response("Docker push failed: multipart field 'file' (image tar) is required", 400)

    tag = request.values.get("tag") or "latest"
    try:
        reference = DockerHubService(app_config()).push_image(upload.stream, realm, client_id, tag=tag)
    except Exception as e:
        logger.error("[docker] Push failed for %s/%s: %s", realm, client_id, e)
        message = str(e)
        if not message.startswith("Docker push failed"):
            message = f"Docker push failed: {message}"
        return text_response(message, 500)
    return text_response(f"Docker image pushed: {reference}")


@bp.route("/github/<realm>/<client_id>/provision", methods=["POST"])
def provision_github_repository(realm: str, client_id: str):
    upload = _uploaded_file()
    if upload is None:
        return text_response("Provisioning failed: multipart field 'file' (zip archive) is required", 400)

    try:
        repository = ProvisioningService(app_config()).provision_repo_and_push_zip(realm, client_id, upload.stream)
    except InvalidArchiveError as e:
        return text_response(f"Provisioning failed: {e}", 400)
    except Exception as e:
        logger.error("[github] Provisioning failed for %s/%s: %s", realm, client_id, e)
        message = str(e)
        if not message.startswith("Provisioning failed"):
            message = f"Provisioning failed: {message}"
        return text_response(message, 500)
    return text_response(f"Repository provisioned: {repository}")
