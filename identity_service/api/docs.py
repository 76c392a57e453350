"""OpenAPI description of the service and a ReDoc page rendering it."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from flask import Blueprint, Response, current_app, jsonify, request, url_for

bp = Blueprint("docs", __name__)

REDOC_SCRIPT = "https://cdn.redoc.ly/redoc/latest/bundles/redoc.standalone.js"


def _spec_path() -> Path:
    """OPENAPI_SPEC_PATH when set, else openapi/identity_openapi.yaml at the project root."""
    override = current_app.config.get("OPENAPI_SPEC_PATH")
    if override:
        return Path(override)
    return Path(current_app.root_path).parent / "openapi" / "identity_openapi.yaml"


def _load_spec() -> dict[str, Any]:
    path = _spec_path()
    if not path.exists():
        raise FileNotFoundError(f"OpenAPI spec not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


@bp.route("/openapi.json", methods=["GET"])
def openapi_document() -> Response:
    """Serve the OpenAPI document as JSON, pointed at the URL it was fetched from.

    Behind the reverse proxy (ProxyFix) the server entry follows the
    forwarded scheme and host, so ReDoc samples show the public address.
    """
    spec = _load_spec()
    spec["servers"] = [{"url": request.url_root.rstrip("/") or "/"}]
    return jsonify(spec)


@bp.route("/docs", methods=["GET"])
def api_docs() -> Response:
    spec_url = url_for("docs.openapi_document", _external=False)
    html = f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8"/>
    <title>Identity Service – API Reference</title>
    <meta name="robots" content="noindex,nofollow"/>
    <style>body {{ margin: 0; }}</style>
  </head>
  <body>
    <redoc spec-url="{spec_url}" hide-download-button expand-responses="200"></redoc>
    <script src="{REDOC_SCRIPT}"></script>
  </body>
</html>"""
    return Response(html, status=200, mimetype="text/html")
