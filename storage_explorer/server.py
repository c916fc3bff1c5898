from __future__ import annotations
"""JSON RPC boundary exposing the gateway over HTTP."""
import logging
from typing import Any

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from .errors import GatewayError, UnknownError
from .services import ObjectStoreGateway
from .ui_utils import content_disposition, load_package_info
from .validation import parse_download_input, parse_list_objects_input, parse_profile

LOGGER = logging.getLogger(__name__)


def ok(data: Any) -> Response:
    return jsonify({"ok": True, "data": data})


def fail(error: GatewayError, status: int = 400) -> tuple[Response, int]:
    return jsonify({"ok": False, "error": error.to_dict()}), status


def _body() -> dict[str, Any]:
    # Malformed JSON is treated like an empty body.
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def create_app(gateway: ObjectStoreGateway | None = None) -> Flask:
    """Build the Flask application serving the ``/api/s3/*`` endpoints."""

    app = Flask(__name__)
    gateway = gateway or ObjectStoreGateway()

    @app.errorhandler(GatewayError)
    def handle_gateway_error(exc: GatewayError):
        LOGGER.info("%s failed: %s (%s)", request.path, exc.message, exc.code)
        return fail(exc)

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        LOGGER.exception("Unexpected error handling %s", request.path)
        return fail(UnknownError(str(exc) or "Unexpected server error."), 500)

    @app.get("/api/health")
    def health():
        return ok({"status": "ok", "version": load_package_info().version})

    @app.post("/api/s3/test-connection")
    def test_connection():
        profile = parse_profile(_body().get("profile"))
        return ok(gateway.test_connection(profile).to_dict())

    @app.post("/api/s3/list-buckets")
    def list_buckets():
        profile = parse_profile(_body().get("profile"))
        buckets = gateway.list_buckets(profile)
        return ok({"buckets": [bucket.to_dict() for bucket in buckets]})

    @app.post("/api/s3/list-objects")
    def list_objects():
        params = parse_list_objects_input(_body())
        page = gateway.list_objects(**params)
        return ok(page.to_dict())

    @app.post("/api/s3/download-object")
    def download_object():
        params = parse_download_input(_body())
        download = gateway.download_object(**params)
        headers = {"Content-Disposition": content_disposition(download.filename)}
        if download.content_length is not None:
            headers["Content-Length"] = str(download.content_length)
        response = Response(
            download.iter_chunks(),
            content_type=download.content_type or "application/octet-stream",
            headers=headers,
        )
        response.call_on_close(download.close)
        return response

    return app
