"""Error handlers for the application.

Every error leaves the service as JSON: {"error": <reason>, "message": <detail>}.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


def _error_response(error: HTTPException, message: str = None):
    return jsonify({"error": error.name, "message": message or error.description}), error.code


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request errors (missing parameters, malformed bodies)."""
        return _error_response(error)

    @app.errorhandler(401)
    def unauthorized(error):
        return _error_response(error, "Authentication required")

    @app.errorhandler(404)
    def not_found(error):
        return _error_response(error, "Resource not found")

    @app.errorhandler(405)
    def method_not_allowed(error):
        return _error_response(error)

    @app.errorhandler(413)
    def request_too_large(error):
        """Handle uploads above MAX_CONTENT_LENGTH."""
        return _error_response(error, "Uploaded payload exceeds the maximum allowed size")

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 Internal Server Error."""
        logger.error("Internal error: %s", error, exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        logger.error("Unhandled exception: %s", error, exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": str(error) or "An unexpected error occurred"}), 500
