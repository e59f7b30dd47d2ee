# Overview: Shared error-to-HTTP mapping for API routes.

from flask import current_app, jsonify

from ..services.permission_service import AuthorizationError, current_identity
from ..validation import ConflictError, NotFoundError, StorefrontError, ValidationError

# Errors a route turns into a JSON body with a 4xx status
HANDLED_ERRORS = (StorefrontError, AuthorizationError)


def json_error(exc: Exception):
    if isinstance(exc, AuthorizationError):
        return jsonify(exc.to_dict()), 403
    if isinstance(exc, NotFoundError):
        return jsonify(exc.to_dict()), 404
    if isinstance(exc, ConflictError):
        return jsonify(exc.to_dict()), 409
    if isinstance(exc, (ValidationError, StorefrontError)):
        return jsonify(exc.to_dict()), 400
    return jsonify({"error": "Internal server error"}), 500


def internal_error(message: str):
    """Log the active exception with its traceback and return a generic 500."""
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500


def actor():
    return current_identity()
