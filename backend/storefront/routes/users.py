# Overview: Flask API routes for user administration; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import user_service
from . import HANDLED_ERRORS, actor, internal_error, json_error

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("MANAGE_USERS")
def list_users_route():
    try:
        users = user_service.list_users(actor(), status=request.args.get("status") or None)
    except HANDLED_ERRORS as e:
        return json_error(e)
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)})


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """Body: {"username", "role", "status", "full_name", "phone"}"""
    payload = request.get_json(silent=True) or {}
    try:
        user = user_service.create_user_as(actor(), payload)
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("User create failed")
    return jsonify(user.to_dict()), 201


@users_bp.patch("/<int:user_id>/status")
@require_auth
@require_permission("MANAGE_USERS")
def set_user_status_route(user_id: int):
    """Body: {"status": "pending_info" | "pending_review" | "verified" | "rejected"}"""
    payload = request.get_json(silent=True) or {}
    try:
        user = user_service.set_user_status(actor(), user_id, payload.get("status"))
    except HANDLED_ERRORS as e:
        return json_error(e)
    return jsonify(user.to_dict())
