# Overview: Flask API routes for the caller's own session; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..permissions import get_permission_definition
from ..services import permission_service, session_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.get("/me")
@require_auth
def me_route():
    """Who the bearer token belongs to and what it may do."""
    identity = g.identity
    return jsonify({
        "user": g.current_user.to_dict(),
        "identity": identity.to_dict(),
        "permissions": [
            get_permission_definition(code)
            for code in sorted(permission_service.get_permissions(identity))
        ],
        "can_approve_transactions": permission_service.can_approve_transactions(identity),
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the presented session token."""
    token = request.headers.get("Authorization", "").split(" ", 1)[1]
    session_service.revoke_session(token)
    return jsonify({"ok": True})
