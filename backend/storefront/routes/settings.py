from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import settings_service
from . import HANDLED_ERRORS, actor, internal_error, json_error


settings_bp = Blueprint("settings", __name__, url_prefix="/api")


@settings_bp.get("/settings")
@require_auth
def get_settings_route():
    return jsonify(settings_service.get_settings().to_dict())


@settings_bp.patch("/settings")
@require_auth
@require_permission("MANAGE_SETTINGS")
def patch_settings_route():
    """
    Partial update. service_profits merges per service kind and field:
    {"service_profits": {"wallet": {"fixed_cents": 700}}}
    """
    payload = request.get_json(silent=True)
    try:
        updated = settings_service.update_settings(actor(), payload)
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Settings update failed")
    return jsonify(updated.to_dict())
