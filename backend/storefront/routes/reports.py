# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import reporting_service
from . import HANDLED_ERRORS, actor, internal_error, json_error

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/profit")
@require_auth
@require_permission("VIEW_REPORTS")
def profit_report():
    """Query params: start, end (ISO-8601 date or datetime, optional)."""
    try:
        data = reporting_service.profit_summary(
            actor(), start=request.args.get("start"), end=request.args.get("end")
        )
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Profit report failed")
    return jsonify(data)


@reports_bp.get("/activity")
@require_auth
@require_permission("VIEW_REPORTS")
def activity_report():
    try:
        items = reporting_service.recent_activity(actor(), limit=request.args.get("limit", 15, type=int))
    except HANDLED_ERRORS as e:
        return json_error(e)
    return jsonify({"items": items, "count": len(items)})


@reports_bp.get("/dashboard")
@require_auth
@require_permission("VIEW_REPORTS")
def dashboard_report():
    try:
        return jsonify(reporting_service.dashboard(actor()))
    except HANDLED_ERRORS as e:
        return json_error(e)
