# Overview: Flask API routes for expenses; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import expense_service
from . import HANDLED_ERRORS, actor, internal_error, json_error

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def list_expenses_route():
    try:
        expenses = expense_service.list_expenses(actor(), category=request.args.get("category") or None)
    except HANDLED_ERRORS as e:
        return json_error(e)
    return jsonify({"items": [e.to_dict() for e in expenses], "count": len(expenses)})


@expenses_bp.post("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def create_expense_route():
    """Body: {"title", "amount_cents", "category", "occurred_at"}"""
    payload = request.get_json(silent=True) or {}
    try:
        expense = expense_service.create_expense(actor(), payload)
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Expense create failed")
    return jsonify(expense.to_dict()), 201
