# Overview: Flask API routes for customer records; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import customer_service
from . import HANDLED_ERRORS, actor, internal_error, json_error

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def list_customers_route():
    include_inactive = request.args.get("include_inactive", "").lower() in {"1", "true", "yes"}
    try:
        items = customer_service.list_customers(
            actor(), search=request.args.get("q"), include_inactive=include_inactive
        )
    except HANDLED_ERRORS as e:
        return json_error(e)
    return jsonify({"items": items, "count": len(items)})


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(actor(), customer_id)
    except HANDLED_ERRORS as e:
        return json_error(e)
    return jsonify(customer_service.customer_to_dict(customer))


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.upsert_customer(actor(), payload)
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Customer create failed")
    return jsonify(customer_service.customer_to_dict(customer)), 201


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.upsert_customer(actor(), payload, customer_id=customer_id)
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Customer update failed")
    return jsonify(customer_service.customer_to_dict(customer))


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def delete_customer_route(customer_id: int):
    try:
        customer_service.remove_customer(actor(), customer_id)
    except HANDLED_ERRORS as e:
        return json_error(e)
    return jsonify({"ok": True})
