# Overview: Flask API routes for the transaction ledger and service catalog; parses input and returns JSON responses.

"""
Ledger routes.

- POST /api/transactions/pos       counter sale (admin)
- POST /api/transactions/orders    shop order
- POST /api/transactions/services  payment-service request
- POST /api/transactions/<doc>/status  approve / reject (admin)

Non-admin callers only ever see their own transactions; another user's
document number reads as 404.
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import sales_service, service_catalog
from ..services.settings_service import get_settings
from . import HANDLED_ERRORS, actor, internal_error, json_error

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api")


@transactions_bp.get("/services")
@require_auth
def list_services_route():
    """Payment services and recharge providers that can be requested."""
    return jsonify(service_catalog.catalog_to_dict())


@transactions_bp.get("/transactions")
@require_auth
@require_permission("VIEW_OWN_TRANSACTIONS")
def list_transactions_route():
    """
    Query params:
    - q: case-insensitive substring of document number or note
    - status: pending | success | rejected
    - kind: product-sale | service-request
    - user_id: int (admins only; ignored otherwise)
    - limit: int (optional)
    """
    try:
        sales = sales_service.list_transactions(
            actor(),
            search=request.args.get("q"),
            status=request.args.get("status") or None,
            user_id=request.args.get("user_id", type=int),
            kind=request.args.get("kind") or None,
            limit=request.args.get("limit", type=int),
        )
    except HANDLED_ERRORS as e:
        return json_error(e)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@transactions_bp.get("/transactions/<document_number>")
@require_auth
@require_permission("VIEW_OWN_TRANSACTIONS")
def get_transaction_route(document_number: str):
    try:
        sale = sales_service.get_transaction(actor(), document_number)
    except HANDLED_ERRORS as e:
        return json_error(e)
    return jsonify(sale.to_dict())


@transactions_bp.post("/transactions/pos")
@require_auth
@require_permission("CREATE_POS_SALE")
def create_pos_sale_route():
    """
    Body: {"items": [{"product_id", "quantity"}], "payment_method", "discount_cents",
           "customer_id", "note", "status": "pending" | "success"}
    """
    payload = request.get_json(silent=True) or {}
    try:
        sale = sales_service.create_pos_sale(actor(), payload, get_settings())
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("POS sale failed")
    return jsonify(sale.to_dict()), 201


@transactions_bp.post("/transactions/orders")
@require_auth
@require_permission("CREATE_ORDER")
def create_order_route():
    """Body: {"items": [{"product_id", "quantity"}], "payment_method", "note", "delivery_address"}"""
    payload = request.get_json(silent=True) or {}
    try:
        sale = sales_service.create_shop_order(actor(), payload, get_settings())
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Shop order failed")
    return jsonify(sale.to_dict()), 201


@transactions_bp.post("/transactions/services")
@require_auth
@require_permission("CREATE_SERVICE_REQUEST")
def create_service_request_route():
    """
    Body: {"service_id", "identifier", "amount_cents", "note",
           "provider", "sub_service", "package"}  (last three for recharge)
    """
    payload = request.get_json(silent=True) or {}
    try:
        sale = sales_service.create_service_request(actor(), payload, get_settings())
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Service request failed")
    return jsonify(sale.to_dict()), 201


@transactions_bp.post("/transactions/<document_number>/status")
@require_auth
@require_permission("APPROVE_TRANSACTIONS")
def set_status_route(document_number: str):
    """Body: {"status": "success" | "rejected"}"""
    payload = request.get_json(silent=True) or {}
    try:
        sale = sales_service.set_status(actor(), document_number, payload.get("status"))
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Status update failed")
    return jsonify(sale.to_dict())
