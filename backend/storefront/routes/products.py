# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/storefront/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS permission
- Write operations require MANAGE_PRODUCTS permission (also re-checked in the service)
"""
from flask import Blueprint, request

from ..services import products_service
from ..validation import coerce_int
from ..decorators import require_auth, require_permission
from . import HANDLED_ERRORS, actor, internal_error, json_error

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    List active products with optional search and pagination.

    Query params:
    - q: str (optional) - name or barcode substring
    - include_inactive: bool (optional, admins) - include retired products
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    include_inactive = request.args.get("include_inactive", "").lower() in {"1", "true", "yes"}
    identity = actor()
    if include_inactive and not (identity and identity.is_admin):
        include_inactive = False

    return products_service.list_products(
        search=request.args.get("q"),
        include_inactive=include_inactive,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product_route(product_id: int):
    try:
        return products_service.get_product(product_id).to_dict()
    except HANDLED_ERRORS as e:
        return json_error(e)


@products_bp.get("/<int:product_id>/availability")
@require_auth
@require_permission("VIEW_PRODUCTS")
def availability_route(product_id: int):
    """Add-to-cart check: ?quantity=N (default 1)."""
    try:
        quantity = coerce_int(request.args.get("quantity", "1"), "quantity")
        p = products_service.ensure_in_stock(product_id, quantity)
    except HANDLED_ERRORS as e:
        return json_error(e)
    return {"product_id": p.id, "quantity": quantity, "available": True, "stock": p.stock}


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        created = products_service.upsert_product(actor(), payload)
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Product create failed")
    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        updated = products_service.upsert_product(actor(), payload, product_id=product_id)
    except HANDLED_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Product update failed")
    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    """Retire a product (is_active=false); past sales keep their lines."""
    try:
        products_service.remove_product(actor(), product_id)
    except HANDLED_ERRORS as e:
        return json_error(e)
    return {"ok": True}, 200
