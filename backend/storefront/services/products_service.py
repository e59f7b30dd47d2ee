# Overview: Inventory manager; product catalog maintenance and the stock counter the ledger moves.

"""
Products Service

Admin-facing catalog maintenance (upsert, tombstone) plus the two stock
primitives used elsewhere:

- adjust_stock: ledger-internal, never commits; the caller's transaction
  owns the write together with the sale row.
- ensure_in_stock: read-only check used before adding to a cart.
"""
from __future__ import annotations

import secrets

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..validation import (
    ConflictError,
    InsufficientStockError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)
from .concurrency import lock_for_update
from .permission_service import Identity, require_permission

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "category",
        "barcode",
        "image_url",
        "price_cents",
        "cost_cents",
        "stock",
        "max_per_order",
        "is_active",
    },
    required_on_create={"name", "price_cents"},
)

BARCODE_DIGITS = 6
BARCODE_ATTEMPTS = 20


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_POLICY.writable_fields:
            continue
        setattr(p, k, v)


def _generate_barcode() -> str:
    """Random 6-digit numeric barcode not already taken."""
    for _ in range(BARCODE_ATTEMPTS):
        candidate = "".join(secrets.choice("0123456789") for _ in range(BARCODE_DIGITS))
        if not db.session.query(Product.id).filter_by(barcode=candidate).first():
            return candidate
    raise ConflictError("Could not allocate a unique barcode", field="barcode")


def _check_barcode_free(barcode: str, product_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(Product.barcode == barcode)
    if product_id is not None:
        q = q.filter(Product.id != product_id)
    if q.first():
        raise ConflictError("Barcode already exists.", field="barcode")


def list_products(
    search: str | None = None,
    include_inactive: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional name/barcode search and pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product)
    if not include_inactive:
        base_query = base_query.filter(Product.is_active.is_(True))

    if search:
        term = search.strip().lower()
        base_query = base_query.filter(
            or_(
                db.func.lower(Product.name).contains(term, autoescape=True),
                db.func.lower(Product.barcode).contains(term, autoescape=True),
            )
        )

    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int) -> Product:
    """Tombstoned products are returned too so historical lines always resolve."""
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found", field="product_id")
    return p


def upsert_product(actor: Identity | None, payload: dict, product_id: int | None = None) -> Product:
    """
    Create (product_id is None) or update a product.

    Create requires name and price_cents; category defaults to General,
    cost and stock to 0, and a blank barcode is replaced with a generated one.

    Raises:
        AuthorizationError: actor lacks MANAGE_PRODUCTS
        ValidationError: bad field, type or range
        NotFoundError: product_id does not exist
        ConflictError: barcode already used by another product
    """
    require_permission(actor, "MANAGE_PRODUCTS")

    creating = product_id is None
    payload = dict(payload or {})

    # Blank barcode means "assign one"
    if "barcode" in payload and payload["barcode"] in (None, "") and creating:
        payload.pop("barcode")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=not creating)
    enforce_rules_product(patch)

    if creating:
        p = Product(category="General", cost_cents=0, stock=0, is_active=True)
        if patch.get("barcode"):
            _check_barcode_free(patch["barcode"])
        else:
            patch["barcode"] = _generate_barcode()
        apply_product_patch(p, patch)
        db.session.add(p)
    else:
        p = get_product(product_id)
        if "barcode" in patch and patch["barcode"] != p.barcode:
            _check_barcode_free(patch["barcode"], product_id=p.id)
        apply_product_patch(p, patch)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Barcode already exists.", field="barcode")

    current_app.logger.info(
        "Product %s id=%s by user=%s", "created" if creating else "updated", p.id, actor.id
    )
    return p


def remove_product(actor: Identity | None, product_id: int) -> Product:
    """Tombstone a product; sale lines that reference it are left untouched."""
    require_permission(actor, "MANAGE_PRODUCTS")

    p = get_product(product_id)
    if p.is_active:
        p.is_active = False
        db.session.commit()
        current_app.logger.info("Product deactivated id=%s by user=%s", p.id, actor.id)
    return p


def adjust_stock(product_id: int, delta: int, *, clamp: bool = True) -> Product:
    """
    Move the on-hand counter by delta inside the caller's transaction.

    Decrements below zero clamp at 0 when clamp is set; otherwise they raise
    InsufficientStockError. Never commits.
    """
    p = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if not p:
        raise NotFoundError("Product not found", field="product_id")

    new_stock = p.stock + delta
    if new_stock < 0:
        if not clamp:
            raise InsufficientStockError(
                f"Insufficient stock for {p.name}",
                field="quantity",
                details={"product_id": p.id, "requested_quantity": -delta, "on_hand": p.stock},
            )
        new_stock = 0

    p.stock = new_stock
    return p


def ensure_in_stock(product_id: int, quantity: int) -> Product:
    """Raise unless an active product can supply quantity units right now."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("quantity must be >= 1", field="quantity")

    p = get_product(product_id)
    if not p.is_active:
        raise ValidationError(f"{p.name} is no longer available", field="product_id")
    if p.stock < quantity:
        raise InsufficientStockError(
            f"Insufficient stock for {p.name}",
            field="quantity",
            details={"product_id": p.id, "requested_quantity": quantity, "on_hand": p.stock},
        )
    if p.max_per_order is not None and quantity > p.max_per_order:
        raise ValidationError(
            f"{p.name} is limited to {p.max_per_order} per order", field="quantity"
        )
    return p
