# Overview: Whole-store snapshot; export and import of the six top-level collections.

"""
Snapshot layout (JSON):

    {
      "products":  [...],
      "customers": [...],
      "sales":     [...],   newest first, lines embedded as "items"
      "expenses":  [...],
      "users":     [...],
      "settings":  {...}
    }

Importing preserves ids, document numbers, statuses, totals and stored
profit. Stored profit is never recomputed from the current schedule.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Customer, Expense, Product, Sale, SaleLine, SessionToken, StoreSetting, User
from ..validation import ConflictError, ValidationError
from storefront.time_utils import parse_iso_datetime, utcnow
from .settings_service import get_settings, replace_settings
from .transaction_details import details_from_dict, details_to_dict

SNAPSHOT_KEYS = ("products", "customers", "sales", "expenses", "users", "settings")


def export_state() -> dict:
    return {
        "products": [p.to_dict() for p in db.session.query(Product).order_by(Product.id.asc()).all()],
        "customers": [c.to_dict() for c in db.session.query(Customer).order_by(Customer.id.asc()).all()],
        "sales": [s.to_dict() for s in db.session.query(Sale).order_by(Sale.id.desc()).all()],
        "expenses": [e.to_dict() for e in db.session.query(Expense).order_by(Expense.id.asc()).all()],
        "users": [u.to_dict() for u in db.session.query(User).order_by(User.id.asc()).all()],
        "settings": get_settings().to_dict(),
    }


def _is_empty() -> bool:
    for model in (Product, Customer, Sale, Expense, User):
        if db.session.query(model.id).first():
            return False
    return True


def _dt(value, default=None):
    return parse_iso_datetime(value) if value else default


def _clear():
    db.session.query(SaleLine).delete()
    db.session.query(Sale).delete()
    db.session.query(Expense).delete()
    db.session.query(SessionToken).delete()
    db.session.query(StoreSetting).delete()
    db.session.query(Customer).delete()
    db.session.query(Product).delete()
    db.session.query(User).delete()


def _load_details(data):
    """Check the details type tag; the stored form is the typed details re-serialized."""
    details = details_from_dict(data)
    return details_to_dict(details) if details is not None else None


def _load_sale(raw: dict, now) -> Sale:
    sale = Sale(
        id=raw.get("sequence"),
        document_number=raw["id"],
        kind=raw["kind"],
        channel=raw["channel"],
        user_id=raw["user_id"],
        customer_id=raw.get("customer_id"),
        subtotal_cents=raw["subtotal_cents"],
        tax_cents=raw.get("tax_cents", 0),
        discount_cents=raw.get("discount_cents", 0),
        total_cents=raw["total_cents"],
        profit_cents=raw.get("profit_cents", 0),
        payment_method=raw["payment_method"],
        note=raw.get("note"),
        details=_load_details(raw.get("details")),
        status=raw.get("status", "pending"),
        stock_committed=raw.get("stock_committed", raw["kind"] == "product-sale"),
        stock_restored_at=_dt(raw.get("stock_restored_at")),
        decided_by_user_id=raw.get("decided_by_user_id"),
        decided_at=_dt(raw.get("decided_at")),
        created_at=_dt(raw.get("created_at"), now),
    )
    sale.lines = [
        SaleLine(
            position=item.get("position", i + 1),
            product_id=item.get("product_id"),
            service_id=item.get("service_id"),
            name=item["name"],
            quantity=item["quantity"],
            unit_price_cents=item["unit_price_cents"],
            line_total_cents=item.get("line_total_cents", item["unit_price_cents"] * item["quantity"]),
            unit_cost_cents_at_sale=item.get("unit_cost_cents_at_sale"),
        )
        for i, item in enumerate(raw.get("items", []))
    ]
    return sale


def import_state(state: dict, replace: bool = False) -> dict:
    """
    Load a snapshot produced by export_state.

    Raises:
        ValidationError: a top-level key is missing or a record is malformed
        ConflictError: the store already holds data and replace is False
    """
    if not isinstance(state, dict):
        raise ValidationError("Snapshot must be a JSON object")
    missing = [k for k in SNAPSHOT_KEYS if k not in state]
    if missing:
        raise ValidationError(f"Snapshot missing keys: {', '.join(missing)}", field=missing[0])

    if not _is_empty():
        if not replace:
            raise ConflictError("Store is not empty; pass replace=True to overwrite")
        _clear()

    now = utcnow()
    try:
        for raw in state["users"]:
            db.session.add(User(
                id=raw["id"], username=raw["username"], role=raw.get("role", "user"),
                status=raw.get("status", "pending_info"), full_name=raw.get("full_name"),
                phone=raw.get("phone"), created_at=_dt(raw.get("created_at"), now),
            ))
        for raw in state["products"]:
            db.session.add(Product(
                id=raw["id"], name=raw["name"], description=raw.get("description"),
                category=raw.get("category") or "General", barcode=raw["barcode"],
                image_url=raw.get("image_url"), price_cents=raw["price_cents"],
                cost_cents=raw.get("cost_cents", 0), stock=raw.get("stock", 0),
                max_per_order=raw.get("max_per_order"), is_active=raw.get("is_active", True),
                created_at=_dt(raw.get("created_at"), now), updated_at=_dt(raw.get("updated_at"), now),
            ))
        for raw in state["customers"]:
            db.session.add(Customer(
                id=raw["id"], name=raw["name"], phone=raw.get("phone"), email=raw.get("email"),
                is_active=raw.get("is_active", True), created_at=_dt(raw.get("created_at"), now),
                updated_at=_dt(raw.get("updated_at"), now),
            ))
        for raw in state["expenses"]:
            db.session.add(Expense(
                id=raw["id"], title=raw["title"], amount_cents=raw["amount_cents"],
                category=raw.get("category") or "General", occurred_at=_dt(raw.get("occurred_at"), now),
                created_by_user_id=raw.get("created_by_user_id"),
            ))
        db.session.flush()

        # Oldest first so insertion sequence matches the snapshot order
        for raw in reversed(state["sales"]):
            db.session.add(_load_sale(raw, now))
            db.session.flush()

        settings = replace_settings(state["settings"] or {})
        db.session.commit()
    except (KeyError, TypeError, AttributeError) as exc:
        db.session.rollback()
        raise ValidationError(f"Malformed snapshot record: {exc}")
    except Exception:
        db.session.rollback()
        raise

    counts = {k: len(state[k]) for k in SNAPSHOT_KEYS if k != "settings"}
    current_app.logger.info("Snapshot imported: %s", counts)
    return {"imported": counts, "settings": settings.to_dict()}


DEMO_USERS = (
    ("admin", "admin", "verified"),
    ("user1", "user", "verified"),
    ("zooka", "user", "verified"),
)

DEMO_PRODUCTS = (
    {"name": "Standard Widget", "price_cents": 2500, "cost_cents": 1500, "stock": 100,
     "category": "General", "barcode": "123456", "description": "Everyday widget"},
    {"name": "Premium Gadget", "price_cents": 12000, "cost_cents": 8000, "stock": 50,
     "category": "Electronics", "barcode": "789012", "description": "Top-shelf gadget"},
)


def seed_demo_data() -> dict:
    """Idempotently add the demo users and products. Existing rows are left alone."""
    created = {"users": 0, "products": 0}
    for username, role, status in DEMO_USERS:
        if not db.session.query(User.id).filter_by(username=username).first():
            db.session.add(User(username=username, role=role, status=status))
            created["users"] += 1
    for spec in DEMO_PRODUCTS:
        if not db.session.query(Product.id).filter_by(barcode=spec["barcode"]).first():
            db.session.add(Product(**spec))
            created["products"] += 1
    db.session.commit()
    return created
