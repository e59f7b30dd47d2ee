# Overview: Customer records; contact details plus spend derived from the ledger.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Sale
from ..validation import ModelValidationPolicy, NotFoundError, validate_payload
from .permission_service import Identity, require_permission

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email", "is_active"},
    required_on_create={"name"},
)


def customer_totals(customer_ids=None) -> dict[int, int]:
    """Spend per customer: total of linked sales whose status is success."""
    q = (
        db.session.query(Sale.customer_id, func.coalesce(func.sum(Sale.total_cents), 0))
        .filter(Sale.customer_id.isnot(None), Sale.status == "success")
        .group_by(Sale.customer_id)
    )
    if customer_ids is not None:
        q = q.filter(Sale.customer_id.in_(list(customer_ids)))
    return {customer_id: int(total) for customer_id, total in q.all()}


def customer_to_dict(customer: Customer, totals: dict[int, int] | None = None) -> dict:
    if totals is None:
        totals = customer_totals([customer.id])
    data = customer.to_dict()
    data["total_spent_cents"] = totals.get(customer.id, 0)
    return data


def list_customers(actor: Identity | None, search: str | None = None, include_inactive: bool = False) -> list[dict]:
    require_permission(actor, "MANAGE_CUSTOMERS")

    q = db.session.query(Customer)
    if not include_inactive:
        q = q.filter(Customer.is_active.is_(True))
    if search:
        term = search.strip().lower()
        q = q.filter(
            db.or_(
                func.lower(Customer.name).contains(term, autoescape=True),
                func.lower(func.coalesce(Customer.phone, "")).contains(term, autoescape=True),
            )
        )
    customers = q.order_by(Customer.name.asc(), Customer.id.asc()).all()
    totals = customer_totals([c.id for c in customers])
    return [customer_to_dict(c, totals) for c in customers]


def get_customer(actor: Identity | None, customer_id: int) -> Customer:
    require_permission(actor, "MANAGE_CUSTOMERS")
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found", field="customer_id")
    return customer


def upsert_customer(actor: Identity | None, payload: dict, customer_id: int | None = None) -> Customer:
    require_permission(actor, "MANAGE_CUSTOMERS")

    creating = customer_id is None
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=not creating)

    if creating:
        customer = Customer(is_active=True)
        db.session.add(customer)
    else:
        customer = get_customer(actor, customer_id)

    for k, v in patch.items():
        setattr(customer, k, v)

    db.session.commit()
    current_app.logger.info(
        "Customer %s id=%s by user=%s", "created" if creating else "updated", customer.id, actor.id
    )
    return customer


def remove_customer(actor: Identity | None, customer_id: int) -> Customer:
    """Tombstone; sales that reference the customer keep the link."""
    customer = get_customer(actor, customer_id)
    if customer.is_active:
        customer.is_active = False
        db.session.commit()
    return customer
