# Overview: Expenses; append-only operating costs that feed net profit.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Expense
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_expense,
    validate_payload,
)
from storefront.time_utils import utcnow
from .permission_service import Identity, require_permission

EXPENSE_CATEGORIES = {
    "General": "General Expense",
    "Electricity": "Electricity Bill",
    "Water": "Water Bill",
    "Gas": "Gas Bill",
}

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"title", "amount_cents", "category", "occurred_at"},
    required_on_create={"amount_cents"},
)


def create_expense(actor: Identity | None, payload: dict) -> Expense:
    """
    Record an expense. A blank title falls back to the category label.

    Raises:
        AuthorizationError: actor lacks MANAGE_EXPENSES
        ValidationError: amount not > 0, unknown category, bad field
    """
    require_permission(actor, "MANAGE_EXPENSES")

    payload = dict(payload or {})
    if payload.get("title") in (None, ""):
        payload.pop("title", None)

    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    enforce_rules_expense(patch)

    category = patch.get("category") or "General"
    if category not in EXPENSE_CATEGORIES:
        raise ValidationError(
            f"category must be one of {', '.join(EXPENSE_CATEGORIES)}", field="category"
        )

    expense = Expense(
        title=patch.get("title") or EXPENSE_CATEGORIES[category],
        amount_cents=patch["amount_cents"],
        category=category,
        occurred_at=patch.get("occurred_at") or utcnow(),
        created_by_user_id=actor.id,
    )
    db.session.add(expense)
    db.session.commit()

    current_app.logger.info("Expense recorded id=%s amount=%s by user=%s", expense.id, expense.amount_cents, actor.id)
    return expense


def list_expenses(actor: Identity | None, category: str | None = None) -> list[Expense]:
    """Newest first."""
    require_permission(actor, "MANAGE_EXPENSES")

    q = db.session.query(Expense)
    if category:
        q = q.filter(Expense.category == category)
    return q.order_by(Expense.occurred_at.desc(), Expense.id.desc()).all()
