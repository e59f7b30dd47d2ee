# Overview: Reports; profit summary, recent activity feed and dashboard counters.

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func

from storefront.extensions import db
from storefront.models import Expense, Product, Sale, SaleLine
from storefront.time_utils import parse_iso_datetime, start_of_day, to_utc_z, utcnow
from storefront.validation import ValidationError
from .permission_service import Identity, require_permission

LOW_STOCK_THRESHOLD = 10


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
        # A bare date as end covers that whole day
        if end_dt is not None and len(end.strip()) == 10:
            end_dt = start_of_day(end_dt) + timedelta(days=1) - timedelta(microseconds=1)
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 dates", field="start")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must be before end", field="start")
    return start_dt, end_dt


def _margin_percent(net_cents: int, collection_cents: int) -> float:
    if collection_cents <= 0:
        return 0.0
    pct = Decimal(net_cents) * Decimal(100) / Decimal(collection_cents)
    return float(pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def profit_summary(actor: Identity | None, start: str | None = None, end: str | None = None) -> dict:
    """
    Collection, expenses and profit over an optional date range.

    Product profit per line is (price at sale - cost at sale) * quantity;
    lines recorded without a cost snapshot fall back to the product's
    current cost. Rejected transactions are left out.
    """
    require_permission(actor, "VIEW_REPORTS")
    start_dt, end_dt = _parse_range(start, end)

    sale_filters = [Sale.status != "rejected"]
    expense_filters = []
    if start_dt:
        sale_filters.append(Sale.created_at >= start_dt)
        expense_filters.append(Expense.occurred_at >= start_dt)
    if end_dt:
        sale_filters.append(Sale.created_at <= end_dt)
        expense_filters.append(Expense.occurred_at <= end_dt)

    sales_q = db.session.query(Sale).filter(*sale_filters)
    expenses_q = db.session.query(Expense).filter(*expense_filters)
    sale_ids = db.select(Sale.id).where(*sale_filters)

    collection, service_profit, count = sales_q.with_entities(
        func.coalesce(func.sum(Sale.total_cents), 0),
        func.coalesce(func.sum(Sale.profit_cents), 0),
        func.count(Sale.id),
    ).one()

    total_expenses = expenses_q.with_entities(func.coalesce(func.sum(Expense.amount_cents), 0)).scalar()

    unit_cost = func.coalesce(SaleLine.unit_cost_cents_at_sale, Product.cost_cents, 0)
    product_profit = (
        db.session.query(
            func.coalesce(func.sum((SaleLine.unit_price_cents - unit_cost) * SaleLine.quantity), 0)
        )
        .select_from(SaleLine)
        .outerjoin(Product, Product.id == SaleLine.product_id)
        .filter(SaleLine.product_id.isnot(None), SaleLine.sale_id.in_(sale_ids))
        .scalar()
    )

    collection = int(collection)
    service_profit = int(service_profit)
    product_profit = int(product_profit)
    total_expenses = int(total_expenses)
    net_profit = service_profit + product_profit - total_expenses

    return {
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "transaction_count": int(count),
        "total_collection_cents": collection,
        "total_expenses_cents": total_expenses,
        "service_profit_cents": service_profit,
        "product_profit_cents": product_profit,
        "net_profit_cents": net_profit,
        "margin_percent": _margin_percent(net_profit, collection),
    }


def recent_activity(actor: Identity | None, limit: int = 15) -> list[dict]:
    """Sales and expenses merged into one feed, newest first."""
    require_permission(actor, "VIEW_REPORTS")
    if limit < 1 or limit > 200:
        raise ValidationError("limit must be between 1 and 200", field="limit")

    sales = db.session.query(Sale).order_by(Sale.id.desc()).limit(limit).all()
    expenses = (
        db.session.query(Expense)
        .order_by(Expense.occurred_at.desc(), Expense.id.desc())
        .limit(limit)
        .all()
    )

    entries = [
        {
            "type": "sale",
            "id": s.document_number,
            "occurred_at": s.created_at,
            "amount_cents": s.total_cents,
            "profit_cents": s.profit_cents,
            "status": s.status,
            "description": s.note or s.document_number,
        }
        for s in sales
    ] + [
        {
            "type": "expense",
            "id": e.id,
            "occurred_at": e.occurred_at,
            "amount_cents": e.amount_cents,
            "profit_cents": 0,
            "status": None,
            "description": e.title,
        }
        for e in expenses
    ]

    entries.sort(key=lambda e: e["occurred_at"], reverse=True)
    feed = entries[:limit]
    for entry in feed:
        entry["occurred_at"] = to_utc_z(entry["occurred_at"])
    return feed


def dashboard(actor: Identity | None) -> dict:
    require_permission(actor, "VIEW_REPORTS")

    today = start_of_day(utcnow())
    today_collection, today_count = (
        db.session.query(func.coalesce(func.sum(Sale.total_cents), 0), func.count(Sale.id))
        .filter(Sale.created_at >= today, Sale.status != "rejected")
        .one()
    )
    pending = db.session.query(func.count(Sale.id)).filter(Sale.status == "pending").scalar()
    low_stock = (
        db.session.query(func.count(Product.id))
        .filter(Product.is_active.is_(True), Product.stock < LOW_STOCK_THRESHOLD)
        .scalar()
    )

    return {
        "today_collection_cents": int(today_collection),
        "today_transaction_count": int(today_count),
        "pending_count": int(pending),
        "low_stock_count": int(low_stock),
        "low_stock_threshold": LOW_STOCK_THRESHOLD,
    }
