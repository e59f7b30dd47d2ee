# Overview: Transaction ledger; records product sales and service requests and moves them through review.

"""
Sales Service: the transaction ledger.

Every POS sale, shop order and payment-service request becomes one Sale
row with snapshot lines. Stock for product lines is decremented in the
same database transaction as the sale insert, and returned exactly once
if the sale is later rejected (stock_restored_at records that it happened).

Status lifecycle:
    pending -> success
    pending -> rejected   (stock restored)
    success -> rejected   (stock restored)
    rejected is terminal.

Settings (tax rate, profit schedule) are passed in by the caller; the
ledger never reads them on its own, so a sale is priced against the
values current at call time and is never re-priced afterwards.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Customer, Product, Sale, SaleLine
from ..validation import MAX_PRICE_CENTS, ConflictError, NotFoundError, ValidationError, coerce_int
from storefront.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .permission_service import (
    AuthorizationError,
    Identity,
    can_approve_transactions,
    can_view_all_transactions,
    has_permission,
    require_approver,
    require_permission,
)
from .products_service import adjust_stock
from .profit_service import compute_profit, compute_tax
from .service_catalog import (
    get_service,
    profit_key_for,
    resolve_recharge,
    validate_identifier,
)
from .settings_service import StoreSettings
from .transaction_details import (
    PosSaleDetails,
    ServiceRequestDetails,
    ShopOrderDetails,
    TransactionDetails,
    clean_note,
    details_to_dict,
    render_note,
)

KIND_PRODUCT_SALE = "product-sale"
KIND_SERVICE_REQUEST = "service-request"
KINDS = (KIND_PRODUCT_SALE, KIND_SERVICE_REQUEST)

CHANNEL_POS = "pos"
CHANNEL_SHOP = "shop"
CHANNEL_SERVICE = "service"

DOCUMENT_PREFIXES = {
    CHANNEL_POS: "INV",
    CHANNEL_SHOP: "ORD",
    CHANNEL_SERVICE: "PAY",
}

CHANNEL_PERMISSIONS = {
    CHANNEL_POS: "CREATE_POS_SALE",
    CHANNEL_SHOP: "CREATE_ORDER",
    CHANNEL_SERVICE: "CREATE_SERVICE_REQUEST",
}

STATUS_PENDING = "pending"
STATUS_SUCCESS = "success"
STATUS_REJECTED = "rejected"
STATUSES = (STATUS_PENDING, STATUS_SUCCESS, STATUS_REJECTED)

PAYMENT_METHODS = (
    "cash",
    "card",
    "mixed",
    "vodafone",
    "instapay",
    "orange",
    "etisalat",
    "deposit",
    "recharge",
)

DOCUMENT_SUFFIX_LENGTH = 6
DOCUMENT_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
DOCUMENT_NUMBER_ATTEMPTS = 10


@dataclass(frozen=True)
class LineRequest:
    """One requested line: a product (price taken from the catalog) or a service (price given)."""
    product_id: int | None = None
    service_id: str | None = None
    quantity: int = 1
    unit_price_cents: int | None = None
    name: str | None = None


def generate_document_number(channel: str) -> str:
    """Prefix for the channel plus 6 random uppercase alphanumerics, unique in the ledger."""
    prefix = DOCUMENT_PREFIXES[channel]
    for _ in range(DOCUMENT_NUMBER_ATTEMPTS):
        suffix = "".join(secrets.choice(DOCUMENT_SUFFIX_ALPHABET) for _ in range(DOCUMENT_SUFFIX_LENGTH))
        candidate = f"{prefix}-{suffix}"
        if not db.session.query(Sale.id).filter_by(document_number=candidate).first():
            return candidate
    raise ConflictError("Could not allocate a unique document number")


def parse_line_requests(raw_items) -> list[LineRequest]:
    """Turn request JSON items into LineRequests; errors name the item path."""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list", field="items")

    lines = []
    for i, raw in enumerate(raw_items):
        path = f"items[{i}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{path} must be an object", field=path)
        unknown = set(raw) - {"product_id", "quantity"}
        if unknown:
            name = sorted(unknown)[0]
            raise ValidationError(f"Field not allowed: {path}.{name}", field=f"{path}.{name}")
        if raw.get("product_id") in (None, ""):
            raise ValidationError(f"{path}.product_id is required", field=f"{path}.product_id")
        lines.append(LineRequest(
            product_id=coerce_int(raw["product_id"], f"{path}.product_id"),
            quantity=coerce_int(raw.get("quantity", 1), f"{path}.quantity"),
        ))
    return lines


def _default_channel(actor: Identity | None, kind: str) -> str:
    if kind == KIND_SERVICE_REQUEST:
        return CHANNEL_SERVICE
    if has_permission(actor, "CREATE_POS_SALE"):
        return CHANNEL_POS
    return CHANNEL_SHOP


def _check_request(kind, channel, items, payment_method, status, actor, discount_cents) -> str:
    """Shape checks that need no database access. Returns the initial status."""
    if kind not in KINDS:
        raise ValidationError(f"kind must be one of {', '.join(KINDS)}", field="kind")
    if channel not in DOCUMENT_PREFIXES:
        raise ValidationError(f"channel must be one of {', '.join(DOCUMENT_PREFIXES)}", field="channel")
    if (kind == KIND_SERVICE_REQUEST) != (channel == CHANNEL_SERVICE):
        raise ValidationError(f"{kind} cannot be recorded on the {channel} channel", field="channel")

    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"payment_method must be one of {', '.join(PAYMENT_METHODS)}", field="payment_method"
        )

    if not items:
        raise ValidationError("items must be a non-empty list", field="items")

    for i, line in enumerate(items):
        path = f"items[{i}]"
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity < 1:
            raise ValidationError(f"{path}.quantity must be >= 1", field=f"{path}.quantity")
        if line.quantity > MAX_PRICE_CENTS:
            raise ValidationError(f"{path}.quantity cannot exceed {MAX_PRICE_CENTS}", field=f"{path}.quantity")
        if kind == KIND_PRODUCT_SALE:
            if line.product_id is None or line.service_id is not None:
                raise ValidationError(f"{path}.product_id is required", field=f"{path}.product_id")
        else:
            if line.service_id is None or line.product_id is not None:
                raise ValidationError(f"{path}.service_id is required", field=f"{path}.service_id")
            price = line.unit_price_cents
            if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
                raise ValidationError(f"{path}.amount_cents must be > 0", field=f"{path}.amount_cents")
            if price > MAX_PRICE_CENTS:
                raise ValidationError(
                    f"{path}.amount_cents cannot exceed {MAX_PRICE_CENTS}", field=f"{path}.amount_cents"
                )

    if isinstance(discount_cents, bool) or not isinstance(discount_cents, int) or discount_cents < 0:
        raise ValidationError("discount_cents must be >= 0", field="discount_cents")
    if discount_cents and channel != CHANNEL_POS:
        raise ValidationError("Discounts apply to POS sales only", field="discount_cents")

    if status in (None, STATUS_PENDING):
        return STATUS_PENDING
    if status != STATUS_SUCCESS:
        raise ValidationError("status must be pending or success", field="status")
    if channel != CHANNEL_POS:
        raise ValidationError("Only direct POS sales can be recorded as success", field="status")
    if not can_approve_transactions(actor):
        raise AuthorizationError("Only an approver can record a completed sale", permission="APPROVE_TRANSACTIONS")
    return STATUS_SUCCESS


def _build_product_lines(items: list[LineRequest], allow_oversell: bool) -> list[SaleLine]:
    """Lock each product, snapshot name/price/cost and decrement stock."""
    requested: dict[int, int] = {}
    products: dict[int, Product] = {}

    for i, item in enumerate(items):
        path = f"items[{i}]"
        product = products.get(item.product_id)
        if product is None:
            product = lock_for_update(db.session.query(Product).filter_by(id=item.product_id)).first()
            if not product:
                raise NotFoundError(f"Product {item.product_id} not found", field=f"{path}.product_id")
            if not product.is_active:
                raise ValidationError(f"{product.name} is no longer available", field=f"{path}.product_id")
            products[product.id] = product

        if product.max_per_order is not None and item.quantity > product.max_per_order:
            raise ValidationError(
                f"{product.name} is limited to {product.max_per_order} per order", field=f"{path}.quantity"
            )
        requested[product.id] = requested.get(product.id, 0) + item.quantity

    for product_id, qty in requested.items():
        adjust_stock(product_id, -qty, clamp=allow_oversell)

    lines = []
    for i, item in enumerate(items):
        product = products[item.product_id]
        lines.append(SaleLine(
            position=i + 1,
            product_id=product.id,
            name=product.name,
            quantity=item.quantity,
            unit_price_cents=product.price_cents,
            line_total_cents=product.price_cents * item.quantity,
            unit_cost_cents_at_sale=product.cost_cents,
        ))
    return lines


def _build_service_lines(items: list[LineRequest]) -> list[SaleLine]:
    lines = []
    for i, item in enumerate(items):
        service = get_service(item.service_id)
        lines.append(SaleLine(
            position=i + 1,
            service_id=service.id,
            name=item.name or service.name,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            line_total_cents=item.unit_price_cents * item.quantity,
        ))
    return lines


def _service_profit(lines: list[SaleLine], details, settings: StoreSettings) -> int:
    sub_service = details.sub_service if isinstance(details, ServiceRequestDetails) else None
    total = 0
    for line in lines:
        key = profit_key_for(get_service(line.service_id), sub_service)
        total += compute_profit(key, line.line_total_cents, settings.service_profits)
    return total


def create_transaction(
    actor: Identity | None,
    items: list[LineRequest],
    payment_method: str,
    kind: str,
    details: TransactionDetails | None,
    settings: StoreSettings,
    channel: str | None = None,
    status: str | None = None,
    discount_cents: int = 0,
    customer_id: int | None = None,
) -> Sale:
    """
    Record a product sale or service request.

    Raises:
        AuthorizationError: actor may not create on this channel (checked first)
        ValidationError: malformed items, payment method, discount or status
        NotFoundError: unknown product or customer
        InsufficientStockError: stock too low and ALLOW_OVERSELL is off
    """
    if channel is None:
        channel = _default_channel(actor, kind)
    permission = CHANNEL_PERMISSIONS.get(channel)
    if permission is None:
        raise ValidationError(f"channel must be one of {', '.join(DOCUMENT_PREFIXES)}", field="channel")
    require_permission(actor, permission)

    items = list(items or [])
    initial_status = _check_request(kind, channel, items, payment_method, status, actor, discount_cents)
    allow_oversell = bool(current_app.config.get("ALLOW_OVERSELL", False))

    def _op():
        if customer_id is not None and not db.session.get(Customer, customer_id):
            raise NotFoundError("Customer not found", field="customer_id")

        if kind == KIND_PRODUCT_SALE:
            lines = _build_product_lines(items, allow_oversell)
        else:
            lines = _build_service_lines(items)

        subtotal = sum(line.line_total_cents for line in lines)
        tax = compute_tax(subtotal, settings.tax_rate_bps) if channel == CHANNEL_POS else 0
        if discount_cents > subtotal + tax:
            raise ValidationError("discount_cents cannot exceed subtotal plus tax", field="discount_cents")

        profit = _service_profit(lines, details, settings) if kind == KIND_SERVICE_REQUEST else 0
        now = utcnow()

        sale = Sale(
            document_number=generate_document_number(channel),
            kind=kind,
            channel=channel,
            user_id=actor.id,
            customer_id=customer_id,
            subtotal_cents=subtotal,
            tax_cents=tax,
            discount_cents=discount_cents,
            total_cents=subtotal + tax - discount_cents,
            profit_cents=profit,
            payment_method=payment_method,
            note=render_note(details),
            details=details_to_dict(details) if details is not None else None,
            status=initial_status,
            stock_committed=kind == KIND_PRODUCT_SALE,
            created_at=now,
        )
        if initial_status == STATUS_SUCCESS:
            sale.decided_by_user_id = actor.id
            sale.decided_at = now
        sale.lines = lines

        db.session.add(sale)
        db.session.commit()
        return sale

    sale = run_with_retry(_op)
    current_app.logger.info(
        "Transaction recorded doc=%s kind=%s channel=%s user=%s total=%s status=%s",
        sale.document_number, sale.kind, sale.channel, sale.user_id, sale.total_cents, sale.status,
    )
    return sale


def create_pos_sale(actor: Identity | None, payload: dict, settings: StoreSettings) -> Sale:
    """Counter sale keyed in by staff: tax and discount apply; may be recorded as success directly."""
    payload = payload or {}
    return create_transaction(
        actor,
        parse_line_requests(payload.get("items")),
        payment_method=payload.get("payment_method", "cash"),
        kind=KIND_PRODUCT_SALE,
        details=PosSaleDetails(note=clean_note(payload.get("note"))),
        settings=settings,
        channel=CHANNEL_POS,
        status=payload.get("status"),
        discount_cents=coerce_int(payload.get("discount_cents", 0), "discount_cents"),
        customer_id=(
            coerce_int(payload["customer_id"], "customer_id")
            if payload.get("customer_id") not in (None, "") else None
        ),
    )


def create_shop_order(actor: Identity | None, payload: dict, settings: StoreSettings) -> Sale:
    """Order placed from the shop; always starts pending, no tax or discount."""
    payload = payload or {}
    return create_transaction(
        actor,
        parse_line_requests(payload.get("items")),
        payment_method=payload.get("payment_method", "cash"),
        kind=KIND_PRODUCT_SALE,
        details=ShopOrderDetails(
            note=clean_note(payload.get("note")),
            delivery_address=clean_note(payload.get("delivery_address"), field="delivery_address"),
        ),
        settings=settings,
        channel=CHANNEL_SHOP,
    )


def create_service_request(actor: Identity | None, payload: dict, settings: StoreSettings) -> Sale:
    """
    Payment-service request (top-up, bill, wallet transfer, deposit).

    payload: service_id, identifier, amount_cents, note, and for recharge
    also provider, sub_service and package.
    """
    payload = payload or {}
    # Gate before looking at the payload
    require_permission(actor, CHANNEL_PERMISSIONS[CHANNEL_SERVICE])

    service = get_service(payload.get("service_id"))
    identifier = validate_identifier(service, payload.get("identifier"))
    if payload.get("amount_cents") in (None, ""):
        raise ValidationError("amount_cents is required", field="amount_cents")
    amount = coerce_int(payload["amount_cents"], "amount_cents")
    if amount <= 0:
        raise ValidationError("amount_cents must be > 0", field="amount_cents")
    if amount > MAX_PRICE_CENTS:
        raise ValidationError(f"amount_cents cannot exceed {MAX_PRICE_CENTS}", field="amount_cents")

    provider = sub_service = package = None
    line_name = service.name
    if service.id == "recharge":
        provider_def, sub_def, package = resolve_recharge(
            payload.get("provider"), payload.get("sub_service"), payload.get("package")
        )
        provider, sub_service = provider_def.id, sub_def.id
        line_name = f"Recharge {provider_def.name}"

    details = ServiceRequestDetails(
        service_id=service.id,
        service_name=service.name,
        identifier=identifier,
        identifier_label=service.identifier_label,
        provider=provider,
        sub_service=sub_service,
        package=package,
        user_note=clean_note(payload.get("note")),
    )

    return create_transaction(
        actor,
        [LineRequest(service_id=service.id, quantity=1, unit_price_cents=amount, name=line_name)],
        payment_method=service.payment_method,
        kind=KIND_SERVICE_REQUEST,
        details=details,
        settings=settings,
        channel=CHANNEL_SERVICE,
    )


def _restore_stock(sale: Sale) -> None:
    for line in sale.lines:
        if line.product_id is None:
            continue
        if not db.session.get(Product, line.product_id):
            current_app.logger.warning(
                "Stock not restored for missing product=%s on doc=%s", line.product_id, sale.document_number
            )
            continue
        adjust_stock(line.product_id, line.quantity)
    sale.stock_restored_at = utcnow()
    current_app.logger.info("Stock restored for doc=%s", sale.document_number)


def set_status(actor: Identity | None, document_number: str, new_status: str) -> Sale:
    """
    Approve or reject a transaction.

    Setting the current status again is a no-op. The first move into
    rejected returns every product line's quantity to stock; it happens
    once per sale no matter how often rejection is requested.

    Raises:
        AuthorizationError: actor cannot approve transactions (checked first)
        ValidationError: new_status is not success or rejected
        NotFoundError: no sale with that document number
        ConflictError: rejected sales cannot be reopened
    """
    require_approver(actor)

    if new_status not in (STATUS_SUCCESS, STATUS_REJECTED):
        raise ValidationError("status must be success or rejected", field="status")

    def _op():
        sale = lock_for_update(db.session.query(Sale).filter_by(document_number=document_number)).first()
        if not sale:
            raise NotFoundError("Transaction not found", field="id")

        if sale.status == new_status:
            return sale, False
        if sale.status == STATUS_REJECTED:
            raise ConflictError("Rejected transactions cannot be reopened", field="status")

        if new_status == STATUS_REJECTED and sale.stock_committed and sale.stock_restored_at is None:
            _restore_stock(sale)

        sale.status = new_status
        sale.decided_by_user_id = actor.id
        sale.decided_at = utcnow()
        db.session.commit()
        return sale, True

    sale, changed = run_with_retry(_op)
    if changed:
        current_app.logger.info(
            "Transaction %s set to %s by user=%s", sale.document_number, sale.status, actor.id
        )
    return sale


def list_transactions(
    actor: Identity | None,
    search: str | None = None,
    status: str | None = None,
    user_id: int | None = None,
    kind: str | None = None,
    limit: int | None = None,
) -> list[Sale]:
    """
    Ledger listing, newest inserted first.

    Callers without VIEW_ALL_TRANSACTIONS only ever see their own entries,
    whatever user_id they pass. search matches document number or note,
    case-insensitively.
    """
    require_permission(actor, "VIEW_OWN_TRANSACTIONS")

    if not can_view_all_transactions(actor):
        user_id = actor.id

    if status is not None and status not in STATUSES:
        raise ValidationError(f"status must be one of {', '.join(STATUSES)}", field="status")
    if kind is not None and kind not in KINDS:
        raise ValidationError(f"kind must be one of {', '.join(KINDS)}", field="kind")

    q = db.session.query(Sale)
    if user_id is not None:
        q = q.filter(Sale.user_id == user_id)
    if status is not None:
        q = q.filter(Sale.status == status)
    if kind is not None:
        q = q.filter(Sale.kind == kind)
    if search:
        term = search.strip().lower()
        if term:
            q = q.filter(
                or_(
                    db.func.lower(Sale.document_number).contains(term, autoescape=True),
                    db.func.lower(db.func.coalesce(Sale.note, "")).contains(term, autoescape=True),
                )
            )

    q = q.order_by(Sale.id.desc())
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def get_transaction(actor: Identity | None, document_number: str) -> Sale:
    """Fetch one entry; someone else's entry reads as not found for non-admins."""
    require_permission(actor, "VIEW_OWN_TRANSACTIONS")

    sale = db.session.query(Sale).filter_by(document_number=document_number).first()
    if not sale or (not can_view_all_transactions(actor) and sale.user_id != actor.id):
        raise NotFoundError("Transaction not found", field="id")
    return sale
