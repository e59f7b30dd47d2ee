from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class Sale(db.Model):
    """
    Ledger entry for a product sale or a payment-service request.

    The integer id is the insertion sequence and drives newest-first
    ordering. document_number is the human-readable identifier
    (INV-/ORD-/PAY- followed by 6 uppercase alphanumerics).

    Only status (and its decision audit fields) changes after creation.
    Rows are never deleted.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("document_number", name="uq_sales_document_number"),
        db.Index("ix_sales_user_status", "user_id", "status"),
        db.Index("ix_sales_customer", "customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(16), nullable=False)

    # product-sale | service-request
    kind = db.Column(db.String(24), nullable=False, index=True)
    # pos | shop | service
    channel = db.Column(db.String(16), nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    profit_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False)

    # Rendered from details; searchable free text
    note = db.Column(db.Text, nullable=True)
    # Structured metadata, tagged by details["type"]
    details = db.Column(db.JSON, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    # True when stock was decremented at creation (product sales only)
    stock_committed = db.Column(db.Boolean, nullable=False, default=False)
    stock_restored_at = db.Column(db.DateTime(timezone=True), nullable=True)

    decided_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", foreign_keys=[user_id])
    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    lines = db.relationship(
        "SaleLine",
        backref="sale",
        order_by="SaleLine.position",
        lazy=True,
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.document_number,
            "sequence": self.id,
            "kind": self.kind,
            "channel": self.channel,
            "user_id": self.user_id,
            "customer_id": self.customer_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "profit_cents": self.profit_cents,
            "payment_method": self.payment_method,
            "note": self.note,
            "details": self.details,
            "status": self.status,
            "stock_committed": self.stock_committed,
            "stock_restored_at": to_utc_z(self.stock_restored_at) if self.stock_restored_at else None,
            "decided_by_user_id": self.decided_by_user_id,
            "decided_at": to_utc_z(self.decided_at) if self.decided_at else None,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """
    Line item on a sale. Name, price and cost are snapshots taken at sale
    time and do not follow later product edits.
    """
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    # Exactly one of product_id / service_id is set
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    service_id = db.Column(db.String(32), nullable=True)

    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents_at_sale = db.Column(db.Integer, nullable=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "product_id": self.product_id,
            "service_id": self.service_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "unit_cost_cents_at_sale": self.unit_cost_cents_at_sale,
        }
