from __future__ import annotations

from ..extensions import db
from tradebook.time_utils import to_utc_z, to_iso_date


ORDER_TYPE_SALE = "sale"
ORDER_TYPE_PURCHASE = "purchase"
ORDER_TYPES = (ORDER_TYPE_SALE, ORDER_TYPE_PURCHASE)

# Sales orders: pending -> completed (fully paid)
# Purchase orders: pending -> partial -> received (receiving state machine)
STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_PARTIAL = "partial"
STATUS_RECEIVED = "received"

PAYMENT_STATUS_UNPAID = "unpaid"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PAID = "paid"


class Order(db.Model):
    """
    Sales or purchase order document.

    Sales and purchase orders are structurally identical, so both live here
    with order_type as the discriminator. Lines and totals never change after
    creation; only paid_amount_cents, status and received_date move, and only
    through payment_service / receive_service.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.CheckConstraint(
            "paid_amount_cents >= 0 AND paid_amount_cents <= total_amount_cents",
            name="ck_orders_paid_within_total",
        ),
        db.Index("ix_orders_type_status_created", "order_type", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    order_type = db.Column(db.String(16), nullable=False, index=True)

    # Human-readable number (e.g., "SO-000123")
    order_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    order_date = db.Column(db.Date, nullable=False)
    delivery_date = db.Column(db.Date, nullable=True)
    expected_delivery_date = db.Column(db.Date, nullable=True)
    received_date = db.Column(db.Date, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tax_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False)
    notes = db.Column(db.String(1000), nullable=True)

    created_by = db.Column(db.Integer, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    customer = db.relationship("Customer", backref=db.backref("orders", lazy="dynamic"))
    supplier = db.relationship("Supplier", backref=db.backref("orders", lazy="dynamic"))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_amount_cents(self) -> int:
        return self.total_amount_cents - self.paid_amount_cents

    @property
    def payment_status(self) -> str:
        if self.paid_amount_cents == 0 and self.total_amount_cents > 0:
            return PAYMENT_STATUS_UNPAID
        if self.paid_amount_cents >= self.total_amount_cents:
            return PAYMENT_STATUS_PAID
        return PAYMENT_STATUS_PARTIAL

    @property
    def counterparty(self):
        return self.customer if self.order_type == ORDER_TYPE_SALE else self.supplier

    def to_dict(self) -> dict:
        counterparty = self.counterparty
        return {
            "id": self.id,
            "order_type": self.order_type,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "supplier_id": self.supplier_id,
            "counterparty_name": counterparty.name if counterparty else None,
            "order_date": to_iso_date(self.order_date),
            "delivery_date": to_iso_date(self.delivery_date),
            "expected_delivery_date": to_iso_date(self.expected_delivery_date),
            "received_date": to_iso_date(self.received_date),
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_amount_cents": self.tax_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "created_by": self.created_by,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Line item on an order. received_quantity is used by purchase orders only."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "item_id", name="uq_order_items_order_item"),
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        db.CheckConstraint(
            "received_quantity >= 0 AND received_quantity <= quantity",
            name="ck_order_items_received_within_quantity",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)
    received_quantity = db.Column(db.Integer, nullable=False, default=0)

    order = db.relationship(
        "Order",
        backref=db.backref("lines", lazy=True, order_by="OrderItem.id"),
    )
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "order_id": self.order_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "sku": self.item.sku if self.item else None,
            "unit": self.item.unit if self.item else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }
        if self.order is not None and self.order.order_type == ORDER_TYPE_PURCHASE:
            data["received_quantity"] = self.received_quantity
        return data


class Payment(db.Model):
    """
    Append-only payment record against an order.

    SUM(amount_cents) per order always equals Order.paid_amount_cents.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
        db.Index("ix_payments_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    reference_type = db.Column(db.String(16), nullable=False)
    reference_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    reference_number = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("payments", lazy=True, order_by="Payment.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "payment_date": to_iso_date(self.payment_date),
            "reference_number": self.reference_number,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
