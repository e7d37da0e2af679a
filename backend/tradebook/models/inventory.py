from __future__ import annotations

from ..extensions import db
from tradebook.time_utils import to_utc_z


TRANSACTION_SALE = "sale"
TRANSACTION_PURCHASE = "purchase"
TRANSACTION_ADJUSTMENT = "adjustment"

TRANSACTION_TYPES = (TRANSACTION_SALE, TRANSACTION_PURCHASE, TRANSACTION_ADJUSTMENT)


class Item(db.Model):
    """
    Stock-keeping unit master data.

    current_stock is a stored running total. It is written ONLY by
    item_service.adjust_stock, which is called ONLY by the ledger writer.
    opening_stock is the baseline the ledger reconciles against:
        current_stock == opening_stock + SUM(inventory_transactions.quantity_change)
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_items_sku"),
        db.CheckConstraint("current_stock >= 0", name="ck_items_stock_non_negative"),
        db.Index("ix_items_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(100), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    barcode = db.Column(db.String(100), nullable=True)
    unit = db.Column(db.String(50), nullable=False, default="pcs")

    opening_stock = db.Column(db.Integer, nullable=False, default=0)
    current_stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)
    max_stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=0)

    # Authoritative storage in cents
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def stock_value_cents(self) -> int:
        return self.current_stock * self.cost_price_cents

    @property
    def stock_status(self) -> str:
        """critical / low / reorder / ok, by the item's own thresholds."""
        if self.current_stock == 0:
            return "critical"
        if self.current_stock <= self.min_stock:
            return "low"
        if self.current_stock <= self.reorder_level:
            return "reorder"
        return "ok"

    def __repr__(self) -> str:
        return f"<Item id={self.id} sku={self.sku!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "barcode": self.barcode,
            "unit": self.unit,
            "opening_stock": self.opening_stock,
            "current_stock": self.current_stock,
            "min_stock": self.min_stock,
            "max_stock": self.max_stock,
            "reorder_level": self.reorder_level,
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "stock_value_cents": self.stock_value_cents,
            "stock_status": self.stock_status,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryTransaction(db.Model):
    """
    Append-only stock ledger.

    One table for every movement type; transaction_type is the discriminator
    and reference_id points at the order or stock adjustment that caused it.
    """
    __tablename__ = "inventory_transactions"

    id = db.Column(db.Integer, primary_key=True)

    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)
    reference_id = db.Column(db.Integer, nullable=True, index=True)

    quantity_change = db.Column(db.Integer, nullable=False)
    # Snapshot of current_stock right after this entry was applied
    stock_after = db.Column(db.Integer, nullable=False)

    unit_cost_cents = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)

    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    item = db.relationship("Item", backref=db.backref("transactions", lazy="dynamic"))

    __table_args__ = (
        db.CheckConstraint("quantity_change <> 0", name="ck_invtx_non_zero"),
        db.Index("ix_invtx_item_type", "item_id", "transaction_type"),
        db.Index("ix_invtx_type_reference", "transaction_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "transaction_type": self.transaction_type,
            "reference_id": self.reference_id,
            "quantity_change": self.quantity_change,
            "stock_after": self.stock_after,
            "unit_cost_cents": self.unit_cost_cents,
            "note": self.note,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class StockAdjustment(db.Model):
    """Manual stock correction; always paired with exactly one ledger entry."""
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        db.UniqueConstraint("inventory_transaction_id", name="uq_stock_adjustments_invtx"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    adjustment_type = db.Column(db.String(16), nullable=False, index=True)
    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)
    quantity_change = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(200), nullable=False)
    notes = db.Column(db.String(500), nullable=True)

    inventory_transaction_id = db.Column(
        db.Integer, db.ForeignKey("inventory_transactions.id"), nullable=True
    )

    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item")
    inventory_transaction = db.relationship("InventoryTransaction")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "adjustment_type": self.adjustment_type,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "quantity_change": self.quantity_change,
            "reason": self.reason,
            "notes": self.notes,
            "inventory_transaction_id": self.inventory_transaction_id,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
