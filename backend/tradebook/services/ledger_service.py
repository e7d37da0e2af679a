# Overview: Service-layer operations for the stock ledger; the single writer of current_stock.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Item, InventoryTransaction
from ..models.inventory import TRANSACTION_TYPES
from ..errors import ValidationError
from .item_service import adjust_stock, get_item

"""
Stock Ledger Invariants (authoritative)

- Append-only: entries are never updated or deleted.
- Every change to Item.current_stock has exactly one entry, written in the
  same DB transaction as the change.
- quantity_change is never zero.
- current_stock == opening_stock + SUM(quantity_change) for every item.
"""


def record_transaction(
    *,
    item_id: int,
    transaction_type: str,
    reference_id: int | None,
    quantity_change: int,
    actor_id: int | None,
    unit_cost_cents: int | None = None,
    note: str | None = None,
) -> InventoryTransaction:
    """
    Move stock and append the matching ledger entry.

    Runs inside the caller's unit of work and never commits: if anything after
    this call fails, the stock change and the entry roll back together.
    """
    if transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f"Unknown transaction type: {transaction_type}")
    if isinstance(quantity_change, bool) or not isinstance(quantity_change, int):
        raise ValidationError("quantity_change must be an integer")
    if quantity_change == 0:
        raise ValidationError("quantity_change cannot be zero")

    item = adjust_stock(item_id, quantity_change)

    tx = InventoryTransaction(
        item_id=item.id,
        transaction_type=transaction_type,
        reference_id=reference_id,
        quantity_change=quantity_change,
        stock_after=item.current_stock,
        unit_cost_cents=unit_cost_cents,
        note=note,
        created_by=actor_id,
    )
    db.session.add(tx)
    db.session.flush()  # ensures tx.id is assigned without committing
    return tx


def list_transactions(
    *,
    item_id: int | None = None,
    transaction_type: str | None = None,
    reference_id: int | None = None,
    limit: int = 200,
) -> list[InventoryTransaction]:
    if transaction_type is not None and transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f"Unknown transaction type: {transaction_type}")

    q = db.session.query(InventoryTransaction)
    if item_id is not None:
        q = q.filter(InventoryTransaction.item_id == item_id)
    if transaction_type is not None:
        q = q.filter(InventoryTransaction.transaction_type == transaction_type)
    if reference_id is not None:
        q = q.filter(InventoryTransaction.reference_id == reference_id)

    return (
        q.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .limit(limit)
        .all()
    )


def ledger_sum(item_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(InventoryTransaction.quantity_change), 0))
        .filter(InventoryTransaction.item_id == item_id)
        .scalar()
    )
    return int(total or 0)


def reconcile_item(item_id: int) -> dict:
    """Compare the stored running total with baseline + ledger."""
    item = get_item(item_id)
    delta = ledger_sum(item.id)
    expected = item.opening_stock + delta
    return {
        "item_id": item.id,
        "sku": item.sku,
        "opening_stock": item.opening_stock,
        "ledger_sum": delta,
        "expected_stock": expected,
        "current_stock": item.current_stock,
        "balanced": expected == item.current_stock,
    }


def reconcile_all() -> list[dict]:
    item_ids = [row.id for row in db.session.query(Item.id).order_by(Item.id.asc()).all()]
    return [reconcile_item(item_id) for item_id in item_ids]
