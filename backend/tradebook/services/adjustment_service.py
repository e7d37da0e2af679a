# Overview: Service-layer operations for manual stock adjustments layered on the ledger writer.

from __future__ import annotations

from ..extensions import db
from ..models import StockAdjustment
from ..models.inventory import TRANSACTION_ADJUSTMENT
from ..errors import InvalidAdjustmentError, ValidationError
from ..validation import coerce_int
from .concurrency import run_atomic
from .item_service import get_item
from .ledger_service import record_transaction


ADJUSTMENT_INCREASE = "increase"
ADJUSTMENT_DECREASE = "decrease"
ADJUSTMENT_CORRECTION = "correction"

ADJUSTMENT_TYPES = (ADJUSTMENT_INCREASE, ADJUSTMENT_DECREASE, ADJUSTMENT_CORRECTION)


def _compute_delta(adjustment_type: str, quantity: int, current: int) -> int:
    if adjustment_type == ADJUSTMENT_INCREASE:
        if quantity < 1:
            raise ValidationError("quantity must be >= 1 for an increase")
        return quantity

    if adjustment_type == ADJUSTMENT_DECREASE:
        if quantity < 1:
            raise ValidationError("quantity must be >= 1 for a decrease")
        if quantity > current:
            raise InvalidAdjustmentError(
                f"Cannot decrease by {quantity}: only {current} in stock",
                details={"current_stock": current, "requested": quantity},
            )
        return -quantity

    # correction: quantity is the counted absolute value
    if quantity < 0:
        raise ValidationError("quantity must be >= 0 for a correction")
    delta = quantity - current
    if delta == 0:
        raise InvalidAdjustmentError(
            f"Stock is already {current}; nothing to correct",
            details={"current_stock": current},
        )
    return delta


def adjust(
    *,
    item_id: int,
    adjustment_type: str,
    quantity,
    reason: str,
    actor_id: int | None,
    notes: str | None = None,
) -> StockAdjustment:
    """
    Apply a manual stock correction.

    increase / decrease move stock by quantity; correction sets stock to
    quantity. Exactly one StockAdjustment and one ledger entry are written,
    or neither.
    """
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise ValidationError(
            f"adjustment_type must be one of: {', '.join(ADJUSTMENT_TYPES)}"
        )
    item_id = coerce_int(item_id, "item_id")
    quantity = coerce_int(quantity, "quantity")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("reason is required")
    if len(reason) > 200:
        raise ValidationError("reason exceeds max length 200")

    def _op() -> StockAdjustment:
        item = get_item(item_id, require_active=True, lock=True)
        before = item.current_stock
        delta = _compute_delta(adjustment_type, quantity, before)

        adjustment = StockAdjustment(
            item_id=item.id,
            adjustment_type=adjustment_type,
            quantity_before=before,
            quantity_after=before + delta,
            quantity_change=delta,
            reason=reason,
            notes=notes,
            created_by=actor_id,
        )
        db.session.add(adjustment)
        db.session.flush()

        tx = record_transaction(
            item_id=item.id,
            transaction_type=TRANSACTION_ADJUSTMENT,
            reference_id=adjustment.id,
            quantity_change=delta,
            actor_id=actor_id,
            unit_cost_cents=item.cost_price_cents,
            note=f"{adjustment_type}: {reason}",
        )
        adjustment.inventory_transaction_id = tx.id
        adjustment.quantity_after = tx.stock_after
        db.session.flush()
        return adjustment

    return run_atomic(_op)


def list_adjustments(
    *,
    item_id: int | None = None,
    adjustment_type: str | None = None,
    limit: int = 200,
) -> list[StockAdjustment]:
    if adjustment_type is not None and adjustment_type not in ADJUSTMENT_TYPES:
        raise ValidationError(f"Unknown adjustment type: {adjustment_type}")

    q = db.session.query(StockAdjustment)
    if item_id is not None:
        q = q.filter(StockAdjustment.item_id == item_id)
    if adjustment_type is not None:
        q = q.filter(StockAdjustment.adjustment_type == adjustment_type)
    return (
        q.order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
        .limit(limit)
        .all()
    )
