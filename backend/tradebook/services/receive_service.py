# Overview: Service-layer operations for purchase receiving; encapsulates business logic.

"""
Purchase Receiving Service

WHY: Stock bought on a purchase order arrives over time. Each receive call
reports the cumulative quantity received per line; only the increment since
the last call reaches the ledger, so repeating a call is harmless.

LIFECYCLE:
1. pending: nothing received
2. partial: some line has received_quantity > 0
3. received: every line complete (terminal)
"""

from __future__ import annotations

from ..extensions import db
from ..models import Order, OrderItem
from ..models.inventory import TRANSACTION_PURCHASE
from ..models.orders import (
    ORDER_TYPE_PURCHASE,
    STATUS_PENDING,
    STATUS_PARTIAL,
    STATUS_RECEIVED,
)
from ..errors import AlreadyReceivedError, NotFoundError, ValidationError
from ..validation import coerce_date, validate_receive_lines
from ..time_utils import today
from .concurrency import lock_for_update, run_atomic
from .ledger_service import record_transaction


def receiving_status(lines: list[OrderItem]) -> str:
    if lines and all(line.received_quantity >= line.quantity for line in lines):
        return STATUS_RECEIVED
    if any(line.received_quantity > 0 for line in lines):
        return STATUS_PARTIAL
    return STATUS_PENDING


def _plan_increments(order: Order, lines: list[dict]) -> list[tuple[OrderItem, int, int]]:
    """Validate every line first; returns (order line, new total, increment)."""
    by_item = {line.item_id: line for line in order.lines}
    plan = []
    for index, line in enumerate(lines, start=1):
        order_line = by_item.get(line["item_id"])
        if order_line is None:
            raise ValidationError(
                f"items[{index}]: item {line['item_id']} is not on purchase order {order.order_number}",
                details={"item_id": line["item_id"]},
            )

        new_total = line["received_quantity"]
        if new_total > order_line.quantity:
            raise ValidationError(
                f"items[{index}]: received quantity {new_total} exceeds ordered quantity {order_line.quantity}",
                details={"item_id": order_line.item_id, "ordered": order_line.quantity},
            )
        if new_total < order_line.received_quantity:
            raise ValidationError(
                f"items[{index}]: received quantity cannot go down "
                f"(already received {order_line.received_quantity})",
                details={"item_id": order_line.item_id, "already_received": order_line.received_quantity},
            )
        plan.append((order_line, new_total, new_total - order_line.received_quantity))
    return plan


def receive(*, order_id: int, lines, actor_id: int | None, received_date=None) -> Order:
    """
    Record cumulative received quantities for a purchase order.

    Raises NotFoundError, AlreadyReceivedError or ValidationError; on any
    failure no stock moves.
    """
    normalized = validate_receive_lines(lines)
    received_day = coerce_date(received_date, "received_date")

    def _op() -> Order:
        order = lock_for_update(
            db.session.query(Order).filter(
                Order.id == order_id,
                Order.order_type == ORDER_TYPE_PURCHASE,
            )
        ).first()
        if not order:
            raise NotFoundError(f"Purchase order {order_id} not found", details={"order_id": order_id})

        if order.status == STATUS_RECEIVED:
            raise AlreadyReceivedError(
                f"Purchase order {order.order_number} already fully received",
                details={"order_id": order.id},
            )

        plan = _plan_increments(order, normalized)

        for order_line, new_total, increment in sorted(plan, key=lambda p: p[0].item_id):
            if increment > 0:
                record_transaction(
                    item_id=order_line.item_id,
                    transaction_type=TRANSACTION_PURCHASE,
                    reference_id=order.id,
                    quantity_change=increment,
                    actor_id=actor_id,
                    unit_cost_cents=order_line.unit_price_cents,
                    note=f"Received on {order.order_number}",
                )
            order_line.received_quantity = new_total

        new_status = receiving_status(order.lines)
        if new_status == STATUS_RECEIVED:
            order.received_date = received_day or today()
        order.status = new_status

        db.session.flush()
        return order

    return run_atomic(_op)
