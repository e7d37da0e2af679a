# Overview: Service-layer operations for sales and purchase orders; encapsulates business logic and database work.

"""
Order Engine

WHY: Creating an order touches stock, the ledger, payments and the
counterparty balance. All of it happens in one unit of work so a failure at
any step leaves no trace.

DESIGN:
- Sales and purchases share one Order table (order_type discriminator)
- Lines and totals are immutable after creation
- Sales decrement stock through the ledger writer; purchases do not touch
  stock until they are received
- The unpaid remainder (total - paid) is added to the counterparty balance
"""

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Order, OrderItem, Payment, Customer, Supplier
from ..models.inventory import TRANSACTION_SALE
from ..models.orders import (
    ORDER_TYPE_SALE,
    ORDER_TYPE_PURCHASE,
    ORDER_TYPES,
    STATUS_PENDING,
    STATUS_COMPLETED,
)
from ..errors import (
    InsufficientStockError,
    InvalidPaymentError,
    NotFoundError,
    ValidationError,
)
from ..validation import (
    ORDER_PAYMENT_METHODS,
    ModelValidationPolicy,
    coerce_date,
    coerce_int,
    parse_tax_rate_bps,
    require_money_cents,
    tax_amount_cents,
    validate_order_lines,
    validate_payload,
)
from ..time_utils import today
from .concurrency import run_atomic
from .counterparty_service import (
    KIND_CUSTOMER,
    KIND_SUPPLIER,
    apply_balance_delta,
    build_counterparty,
    get_counterparty,
)
from .document_service import next_order_number
from .idempotency_service import find_replay, normalize_key, remember, request_fingerprint
from .item_service import lock_items
from .ledger_service import record_transaction


DEFAULT_PAYMENT_METHODS = {
    ORDER_TYPE_SALE: "cash",
    ORDER_TYPE_PURCHASE: "credit",
}

# Walk-in customers captured at the till get the same column checks as POST /api/customers
WALK_IN_CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone"},
    required_on_create={"name"},
)


def _operation_name(order_type: str) -> str:
    return f"create_{order_type}_order"


def compute_totals(lines: list[dict], tax_rate_bps: int) -> dict:
    """subtotal = sum(qty x price); tax rounded half-up to a cent; total = subtotal + tax."""
    subtotal = sum(line["quantity"] * line["unit_price_cents"] for line in lines)
    tax = tax_amount_cents(subtotal, tax_rate_bps)
    return {
        "subtotal_cents": subtotal,
        "tax_amount_cents": tax,
        "total_amount_cents": subtotal + tax,
    }


def initial_status(order_type: str, paid_cents: int, total_cents: int) -> str:
    if order_type == ORDER_TYPE_SALE and paid_cents >= total_cents:
        return STATUS_COMPLETED
    return STATUS_PENDING


def _check_items(order_type: str, lines: list[dict]) -> dict:
    """
    Lock every referenced item (ascending id) and, for sales, check that
    current stock covers the requested quantity per item.
    """
    requested: dict[int, int] = {}
    for line in lines:
        requested[line["item_id"]] = requested.get(line["item_id"], 0) + line["quantity"]

    items = lock_items(requested.keys())

    insufficient = []
    for item_id in sorted(requested):
        item = items.get(item_id)
        if item is None or not item.is_active:
            raise NotFoundError(f"Item {item_id} not found", details={"item_id": item_id})
        if order_type == ORDER_TYPE_SALE and item.current_stock < requested[item_id]:
            insufficient.append({
                "item_id": item.id,
                "item_name": item.name,
                "available": item.current_stock,
                "requested": requested[item_id],
            })

    if insufficient:
        first = insufficient[0]
        raise InsufficientStockError(
            f"Insufficient stock for {first['item_name']}: "
            f"available {first['available']}, requested {first['requested']}",
            details={"items": insufficient},
        )
    return items


def _walk_in_patch(customer_name, customer_phone) -> dict | None:
    """Validated {name, phone} for a walk-in customer, or None when no name was given."""
    if customer_name is None or not str(customer_name).strip():
        return None
    phone = str(customer_phone).strip() if customer_phone is not None else ""
    return validate_payload(
        model=Customer,
        payload={"name": customer_name, "phone": phone or None},
        policy=WALK_IN_CUSTOMER_POLICY,
        partial=False,
    )


def _resolve_counterparty(
    order_type: str,
    *,
    customer_id,
    walk_in: dict | None,
    supplier_id,
    actor_id,
):
    if order_type == ORDER_TYPE_PURCHASE:
        if supplier_id is None:
            raise ValidationError("supplier_id is required for purchase orders")
        return get_counterparty(KIND_SUPPLIER, supplier_id, require_active=True)

    if customer_id is not None:
        return get_counterparty(KIND_CUSTOMER, customer_id, require_active=True)
    if walk_in is not None:
        # Walk-in customer captured at the till: create the minimal record
        return build_counterparty(KIND_CUSTOMER, patch=walk_in, actor_id=actor_id)
    return None


def create_order(
    *,
    order_type: str,
    lines,
    actor_id: int | None,
    customer_id: int | None = None,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    supplier_id: int | None = None,
    tax_rate=0,
    payment_method: str | None = None,
    paid_amount_cents=0,
    order_date=None,
    delivery_date=None,
    expected_delivery_date=None,
    notes: str | None = None,
    idempotency_key: str | None = None,
) -> Order:
    """
    Create a sales or purchase order atomically.

    Validation order: lines, totals, paid bound, stock (sales only).
    Raises ValidationError, NotFoundError, InvalidPaymentError,
    InsufficientStockError, ConflictError or StorageError.
    """
    if order_type not in ORDER_TYPES:
        raise ValidationError(f"order_type must be one of: {', '.join(ORDER_TYPES)}")

    if customer_id is not None:
        customer_id = coerce_int(customer_id, "customer_id")
    if supplier_id is not None:
        supplier_id = coerce_int(supplier_id, "supplier_id")

    normalized_lines = validate_order_lines(lines)
    tax_rate_bps = parse_tax_rate_bps(tax_rate)
    totals = compute_totals(normalized_lines, tax_rate_bps)

    try:
        paid = require_money_cents(paid_amount_cents or 0, "paid_amount_cents")
    except ValidationError as exc:
        raise InvalidPaymentError(exc.message, details={"paid_amount_cents": paid_amount_cents}) from exc
    if paid > totals["total_amount_cents"]:
        raise InvalidPaymentError(
            "Paid amount cannot exceed total amount",
            details={"paid_amount_cents": paid, "total_amount_cents": totals["total_amount_cents"]},
        )

    method = payment_method or DEFAULT_PAYMENT_METHODS[order_type]
    if method not in ORDER_PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(ORDER_PAYMENT_METHODS)}")

    order_day = coerce_date(order_date, "order_date") or today()
    delivery_day = coerce_date(delivery_date, "delivery_date")
    expected_day = coerce_date(expected_delivery_date, "expected_delivery_date")

    walk_in = None
    if order_type == ORDER_TYPE_SALE and customer_id is None:
        walk_in = _walk_in_patch(customer_name, customer_phone)

    key = normalize_key(idempotency_key)
    operation = _operation_name(order_type)
    fingerprint = request_fingerprint(
        lines=normalized_lines,
        customer_id=customer_id,
        walk_in=walk_in,
        supplier_id=supplier_id,
        tax_rate_bps=tax_rate_bps,
        paid_amount_cents=paid,
        payment_method=method,
    )

    def _op() -> Order:
        replay = find_replay(operation=operation, key=key, fingerprint=fingerprint)
        if replay is not None:
            return get_order(replay.resource_id, order_type=order_type)

        counterparty = _resolve_counterparty(
            order_type,
            customer_id=customer_id,
            walk_in=walk_in,
            supplier_id=supplier_id,
            actor_id=actor_id,
        )
        items = _check_items(order_type, normalized_lines)

        order = Order(
            order_type=order_type,
            order_number=next_order_number(order_type),
            customer_id=counterparty.id if order_type == ORDER_TYPE_SALE and counterparty else None,
            supplier_id=counterparty.id if order_type == ORDER_TYPE_PURCHASE else None,
            order_date=order_day,
            delivery_date=delivery_day if order_type == ORDER_TYPE_SALE else None,
            expected_delivery_date=expected_day if order_type == ORDER_TYPE_PURCHASE else None,
            status=initial_status(order_type, paid, totals["total_amount_cents"]),
            subtotal_cents=totals["subtotal_cents"],
            tax_rate_bps=tax_rate_bps,
            tax_amount_cents=totals["tax_amount_cents"],
            total_amount_cents=totals["total_amount_cents"],
            paid_amount_cents=paid,
            payment_method=method,
            notes=notes,
            created_by=actor_id,
        )
        db.session.add(order)
        db.session.flush()

        for line in normalized_lines:
            db.session.add(OrderItem(
                order_id=order.id,
                item_id=line["item_id"],
                quantity=line["quantity"],
                unit_price_cents=line["unit_price_cents"],
                total_price_cents=line["quantity"] * line["unit_price_cents"],
                received_quantity=0,
            ))
        db.session.flush()

        if order_type == ORDER_TYPE_SALE:
            for line in sorted(normalized_lines, key=lambda ln: ln["item_id"]):
                record_transaction(
                    item_id=line["item_id"],
                    transaction_type=TRANSACTION_SALE,
                    reference_id=order.id,
                    quantity_change=-line["quantity"],
                    actor_id=actor_id,
                    unit_cost_cents=items[line["item_id"]].cost_price_cents,
                    note=f"Sale {order.order_number}",
                )

        if paid > 0:
            db.session.add(Payment(
                reference_type=order_type,
                reference_id=order.id,
                amount_cents=paid,
                payment_method=method,
                payment_date=order_day,
                created_by=actor_id,
            ))

        if counterparty is not None:
            apply_balance_delta(counterparty, order.total_amount_cents - paid)

        remember(
            operation=operation,
            key=key,
            fingerprint=fingerprint,
            resource_type="order",
            resource_id=order.id,
            actor_id=actor_id,
        )
        db.session.flush()
        return order

    return run_atomic(_op)


def get_order(order_id: int, *, order_type: str | None = None) -> Order:
    order = db.session.query(Order).filter(Order.id == order_id).first()
    if not order or (order_type is not None and order.order_type != order_type):
        label = {ORDER_TYPE_SALE: "Sales order", ORDER_TYPE_PURCHASE: "Purchase order"}.get(order_type, "Order")
        raise NotFoundError(f"{label} {order_id} not found", details={"order_id": order_id})
    return order


def get_order_by_number(order_number: str) -> Order:
    order = db.session.query(Order).filter(Order.order_number == order_number).first()
    if not order:
        raise NotFoundError(f"Order {order_number} not found", details={"order_number": order_number})
    return order


def list_orders(
    order_type: str,
    *,
    status: str | None = None,
    counterparty_id: int | None = None,
    payment_method: str | None = None,
    search: str | None = None,
    limit: int = 100,
) -> list[Order]:
    if order_type not in ORDER_TYPES:
        raise ValidationError(f"order_type must be one of: {', '.join(ORDER_TYPES)}")

    q = db.session.query(Order).filter(Order.order_type == order_type)
    if status:
        q = q.filter(Order.status == status)
    if payment_method:
        q = q.filter(Order.payment_method == payment_method)

    if order_type == ORDER_TYPE_SALE:
        if counterparty_id is not None:
            q = q.filter(Order.customer_id == counterparty_id)
        party = Customer
        q = q.outerjoin(Customer, Order.customer_id == Customer.id)
    else:
        if counterparty_id is not None:
            q = q.filter(Order.supplier_id == counterparty_id)
        party = Supplier
        q = q.outerjoin(Supplier, Order.supplier_id == Supplier.id)

    if search:
        term = f"%{search.strip()}%"
        q = q.filter(or_(Order.order_number.ilike(term), party.name.ilike(term)))

    return q.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


def order_summary(order: Order) -> dict:
    """Order with its lines and payments, plus derived payment fields."""
    data = order.to_dict()
    data["items"] = [line.to_dict() for line in order.lines]
    data["payments"] = [p.to_dict() for p in order.payments]
    return data
