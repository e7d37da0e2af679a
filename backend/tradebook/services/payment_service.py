# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Processing Service

WHY: Orders are often paid over time (credit sales, supplier invoices). Each
payment is its own immutable record; the order keeps a running paid total
and the counterparty keeps a running balance.

DESIGN PRINCIPLES:
- Payments are separate from orders (many-to-one relationship)
- Partial payments allowed; overpayment is rejected, never turned into change
- SUM(payments.amount_cents) == Order.paid_amount_cents at all times
- Sales complete when fully paid; purchase status is driven by receiving
"""

from __future__ import annotations

from ..extensions import db
from ..models import Order, Payment
from ..models.orders import ORDER_TYPE_SALE, ORDER_TYPES, STATUS_COMPLETED, STATUS_PENDING
from ..errors import InvalidPaymentError, NotFoundError, OverpaymentError, ValidationError
from ..validation import PAYMENT_METHODS, coerce_date, require_money_cents
from ..time_utils import today
from .concurrency import lock_for_update, run_atomic
from .counterparty_service import apply_balance_delta
from .idempotency_service import find_replay, normalize_key, remember, request_fingerprint


def _operation_name(order_type: str) -> str:
    return f"record_{order_type}_payment"


def _validate_amount(amount_cents) -> int:
    try:
        return require_money_cents(amount_cents, "amount_cents", allow_zero=False)
    except ValidationError as exc:
        raise InvalidPaymentError(exc.message, details={"amount_cents": amount_cents}) from exc


def record_payment(
    *,
    order_type: str,
    order_id: int,
    amount_cents,
    payment_method: str,
    actor_id: int | None,
    payment_date=None,
    reference_number: str | None = None,
    notes: str | None = None,
    idempotency_key: str | None = None,
) -> Payment:
    """
    Record a payment against a sales or purchase order.

    Raises InvalidPaymentError (bad amount or method), OverpaymentError
    (amount above the remaining balance), NotFoundError or ConflictError.
    """
    if order_type not in ORDER_TYPES:
        raise ValidationError(f"order_type must be one of: {', '.join(ORDER_TYPES)}")

    amount = _validate_amount(amount_cents)
    if payment_method not in PAYMENT_METHODS:
        raise InvalidPaymentError(
            f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}",
            details={"payment_method": payment_method},
        )
    paid_on = coerce_date(payment_date, "payment_date") or today()

    key = normalize_key(idempotency_key)
    operation = _operation_name(order_type)
    fingerprint = request_fingerprint(order_id=order_id, amount_cents=amount, payment_method=payment_method)

    def _op() -> Payment:
        replay = find_replay(operation=operation, key=key, fingerprint=fingerprint)
        if replay is not None:
            payment = db.session.query(Payment).filter_by(id=replay.resource_id).first()
            if payment is None:
                raise NotFoundError(f"Payment {replay.resource_id} not found")
            return payment

        order = lock_for_update(
            db.session.query(Order).filter(Order.id == order_id, Order.order_type == order_type)
        ).first()
        if not order:
            label = "Sales order" if order_type == ORDER_TYPE_SALE else "Purchase order"
            raise NotFoundError(f"{label} {order_id} not found", details={"order_id": order_id})

        remaining = order.remaining_amount_cents
        if amount > remaining:
            raise OverpaymentError(
                "Payment amount exceeds remaining balance",
                details={"amount_cents": amount, "remaining_amount_cents": remaining},
            )

        payment = Payment(
            reference_type=order_type,
            reference_id=order.id,
            amount_cents=amount,
            payment_method=payment_method,
            payment_date=paid_on,
            reference_number=reference_number,
            notes=notes,
            created_by=actor_id,
        )
        db.session.add(payment)

        order.paid_amount_cents = order.paid_amount_cents + amount
        if order_type == ORDER_TYPE_SALE:
            order.status = STATUS_COMPLETED if order.paid_amount_cents >= order.total_amount_cents else STATUS_PENDING

        counterparty = order.counterparty
        if counterparty is not None:
            # Balance moves by exactly the amount paid
            apply_balance_delta(counterparty, -amount)

        db.session.flush()
        remember(
            operation=operation,
            key=key,
            fingerprint=fingerprint,
            resource_type="payment",
            resource_id=payment.id,
            actor_id=actor_id,
        )
        return payment

    return run_atomic(_op)


def list_payments(order_id: int, *, order_type: str | None = None) -> list[Payment]:
    q = db.session.query(Payment).filter(Payment.reference_id == order_id)
    if order_type is not None:
        q = q.filter(Payment.reference_type == order_type)
    return q.order_by(Payment.payment_date.asc(), Payment.id.asc()).all()


def payment_summary(order_id: int, *, order_type: str | None = None) -> dict:
    q = db.session.query(Order).filter(Order.id == order_id)
    if order_type is not None:
        q = q.filter(Order.order_type == order_type)
    order = q.first()
    if not order:
        raise NotFoundError(f"Order {order_id} not found", details={"order_id": order_id})

    payments = list_payments(order.id)
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "total_amount_cents": order.total_amount_cents,
        "paid_amount_cents": order.paid_amount_cents,
        "remaining_amount_cents": order.remaining_amount_cents,
        "payment_status": order.payment_status,
        "payment_count": len(payments),
        "payments": [p.to_dict() for p in payments],
    }
