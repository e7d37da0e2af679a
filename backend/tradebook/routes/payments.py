# Overview: Shared payment handling for the sales and purchase order routes.

from flask import jsonify, g

from ..services import order_service, payment_service
from . import error_response, idempotency_key, json_body


def handle_record_payment(order_type: str, order_id: int):
    """
    Record a payment from the request body.

    Body: {amount_cents, payment_method, payment_date?, reference_number?, notes?}
    Returns the payment and the refreshed order.
    """
    data = json_body()
    try:
        if data.get("amount_cents") is None:
            return jsonify({"error": "amount_cents is required"}), 400

        payment = payment_service.record_payment(
            order_type=order_type,
            order_id=order_id,
            amount_cents=data["amount_cents"],
            payment_method=data.get("payment_method"),
            payment_date=data.get("payment_date"),
            reference_number=data.get("reference_number"),
            notes=data.get("notes"),
            actor_id=g.actor_id,
            idempotency_key=idempotency_key(),
        )
        order = order_service.get_order(payment.reference_id, order_type=order_type)
        return jsonify({
            "payment": payment.to_dict(),
            "order": order_service.order_summary(order),
        }), 201
    except Exception as e:
        return error_response(e)


def handle_list_payments(order_type: str, order_id: int):
    try:
        return jsonify(payment_service.payment_summary(order_id, order_type=order_type))
    except Exception as e:
        return error_response(e)
