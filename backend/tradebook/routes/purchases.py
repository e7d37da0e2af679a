# Overview: Flask API routes for purchase orders and receiving; parses input and returns JSON responses.

"""Purchase order routes. Stock moves only when lines are received."""

from flask import Blueprint, request, jsonify, g

from ..models.orders import ORDER_TYPE_PURCHASE
from ..services import order_service, receive_service
from ..decorators import require_actor
from . import error_response, idempotency_key, json_body, limit_arg
from .payments import handle_list_payments, handle_record_payment


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("/")
def list_purchases_route():
    """
    List purchase orders, newest first.

    Query params: status, supplier_id, payment_method, search, limit
    """
    try:
        orders = order_service.list_orders(
            ORDER_TYPE_PURCHASE,
            status=request.args.get("status"),
            counterparty_id=request.args.get("supplier_id", type=int),
            payment_method=request.args.get("payment_method"),
            search=request.args.get("search"),
            limit=limit_arg(default=100),
        )
        return jsonify({"purchases": [o.to_dict() for o in orders], "count": len(orders)})
    except Exception as e:
        return error_response(e)


@purchases_bp.post("/")
@require_actor
def create_purchase_route():
    """
    Create a purchase order.

    Body: {supplier_id, order_date?, expected_delivery_date?,
    items: [{item_id, quantity, unit_price_cents}], tax_rate?,
    payment_method?, paid_amount_cents?, notes?}
    """
    data = json_body()
    try:
        order = order_service.create_order(
            order_type=ORDER_TYPE_PURCHASE,
            lines=data.get("items"),
            actor_id=g.actor_id,
            supplier_id=data.get("supplier_id"),
            tax_rate=data.get("tax_rate", 0),
            payment_method=data.get("payment_method"),
            paid_amount_cents=data.get("paid_amount_cents", 0),
            order_date=data.get("order_date"),
            expected_delivery_date=data.get("expected_delivery_date"),
            notes=data.get("notes"),
            idempotency_key=idempotency_key(),
        )
        return jsonify({"purchase": order_service.order_summary(order)}), 201
    except Exception as e:
        return error_response(e)


@purchases_bp.get("/<int:order_id>")
def get_purchase_route(order_id: int):
    try:
        order = order_service.get_order(order_id, order_type=ORDER_TYPE_PURCHASE)
        return jsonify({"purchase": order_service.order_summary(order)})
    except Exception as e:
        return error_response(e)


@purchases_bp.put("/<int:order_id>/receive")
@require_actor
def receive_purchase_route(order_id: int):
    """
    Record received quantities.

    Body: {items: [{item_id, received_quantity}], received_date?}
    received_quantity is the cumulative total for the line, so repeating a
    request does not double-count stock.
    """
    data = json_body()
    try:
        order = receive_service.receive(
            order_id=order_id,
            lines=data.get("items"),
            actor_id=g.actor_id,
            received_date=data.get("received_date"),
        )
        return jsonify({"purchase": order_service.order_summary(order)})
    except Exception as e:
        return error_response(e)


@purchases_bp.get("/<int:order_id>/payments")
def list_purchase_payments_route(order_id: int):
    return handle_list_payments(ORDER_TYPE_PURCHASE, order_id)


@purchases_bp.post("/<int:order_id>/payments")
@require_actor
def record_purchase_payment_route(order_id: int):
    return handle_record_payment(ORDER_TYPE_PURCHASE, order_id)
