# Overview: Flask API routes for sales orders; parses input and returns JSON responses.

"""Sales order routes. Money fields are integer cents; tax_rate is a percentage."""

from flask import Blueprint, request, jsonify, g

from ..models.orders import ORDER_TYPE_SALE
from ..services import order_service
from ..decorators import require_actor
from . import error_response, idempotency_key, json_body, limit_arg
from .payments import handle_list_payments, handle_record_payment


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("/")
def list_sales_route():
    """
    List sales orders, newest first.

    Query params: status, customer_id, payment_method, search, limit
    """
    try:
        orders = order_service.list_orders(
            ORDER_TYPE_SALE,
            status=request.args.get("status"),
            counterparty_id=request.args.get("customer_id", type=int),
            payment_method=request.args.get("payment_method"),
            search=request.args.get("search"),
            limit=limit_arg(default=100),
        )
        return jsonify({"sales": [o.to_dict() for o in orders], "count": len(orders)})
    except Exception as e:
        return error_response(e)


@sales_bp.post("/")
@require_actor
def create_sale_route():
    """
    Create a sales order; stock is decremented immediately.

    Body: {customer_id? | customer_name + customer_phone?, order_date?,
    delivery_date?, items: [{item_id, quantity, unit_price_cents}],
    tax_rate?, payment_method?, paid_amount_cents?, notes?}
    """
    data = json_body()
    try:
        order = order_service.create_order(
            order_type=ORDER_TYPE_SALE,
            lines=data.get("items"),
            actor_id=g.actor_id,
            customer_id=data.get("customer_id"),
            customer_name=data.get("customer_name"),
            customer_phone=data.get("customer_phone"),
            tax_rate=data.get("tax_rate", 0),
            payment_method=data.get("payment_method"),
            paid_amount_cents=data.get("paid_amount_cents", 0),
            order_date=data.get("order_date"),
            delivery_date=data.get("delivery_date"),
            notes=data.get("notes"),
            idempotency_key=idempotency_key(),
        )
        return jsonify({"sale": order_service.order_summary(order)}), 201
    except Exception as e:
        return error_response(e)


@sales_bp.get("/<int:order_id>")
def get_sale_route(order_id: int):
    try:
        order = order_service.get_order(order_id, order_type=ORDER_TYPE_SALE)
        return jsonify({"sale": order_service.order_summary(order)})
    except Exception as e:
        return error_response(e)


@sales_bp.get("/<int:order_id>/payments")
def list_sale_payments_route(order_id: int):
    return handle_list_payments(ORDER_TYPE_SALE, order_id)


@sales_bp.post("/<int:order_id>/payments")
@require_actor
def record_sale_payment_route(order_id: int):
    return handle_record_payment(ORDER_TYPE_SALE, order_id)
