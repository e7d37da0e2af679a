# Overview: Flask API routes for inventory adjustments and the stock ledger; returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import adjustment_service, ledger_service
from ..decorators import require_actor
from . import error_response, json_body, limit_arg


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/adjust")
@require_actor
def adjust_route():
    """
    Manual stock adjustment.

    Body: {item_id, adjustment_type: increase|decrease|correction,
    quantity, reason, notes?}. For a correction, quantity is the counted
    stock level, not a delta.
    """
    data = json_body()
    try:
        if data.get("item_id") is None:
            return jsonify({"error": "item_id is required"}), 400
        if data.get("quantity") is None:
            return jsonify({"error": "quantity is required"}), 400

        adjustment = adjustment_service.adjust(
            item_id=data["item_id"],
            adjustment_type=data.get("adjustment_type"),
            quantity=data["quantity"],
            reason=data.get("reason"),
            notes=data.get("notes"),
            actor_id=g.actor_id,
        )
        return jsonify({"adjustment": adjustment.to_dict()}), 201
    except Exception as e:
        return error_response(e)


@inventory_bp.get("/adjustments")
def list_adjustments_route():
    try:
        rows = adjustment_service.list_adjustments(
            item_id=request.args.get("item_id", type=int),
            adjustment_type=request.args.get("adjustment_type"),
            limit=limit_arg(default=200),
        )
        return jsonify({"adjustments": [a.to_dict() for a in rows], "count": len(rows)})
    except Exception as e:
        return error_response(e)


@inventory_bp.get("/transactions")
def list_transactions_route():
    """Ledger entries, newest first. Filters: item_id, transaction_type, reference_id, limit."""
    try:
        rows = ledger_service.list_transactions(
            item_id=request.args.get("item_id", type=int),
            transaction_type=request.args.get("transaction_type"),
            reference_id=request.args.get("reference_id", type=int),
            limit=limit_arg(default=200),
        )
        return jsonify({"transactions": [t.to_dict() for t in rows], "count": len(rows)})
    except Exception as e:
        return error_response(e)


@inventory_bp.get("/reconcile/<int:item_id>")
def reconcile_route(item_id: int):
    try:
        return jsonify(ledger_service.reconcile_item(item_id))
    except Exception as e:
        return error_response(e)
