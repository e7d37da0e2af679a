# Overview: Flask API routes for items; parses input and returns JSON responses.

"""
Item registry routes.

Stock is read-only here: current_stock only moves through sales, receiving
and adjustments, so neither policy below lists it.
"""
from flask import Blueprint, request, jsonify, g

from ..models import Item
from ..services import item_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_item,
)
from ..decorators import require_actor
from . import error_response, json_body, limit_arg

ITEM_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "name", "description", "barcode", "unit",
        "opening_stock", "min_stock", "max_stock", "reorder_level",
        "cost_price_cents", "selling_price_cents", "tax_rate_bps",
    },
    required_on_create={"sku", "name"},
)

ITEM_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "name", "description", "barcode", "unit",
        "min_stock", "max_stock", "reorder_level",
        "cost_price_cents", "selling_price_cents", "tax_rate_bps",
        "is_active",
    },
)

items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("/")
def list_items_route():
    """
    List items.

    Query params:
    - search: matches name, sku or barcode
    - include_inactive: "true" to include soft-deleted items
    - limit: max rows (default 200)
    """
    try:
        items = item_service.list_items(
            search=request.args.get("search"),
            include_inactive=request.args.get("include_inactive", "").lower() == "true",
            limit=limit_arg(default=200),
        )
        return jsonify({"items": [item_service.item_summary(i) for i in items], "count": len(items)})
    except Exception as e:
        return error_response(e)


@items_bp.get("/low-stock")
def low_stock_route():
    try:
        items = item_service.list_low_stock_items()
        return jsonify({"items": items, "count": len(items)})
    except Exception as e:
        return error_response(e)


@items_bp.post("/")
@require_actor
def create_item_route():
    try:
        patch = validate_payload(model=Item, payload=json_body(), policy=ITEM_CREATE_POLICY, partial=False)
        enforce_rules_item(patch)
        item = item_service.create_item(patch=patch, actor_id=g.actor_id)
        return jsonify({"item": item_service.item_summary(item)}), 201
    except Exception as e:
        return error_response(e)


@items_bp.get("/<int:item_id>")
def get_item_route(item_id: int):
    try:
        item = item_service.get_item(item_id)
        return jsonify({"item": item_service.item_summary(item)})
    except Exception as e:
        return error_response(e)


@items_bp.patch("/<int:item_id>")
@require_actor
def update_item_route(item_id: int):
    try:
        patch = validate_payload(model=Item, payload=json_body(), policy=ITEM_UPDATE_POLICY, partial=True)
        enforce_rules_item(patch)
        item = item_service.update_item(item_id=item_id, patch=patch)
        return jsonify({"item": item_service.item_summary(item)})
    except Exception as e:
        return error_response(e)


@items_bp.delete("/<int:item_id>")
@require_actor
def deactivate_item_route(item_id: int):
    """Soft delete: the item stays referenced by orders and the ledger."""
    try:
        item = item_service.deactivate_item(item_id=item_id)
        return jsonify({"ok": True, "item": item_service.item_summary(item)})
    except Exception as e:
        return error_response(e)
