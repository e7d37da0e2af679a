# Overview: Flask API routes for customers and suppliers; parses input and returns JSON responses.

"""
Customer and supplier routes.

Both resources share one shape, so one blueprint factory builds both.
current_balance_cents is never writable here; it moves with orders and
payments only.
"""
from flask import Blueprint, request, jsonify, g

from ..services import counterparty_service
from ..services.counterparty_service import KIND_CUSTOMER, KIND_SUPPLIER
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_counterparty,
)
from ..decorators import require_actor
from . import error_response, json_body, limit_arg

_CONTACT_FIELDS = {
    "name", "contact_person", "email", "phone", "address",
    "city", "country", "tax_id", "payment_terms", "credit_limit_cents",
}

COUNTERPARTY_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=set(_CONTACT_FIELDS),
    required_on_create={"name"},
)

COUNTERPARTY_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=_CONTACT_FIELDS | {"is_active"},
)


def build_counterparty_blueprint(kind: str, url_prefix: str) -> Blueprint:
    bp = Blueprint(f"{kind}s", __name__, url_prefix=url_prefix)
    model = counterparty_service.model_for(kind)

    @bp.get("/")
    def list_route():
        try:
            rows = counterparty_service.list_counterparties(
                kind,
                search=request.args.get("search"),
                include_inactive=request.args.get("include_inactive", "").lower() == "true",
                limit=limit_arg(default=100),
            )
            return jsonify({f"{kind}s": [r.to_dict() for r in rows], "count": len(rows)})
        except Exception as e:
            return error_response(e)

    @bp.post("/")
    @require_actor
    def create_route():
        try:
            patch = validate_payload(model=model, payload=json_body(), policy=COUNTERPARTY_CREATE_POLICY, partial=False)
            enforce_rules_counterparty(patch)
            created = counterparty_service.create_counterparty(kind, patch=patch, actor_id=g.actor_id)
            return jsonify({kind: created.to_dict()}), 201
        except Exception as e:
            return error_response(e)

    @bp.get("/<int:counterparty_id>")
    def get_route(counterparty_id: int):
        try:
            found = counterparty_service.get_counterparty(kind, counterparty_id)
            return jsonify({kind: found.to_dict()})
        except Exception as e:
            return error_response(e)

    @bp.patch("/<int:counterparty_id>")
    @require_actor
    def update_route(counterparty_id: int):
        try:
            patch = validate_payload(model=model, payload=json_body(), policy=COUNTERPARTY_UPDATE_POLICY, partial=True)
            enforce_rules_counterparty(patch)
            updated = counterparty_service.update_counterparty(kind, counterparty_id=counterparty_id, patch=patch)
            return jsonify({kind: updated.to_dict()})
        except Exception as e:
            return error_response(e)

    @bp.delete("/<int:counterparty_id>")
    @require_actor
    def deactivate_route(counterparty_id: int):
        try:
            deactivated = counterparty_service.deactivate_counterparty(kind, counterparty_id=counterparty_id)
            return jsonify({"ok": True, kind: deactivated.to_dict()})
        except Exception as e:
            return error_response(e)

    return bp


customers_bp = build_counterparty_blueprint(KIND_CUSTOMER, "/api/customers")
suppliers_bp = build_counterparty_blueprint(KIND_SUPPLIER, "/api/suppliers")
