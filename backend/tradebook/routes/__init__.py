# Overview: Shared helpers for API routes; maps service errors to JSON responses.

from __future__ import annotations

from flask import current_app, jsonify, request

from ..errors import DomainError, StorageError


IDEMPOTENCY_HEADER = "Idempotency-Key"


def error_response(exc: Exception):
    """Translate an exception raised by a service call into (json, status)."""
    if isinstance(exc, (DomainError, StorageError)):
        return jsonify(exc.to_dict()), exc.status_code
    current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": "Internal server error"}), 500


def idempotency_key() -> str | None:
    return request.headers.get(IDEMPOTENCY_HEADER)


def json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def limit_arg(default: int = 100, maximum: int = 500) -> int:
    limit = request.args.get("limit", type=int) or default
    return max(1, min(limit, maximum))
