from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime, Date
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .time_utils import parse_iso_datetime, parse_iso_date


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

ORDER_PAYMENT_METHODS = ("cash", "credit", "bank", "check")
PAYMENT_METHODS = ("cash", "bank", "check", "mobile", "credit")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    # Other types
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        return coerce_date(value, col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


# =============================================================================
# FIELD RULES
# =============================================================================

def coerce_date(value: Any, field: str) -> date | None:
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")


def require_money_cents(value: Any, field: str, *, allow_zero: bool = True) -> int:
    cents = coerce_int(value, field)
    if cents < 0 or (cents == 0 and not allow_zero):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    if cents > MAX_PRICE_CENTS * 1000:
        raise ValidationError(f"{field} is out of range")
    return cents


def parse_tax_rate_bps(value: Any) -> int:
    """
    Convert a percentage (0..100, fractional allowed) into basis points.

    15 -> 1500, 7.5 -> 750. Sub-basis-point precision is rejected rather than
    silently rounded.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValidationError("tax_rate must be a number")
    try:
        rate = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("tax_rate must be a number")
    if not rate.is_finite() or rate < 0 or rate > 100:
        raise ValidationError("tax_rate must be between 0 and 100")
    bps = rate * 100
    if bps != bps.to_integral_value():
        raise ValidationError("tax_rate supports at most two decimal places")
    return int(bps)


def tax_amount_cents(subtotal_cents: int, tax_rate_bps: int) -> int:
    """subtotal x rate / 100, nearest cent, half-up."""
    raw = Decimal(subtotal_cents) * Decimal(tax_rate_bps) / Decimal(10_000)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_order_lines(lines: Any) -> list[dict]:
    """
    Normalize order lines to [{"item_id", "quantity", "unit_price_cents"}].

    Rules: non-empty list, quantity >= 1, unit price >= 0, each item at most once.
    """
    if not isinstance(lines, (list, tuple)) or not lines:
        raise ValidationError("items must be a non-empty list")

    normalized = []
    seen: set[int] = set()
    for index, raw in enumerate(lines, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        for key in ("item_id", "quantity", "unit_price_cents"):
            if raw.get(key) is None:
                raise ValidationError(f"items[{index}].{key} is required")

        item_id = coerce_int(raw["item_id"], f"items[{index}].item_id")
        quantity = coerce_int(raw["quantity"], f"items[{index}].quantity")
        unit_price = coerce_int(raw["unit_price_cents"], f"items[{index}].unit_price_cents")

        if quantity < 1:
            raise ValidationError(f"items[{index}].quantity must be >= 1")
        if unit_price < 0:
            raise ValidationError(f"items[{index}].unit_price_cents must be >= 0")
        if unit_price > MAX_PRICE_CENTS:
            raise ValidationError(f"items[{index}].unit_price_cents cannot exceed {MAX_PRICE_CENTS}")
        if item_id in seen:
            raise ValidationError(
                f"items[{index}]: item {item_id} appears more than once; combine the quantities"
            )
        seen.add(item_id)

        normalized.append({"item_id": item_id, "quantity": quantity, "unit_price_cents": unit_price})
    return normalized


def validate_receive_lines(lines: Any) -> list[dict]:
    """Normalize receiving lines to [{"item_id", "received_quantity"}]."""
    if not isinstance(lines, (list, tuple)) or not lines:
        raise ValidationError("items must be a non-empty list")

    normalized = []
    seen: set[int] = set()
    for index, raw in enumerate(lines, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if raw.get("item_id") is None or raw.get("received_quantity") is None:
            raise ValidationError(f"items[{index}] requires item_id and received_quantity")
        item_id = coerce_int(raw["item_id"], f"items[{index}].item_id")
        received = coerce_int(raw["received_quantity"], f"items[{index}].received_quantity")
        if received < 0:
            raise ValidationError(f"items[{index}].received_quantity must be >= 0")
        if item_id in seen:
            raise ValidationError(f"items[{index}]: item {item_id} appears more than once")
        seen.add(item_id)
        normalized.append({"item_id": item_id, "received_quantity": received})
    return normalized


def enforce_rules_item(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for field in ("cost_price_cents", "selling_price_cents"):
        if field in patch and patch[field] is not None:
            price = patch[field]
            if price < 0:
                raise ValidationError(f"{field} must be >= 0")
            if price > MAX_PRICE_CENTS:
                raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")

    for field in ("opening_stock", "min_stock", "max_stock", "reorder_level"):
        if field in patch and patch[field] is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0")

    if "tax_rate_bps" in patch and patch["tax_rate_bps"] is not None:
        if not 0 <= patch["tax_rate_bps"] <= 10_000:
            raise ValidationError("tax_rate_bps must be between 0 and 10000")


def enforce_rules_counterparty(patch: dict) -> None:
    if "credit_limit_cents" in patch and patch["credit_limit_cents"] is not None:
        if patch["credit_limit_cents"] < 0:
            raise ValidationError("credit_limit_cents must be >= 0")

    email = patch.get("email")
    if email and ("@" not in email or email.startswith("@") or email.endswith("@")):
        raise ValidationError("email is not a valid address")
