# Overview: Service-layer operations for customers and suppliers; encapsulates business logic and database work.

"""
Counterparty Service

Customers and suppliers share one shape and one set of operations; the
`kind` argument picks the table.

current_balance_cents is the amount owed to or by the counterparty. It is
written only by apply_balance_delta, which the order and payment services
call inside their own unit of work. The generic update path cannot touch it.
"""

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Customer, Supplier
from ..errors import NotFoundError, ValidationError
from .concurrency import lock_for_update, run_atomic


KIND_CUSTOMER = "customer"
KIND_SUPPLIER = "supplier"

COUNTERPARTY_MODELS = {
    KIND_CUSTOMER: Customer,
    KIND_SUPPLIER: Supplier,
}

COUNTERPARTY_MUTABLE_FIELDS = {
    "name",
    "contact_person",
    "email",
    "phone",
    "address",
    "city",
    "country",
    "tax_id",
    "payment_terms",
    "credit_limit_cents",
    "is_active",
}


def model_for(kind: str):
    model = COUNTERPARTY_MODELS.get(kind)
    if model is None:
        raise ValidationError(f"Unknown counterparty kind: {kind}")
    return model


def apply_counterparty_patch(counterparty, patch: dict) -> None:
    for k, v in patch.items():
        if k not in COUNTERPARTY_MUTABLE_FIELDS:
            continue
        setattr(counterparty, k, v)


def get_counterparty(kind: str, counterparty_id: int, *, require_active: bool = False, lock: bool = False):
    model = model_for(kind)
    q = db.session.query(model).filter(model.id == counterparty_id)
    if lock:
        q = lock_for_update(q)
    counterparty = q.first()
    if not counterparty:
        raise NotFoundError(
            f"{kind.capitalize()} {counterparty_id} not found",
            details={f"{kind}_id": counterparty_id},
        )
    if require_active and not counterparty.is_active:
        raise NotFoundError(
            f"{kind.capitalize()} {counterparty_id} is inactive",
            details={f"{kind}_id": counterparty_id},
        )
    return counterparty


def build_counterparty(kind: str, *, patch: dict, actor_id: int | None = None):
    """Stage a new counterparty in the current session without committing."""
    name = (patch.get("name") or "").strip()
    if not name:
        raise ValidationError(f"{kind.capitalize()} name is required")

    model = model_for(kind)
    counterparty = model(created_by=actor_id, current_balance_cents=0, is_active=True)
    apply_counterparty_patch(counterparty, patch)
    counterparty.name = name

    db.session.add(counterparty)
    db.session.flush()
    return counterparty


def create_counterparty(kind: str, *, patch: dict, actor_id: int | None = None):
    return run_atomic(lambda: build_counterparty(kind, patch=patch, actor_id=actor_id))


def update_counterparty(kind: str, *, counterparty_id: int, patch: dict):
    def _op():
        forbidden = sorted(set(patch) - COUNTERPARTY_MUTABLE_FIELDS)
        if forbidden:
            raise ValidationError(f"Field not allowed: {', '.join(forbidden)}")
        counterparty = get_counterparty(kind, counterparty_id)
        apply_counterparty_patch(counterparty, patch)
        db.session.flush()
        return counterparty

    return run_atomic(_op)


def deactivate_counterparty(kind: str, *, counterparty_id: int):
    """Soft-delete; orders keep their reference and the balance is kept."""
    def _op():
        counterparty = get_counterparty(kind, counterparty_id)
        if counterparty.is_active:
            counterparty.is_active = False
            db.session.flush()
        return counterparty

    return run_atomic(_op)


def list_counterparties(
    kind: str,
    *,
    search: str | None = None,
    include_inactive: bool = False,
    limit: int = 100,
) -> list:
    model = model_for(kind)
    q = db.session.query(model)
    if not include_inactive:
        q = q.filter(model.is_active.is_(True))
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(
            or_(
                model.name.ilike(term),
                model.phone.ilike(term),
                model.email.ilike(term),
                model.contact_person.ilike(term),
            )
        )
    return q.order_by(model.name.asc(), model.id.asc()).limit(limit).all()


def apply_balance_delta(counterparty, delta_cents: int) -> None:
    """
    Move the running balance inside the caller's unit of work.

    The version_id bump on flush turns a concurrent balance write into a
    StaleDataError for the loser.
    """
    if delta_cents == 0:
        return
    counterparty.current_balance_cents = (counterparty.current_balance_cents or 0) + delta_cents
    db.session.flush()
