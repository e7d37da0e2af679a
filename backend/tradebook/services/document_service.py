# Overview: Service-layer operations for document numbering; allocates order numbers from the database.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from ..models.orders import ORDER_TYPE_SALE, ORDER_TYPE_PURCHASE
from ..errors import ValidationError


ORDER_NUMBER_PREFIXES = {
    ORDER_TYPE_SALE: "SO",
    ORDER_TYPE_PURCHASE: "PO",
}


def _current_value(document_type: str) -> int:
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return current - 1


def next_sequence_value(document_type: str) -> int:
    """
    Atomically allocate the next number for a document type.

    Runs inside the caller's transaction: the UPDATE takes the row lock, so the
    number is only consumed if the caller commits.
    """
    if not document_type:
        raise ValidationError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        return _current_value(document_type)

    seq = DocumentSequence(document_type=document_type, next_number=2)
    try:
        # Savepoint so a lost first-row race does not roll back the caller's work
        with db.session.begin_nested():
            db.session.add(seq)
        return 1
    except IntegrityError:
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        db.session.flush()
        return _current_value(document_type)


def next_order_number(order_type: str) -> str:
    """SO-000001 / PO-000001, zero-padded to ORDER_NUMBER_PAD digits."""
    prefix = ORDER_NUMBER_PREFIXES.get(order_type)
    if prefix is None:
        raise ValidationError(f"Unknown order type: {order_type}")
    pad = int(current_app.config.get("ORDER_NUMBER_PAD", 6))
    value = next_sequence_value(order_type)
    return f"{prefix}-{value:0{pad}d}"
