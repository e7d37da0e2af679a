from __future__ import annotations

from ..extensions import db
from tradebook.time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic per-type document sequences.

    WHY: Order numbers are allocated by the database, not an in-process
    counter, so concurrent workers never hand out the same number.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }


class IdempotencyKey(db.Model):
    """
    Caller-supplied token for a write operation.

    Written in the same DB transaction as the resource it points at, so a
    replayed request either finds the finished resource or nothing at all.
    """
    __tablename__ = "idempotency_keys"
    __table_args__ = (
        db.UniqueConstraint("operation", "key", name="uq_idempotency_operation_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), nullable=False)
    operation = db.Column(db.String(64), nullable=False)
    resource_type = db.Column(db.String(32), nullable=False)
    resource_id = db.Column(db.Integer, nullable=False)
    # SHA-256 of the normalized request; a key replayed with a different request is rejected
    request_fingerprint = db.Column(db.String(64), nullable=False)
    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
