# Overview: Service-layer operations for idempotency keys on create-style writes.

from __future__ import annotations

import hashlib
import json

from ..extensions import db
from ..models import IdempotencyKey
from ..errors import ConflictError, ValidationError


MAX_KEY_LENGTH = 128


def normalize_key(key: str | None) -> str | None:
    if key is None:
        return None
    key = str(key).strip()
    if not key:
        return None
    if len(key) > MAX_KEY_LENGTH:
        raise ValidationError(f"Idempotency key exceeds max length {MAX_KEY_LENGTH}")
    return key


def request_fingerprint(**fields) -> str:
    """Stable SHA-256 over the normalized request fields (order-independent)."""
    canonical = json.dumps(fields, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def find_replay(*, operation: str, key: str | None, fingerprint: str) -> IdempotencyKey | None:
    """
    Return the stored record for a key already used by this operation.

    A key that was used for a different operation, or for the same operation
    with a different request (another order, another amount), is a client bug
    rather than a replay, and is rejected.
    """
    if key is None:
        return None
    records = db.session.query(IdempotencyKey).filter(IdempotencyKey.key == key).all()
    for record in records:
        if record.operation != operation:
            continue
        if record.request_fingerprint != fingerprint:
            raise ConflictError(
                "Idempotency key was already used with a different request",
                details={"key": key, "operation": operation},
            )
        return record
    if records:
        raise ConflictError(
            "Idempotency key was already used for a different operation",
            details={"key": key},
        )
    return None


def remember(
    *,
    operation: str,
    key: str | None,
    fingerprint: str,
    resource_type: str,
    resource_id: int,
    actor_id: int | None,
) -> IdempotencyKey | None:
    """
    Store the key in the caller's unit of work.

    A concurrent request with the same key fails on the unique constraint at
    flush time and is surfaced as ConflictError by run_atomic.
    """
    if key is None:
        return None
    record = IdempotencyKey(
        key=key,
        operation=operation,
        request_fingerprint=fingerprint,
        resource_type=resource_type,
        resource_id=resource_id,
        created_by=actor_id,
    )
    db.session.add(record)
    db.session.flush()
    return record
