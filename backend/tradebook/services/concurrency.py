# Overview: Service-layer helpers for concurrency; row locks and the atomic unit of work.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import ConflictError, DomainError, StorageError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the version_id columns and the database write lock carry the
    guarantee instead.
    """
    return query.with_for_update().populate_existing()


def run_atomic(func):
    """
    Execute func as one unit of work: commit on success, roll back on failure.

    Writes are NOT retried. Concurrency failures are translated so callers can
    tell a bad request (DomainError) from a lost race (ConflictError) or an
    unavailable store (StorageError).
    """
    try:
        result = func()
        db.session.commit()
        return result
    except DomainError:
        db.session.rollback()
        raise
    except StaleDataError as exc:
        db.session.rollback()
        current_app.logger.warning("Concurrent modification detected: %s", exc)
        raise ConflictError("Record was modified by another request, reload and try again") from exc
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("Integrity violation: %s", exc.orig)
        raise ConflictError("Write conflicts with existing data") from exc
    except (OperationalError, DBAPIError) as exc:
        db.session.rollback()
        current_app.logger.error("Storage failure: %s", exc)
        raise StorageError() from exc
    except Exception:
        db.session.rollback()
        raise
