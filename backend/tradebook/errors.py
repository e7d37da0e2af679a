# Overview: Typed failures raised by the order and inventory engine.

"""
Error taxonomy.

Every DomainError aborts the enclosing unit of work and reaches the caller
unchanged. StorageError is deliberately NOT a DomainError: it means the
request may be fine but the backing store failed, so the caller may retry.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for request-level failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "type": type(self).__name__}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(DomainError, ValueError):
    """400-level input problem."""
    status_code = 400


class NotFoundError(DomainError):
    """Referenced item, order or counterparty is absent (or inactive)."""
    status_code = 404


class InsufficientStockError(DomainError):
    """A sale or stock decrement would drive current_stock below zero."""
    status_code = 409


class InvalidAdjustmentError(DomainError):
    """Manual adjustment that cannot be applied to the current stock."""
    status_code = 409


class InvalidPaymentError(DomainError):
    """Payment amount or method is not acceptable for the order."""
    status_code = 400


class OverpaymentError(InvalidPaymentError):
    """Payment exceeds the order's remaining balance."""
    status_code = 400


class AlreadyReceivedError(DomainError):
    """Purchase order is already fully received."""
    status_code = 409


class ConflictError(DomainError):
    """409-level conflict: concurrent modification or duplicate key."""
    status_code = 409


class StorageError(Exception):
    """Infrastructure failure (connection loss, lock timeout)."""
    status_code = 503

    def __init__(self, message: str = "Storage unavailable, try again"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "type": type(self).__name__}
