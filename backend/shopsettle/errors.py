# Overview: Domain error hierarchy for the settlement engine, with the HTTP status each maps to.

from __future__ import annotations


class SettlementError(Exception):
    """Base class for errors reported back to the caller."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(SettlementError):
    """Malformed cart, invoice or form input. Nothing was written."""


class DuplicateInvoiceError(SettlementError):
    """Invoice number already used in the tenant's numbering scope."""
    status_code = 409


class ReferenceNotFoundError(SettlementError):
    """Referenced discount, employee or record does not exist in this tenant."""
    status_code = 404


class InsufficientStampsError(SettlementError):
    """Redeem attempted before the customer collected enough stamps."""
    status_code = 409


class PersistenceError(SettlementError):
    """Storage write failed; the unit of work was rolled back."""
    status_code = 500


class NotificationError(SettlementError):
    """Outbound notification failed. Logged, never surfaced to the caller."""
    status_code = 502


class ConfigurationError(SettlementError):
    """Tenant configuration could not be loaded or failed validation."""
    status_code = 500
