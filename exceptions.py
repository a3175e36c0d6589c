"""
exceptions.py
-------------
Error taxonomy shared by every layer.

    ValidationError       missing/malformed input          -> never retried
    NotFoundError         unknown id                       -> never retried
    AccessDeniedError     record owned by someone else     -> never retried
    ConflictError         double pay, unpay of unpaid      -> never retried
    InvalidStateError     paid without a ledger entry      -> never retried
    ProviderDeliveryError one or more providers failed     -> logged, aggregated
    GenerationRaceError   concurrent occurrence insert     -> safe to retry
"""

from typing import Any, Optional


class BillTrackerError(Exception):
    """
    Base class for all domain errors.

    Attributes:
        message: Human-readable description.
        context: Owner/template/obligation ids useful to reproduce the error.
    """

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ValidationError(BillTrackerError):
    """Raised when request data is missing or malformed."""


class NotFoundError(BillTrackerError):
    """Raised when a record does not exist."""


class AccessDeniedError(BillTrackerError):
    """Raised when a record exists but belongs to another owner."""


class ConflictError(BillTrackerError):
    """Raised when a state transition is not allowed from the current state."""


class InvalidStateError(ConflictError):
    """Raised when stored data contradicts an invariant (e.g. paid with no ledger entry)."""


class GenerationRaceError(BillTrackerError):
    """Raised when a concurrent writer inserted the same occurrence first."""


class ProviderDeliveryError(BillTrackerError):
    """
    Raised after a dispatch in which at least one provider failed.

    Providers that succeeded have already delivered; nothing is rolled back.

    Attributes:
        failures: ``{provider_type: reason}`` for every failed provider.
    """

    def __init__(self, failures: dict[str, str], context: Optional[dict[str, Any]] = None):
        self.failures = dict(failures)
        detail = ", ".join(f"{ptype}: {reason}" for ptype, reason in self.failures.items())
        super().__init__(f"Failed to send notifications: {detail}", context)
