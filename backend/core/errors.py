"""
core/errors.py

Typed error taxonomy shared by every engine and service.

All errors are recoverable by the caller (retry, correct the input, or
re-fetch the entity); none of them is fatal to the process.
"""
from typing import Any, Dict, Optional


class HotelOpsError(Exception):
    """
    Base class for command failures.

    Attributes:
        message: Human-readable error message
        error_type: Stable category string (used by callers and the UI layer)
        context: Extra structured details (ids, statuses, ...)
    """

    error_type = "error"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "context": self.context,
        }


class NotFoundError(HotelOpsError):
    """Unknown entity id."""

    error_type = "not_found"


class ValidationError(HotelOpsError):
    """Malformed input: bad dates, empty required field, negative amount."""

    error_type = "validation_error"


class InvalidTransitionError(HotelOpsError):
    """A state-machine guard rejected the requested transition."""

    error_type = "invalid_transition"


class ConflictError(HotelOpsError):
    """Optimistic-concurrency mismatch or overlapping booking."""

    error_type = "conflict"


class PaymentFailedError(HotelOpsError):
    """The payment gateway declined or timed out; nothing was changed."""

    error_type = "payment_failed"

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        retryable: bool = True,
    ):
        super().__init__(message, context)
        self.retryable = retryable

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["retryable"] = self.retryable
        return result


__all__ = [
    "HotelOpsError",
    "NotFoundError",
    "ValidationError",
    "InvalidTransitionError",
    "ConflictError",
    "PaymentFailedError",
]
