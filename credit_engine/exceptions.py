"""Custom exception hierarchy for the credit engine."""

from __future__ import annotations

from datetime import date


class CreditEngineError(Exception):
    """Base exception for all credit engine errors."""


class InvalidLoanTermsError(CreditEngineError):
    """Raised when loan terms cannot produce a payment schedule."""


class DateAdjustmentError(CreditEngineError):
    """Raised when business-day adjustment does not settle on a date.

    This only happens with a contradictory holiday configuration (for
    example, every weekday of a month marked as a holiday).
    """

    def __init__(self, original: date, frequency, iterations: int) -> None:
        self.original = original
        self.frequency = frequency
        self.iterations = iterations
        super().__init__(
            f"Could not find a business day for {original.isoformat()} "
            f"({frequency.value}) after {iterations} adjustments"
        )


class PaymentTransitionError(CreditEngineError):
    """Raised on an illegal registered-payment status change."""


class PaymentNotFoundError(CreditEngineError):
    """Raised when a payment id is not part of the credit."""


class CreditNotFoundError(CreditEngineError):
    """Raised when a referenced credit does not exist."""


class ConfigurationError(CreditEngineError):
    """Raised when configuration is invalid or missing."""
