"""
Custom exceptions for the pricing engine.

Only caller contract violations are raised; malformed-but-plausible inputs
(unknown currency, missing rate, oversized discount) are clamped or passed through.
"""

from typing import Optional, Dict, Any


class PricingError(Exception):
    """Base exception for pricing errors."""

    error_code: str = "PRICING_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidPriceError(PricingError, ValueError):
    """Raised when a price or amount is negative, non-finite or not a number."""

    error_code = "INVALID_PRICE"

    def __init__(self, value: Any, reason: str):
        super().__init__(
            f"Invalid price {value!r}: {reason}",
            details={"value": str(value), "reason": reason}
        )


class FXProviderError(PricingError):
    """Raised when exchange rates cannot be provided."""

    error_code = "FX_PROVIDER_ERROR"
