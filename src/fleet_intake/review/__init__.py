"""Human-in-the-loop review rules."""

from fleet_intake.review.validator import (
    ReviewValidator,
    normalize_fault_codes,
    normalize_vin,
)

__all__ = ["ReviewValidator", "normalize_fault_codes", "normalize_vin"]
