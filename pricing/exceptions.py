"""Exceptions raised by the pricing core.

Coupon and MOQ errors are expected outcomes that callers turn into user
feedback. ``InvalidValueError`` signals malformed upstream data and is raised
when a value object is constructed.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional


class InvalidValueError(ValueError):
    """Raised when a pricing value object is built from malformed data."""


class CouponError(Exception):
    """Base class for coupon evaluation failures."""

    code = "coupon_error"
    default_message = "Coupon cannot be applied."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def context(self) -> Dict[str, Any]:
        """Extra fields a caller can render next to the message."""
        return {}


class CouponNotFound(CouponError):
    code = "not_found"
    default_message = "Invalid coupon code."


class CouponInactive(CouponError):
    code = "inactive"
    default_message = "This coupon is not active."


class CouponNotYetValid(CouponError):
    code = "not_yet_valid"
    default_message = "This coupon is not active yet."

    def __init__(self, starts_at: datetime):
        self.starts_at = starts_at
        super().__init__()

    def context(self):
        return {"starts_at": self.starts_at.isoformat()}


class CouponExpired(CouponError):
    code = "expired"
    default_message = "This coupon has expired."

    def __init__(self, ended_at: datetime):
        self.ended_at = ended_at
        super().__init__()

    def context(self):
        return {"ended_at": self.ended_at.isoformat()}


class CouponUsesExhausted(CouponError):
    code = "uses_exhausted"
    default_message = "Coupon usage limit exceeded."

    def __init__(self, max_uses: int):
        self.max_uses = max_uses
        super().__init__()

    def context(self):
        return {"max_uses": self.max_uses}


class CouponNoEligibleItems(CouponError):
    code = "no_eligible_items"
    default_message = "This coupon does not apply to the products in your cart."


class CouponBelowMinOrder(CouponError):
    code = "below_min_order"

    def __init__(self, required: Decimal, applicable_subtotal: Decimal, matched_item_count: int):
        self.required = required
        self.applicable_subtotal = applicable_subtotal
        self.matched_item_count = matched_item_count
        super().__init__(f"Minimum order amount of {required} required.")

    def context(self):
        return {
            "required": str(self.required),
            "applicable_subtotal": str(self.applicable_subtotal),
            "matched_item_count": self.matched_item_count,
        }


class MOQError(Exception):
    """Base class for minimum order quantity violations."""

    code = "moq_error"


class BelowMinimumError(MOQError):
    """A quantity falls below the effective minimum order quantity."""

    code = "below_minimum"

    def __init__(self, required: int):
        self.required = int(required)
        super().__init__(f"Minimum order quantity is {self.required} units.")

    def context(self) -> Dict[str, Any]:
        return {"required": self.required}
