"""Coupon evaluation against an already priced cart.

Evaluation is read-only: it never records a use of the coupon. Redeeming
happens at order placement, inside the order transaction.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

from common.choices import DiscountType

from .exceptions import (
    CouponBelowMinOrder,
    CouponExpired,
    CouponInactive,
    CouponNoEligibleItems,
    CouponNotFound,
    CouponNotYetValid,
    CouponUsesExhausted,
    InvalidValueError,
)
from .values import HUNDRED, ZERO, Coupon, CouponApplication, PricedLineItem, floor_money, normalize_code, to_money

# No coupon may take more than this share off the subtotal it applies to.
MAX_DISCOUNT_RATIO = Decimal("0.90")

CouponLookup = Callable[[str], Optional[Coupon]]


def matched_items(coupon: Coupon, priced_items: Sequence[PricedLineItem]):
    return [item for item in priced_items if coupon.scope.matches(item.line)]


def discount_cap(applicable_subtotal: Decimal) -> Decimal:
    return floor_money(applicable_subtotal * MAX_DISCOUNT_RATIO)


def raw_discount(coupon: Coupon, applicable_subtotal: Decimal) -> Decimal:
    if coupon.discount_type == DiscountType.PERCENTAGE:
        return to_money(applicable_subtotal * coupon.discount_value / HUNDRED)
    return to_money(min(coupon.discount_value, applicable_subtotal))


def apply_coupon(coupon: Coupon, priced_items: Sequence[PricedLineItem], now: datetime) -> CouponApplication:
    """Check an already fetched coupon and compute its discount.

    Raises a ``CouponError`` subclass for the first failing rule.
    """

    if not coupon.is_active:
        raise CouponInactive()
    if now < coupon.start_date:
        raise CouponNotYetValid(starts_at=coupon.start_date)
    if coupon.end_date is not None and now > coupon.end_date:
        raise CouponExpired(ended_at=coupon.end_date)
    if coupon.is_bounded and coupon.uses_so_far >= coupon.max_uses:
        raise CouponUsesExhausted(max_uses=coupon.max_uses)

    matched = matched_items(coupon, priced_items)
    if not matched:
        raise CouponNoEligibleItems()

    applicable = to_money(sum((item.line_subtotal for item in matched), ZERO))
    if coupon.min_order_amount is not None and applicable < coupon.min_order_amount:
        raise CouponBelowMinOrder(
            required=coupon.min_order_amount,
            applicable_subtotal=applicable,
            matched_item_count=len(matched),
        )

    raw = raw_discount(coupon, applicable)
    final = min(raw, discount_cap(applicable))
    return CouponApplication(
        code=coupon.code,
        discount=final,
        raw_discount=raw,
        applicable_subtotal=applicable,
        matched_item_count=len(matched),
        is_discount_capped=final < raw,
        coupon_id=coupon.id,
        matched_variant_ids=frozenset(item.variant_id for item in matched),
    )


def evaluate_coupon(
    code: str,
    priced_items: Sequence[PricedLineItem],
    now: datetime,
    find_coupon: CouponLookup,
) -> CouponApplication:
    """Look up ``code`` case-insensitively and evaluate it against the cart."""

    try:
        canonical = normalize_code(code)
    except InvalidValueError:
        raise CouponNotFound()
    coupon = find_coupon(canonical)
    if coupon is None:
        raise CouponNotFound()
    return apply_coupon(coupon, priced_items, now)
