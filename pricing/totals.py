"""Cart totals aggregation."""

from decimal import Decimal
from typing import Callable, Optional, Sequence

from .values import ZERO, CartTotals, CouponApplication, PricedLineItem, to_money

ShippingRule = Callable[[Decimal], Decimal]


def compute_totals(
    priced_items: Sequence[PricedLineItem],
    coupon_application: Optional[CouponApplication],
    shipping_rule: ShippingRule,
    is_authenticated: bool,
    hide_prices_for_guests: bool,
    check_payable: bool = False,
    min_payable_amount: Decimal = Decimal("1.00"),
) -> CartTotals:
    """Combine line subtotals, the coupon discount and shipping into totals.

    Numbers are always computed in full. ``redact_prices`` only tells the
    presentation layer not to render them for guests.
    """

    subtotal = to_money(sum((item.line_subtotal for item in priced_items), ZERO))
    discount = coupon_application.discount if coupon_application is not None else ZERO
    shipping = to_money(shipping_rule(subtotal - discount))
    total = max(subtotal - discount + shipping, ZERO)
    return CartTotals(
        subtotal=subtotal,
        discount=discount,
        shipping=shipping,
        total=total,
        redact_prices=(not is_authenticated) and bool(hide_prices_for_guests),
        below_minimum_payable=bool(check_payable) and total < min_payable_amount,
    )
