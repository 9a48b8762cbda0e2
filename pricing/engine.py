"""End-to-end cart pricing.

Runs the resolver per line, attaches MOQ context, evaluates the coupon
against the priced lines and aggregates totals. A rejected coupon is reported
on the result instead of being raised, so pricing always succeeds.
"""

from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from .coupons import CouponLookup, evaluate_coupon
from .exceptions import CouponError
from .moq import resolve_moq
from .resolver import price_line_item
from .totals import compute_totals
from .values import FlashSale, LineItem, PricedCart, PricingSlab, SettingsSnapshot


def price_cart(
    lines: Sequence[LineItem],
    slabs_by_variant: Mapping[int, Iterable[PricingSlab]],
    flash_sale_by_product: Mapping[int, Optional[FlashSale]],
    settings: SettingsSnapshot,
    now: datetime,
    is_authenticated: bool,
    coupon_code: Optional[str] = None,
    find_coupon: Optional[CouponLookup] = None,
    check_payable: bool = False,
) -> PricedCart:
    items = tuple(
        price_line_item(
            line,
            slabs_by_variant.get(line.variant_id, ()),
            flash_sale_by_product.get(line.product_id),
            now,
            moq=resolve_moq(line, settings.global_moq),
        )
        for line in lines
    )

    application = None
    coupon_error = None
    if coupon_code:
        if find_coupon is None:
            raise ValueError("find_coupon is required when a coupon code is given")
        try:
            application = evaluate_coupon(coupon_code, items, now, find_coupon)
        except CouponError as exc:
            coupon_error = exc

    totals = compute_totals(
        items,
        application,
        settings.shipping_rule,
        is_authenticated=is_authenticated,
        hide_prices_for_guests=settings.hide_prices_for_guests,
        check_payable=check_payable,
        min_payable_amount=settings.min_payable_amount,
    )
    return PricedCart(items=items, totals=totals, coupon=application, coupon_error=coupon_error)
