"""Pricing services: wire database snapshots into the pricing engine.

All entry points read the clock from ``timezone.now()``; a client-supplied
time is never trusted.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from catalog.models import ProductVariant
from django.shortcuts import get_object_or_404
from django.utils import timezone

from .engine import price_cart
from .exceptions import CouponNotFound
from .moq import resolve_moq
from .resolver import price_line_item
from .selectors import (
    build_line_item,
    cart_line_items,
    find_coupon,
    flash_sale_by_product,
    get_settings_snapshot,
    slabs_by_variant,
    slabs_for_variant,
    variants_for_pricing,
)
from .values import (
    MAX_LINE_QUANTITY,
    CouponApplication,
    EffectiveMOQ,
    FlashSale,
    LineItem,
    PricedCart,
    PricedLineItem,
    PricingSlab,
)

logger = logging.getLogger("storefront.pricing")


class QuoteError(Exception):
    """Raised when a quote request references variants that cannot be priced."""


@dataclass(frozen=True)
class VariantPricing:
    """Price breakdown for one variant at a given quantity."""

    variant: ProductVariant
    item: PricedLineItem
    slabs: Tuple[PricingSlab, ...]
    flash_sale: Optional[FlashSale]
    moq: EffectiveMOQ
    redact_prices: bool


def price_lines(
    lines: Sequence[LineItem],
    *,
    is_authenticated: bool,
    coupon_code: Optional[str] = None,
    check_payable: bool = False,
    now=None,
) -> PricedCart:
    """Price ``lines`` against the current slabs, flash sales and settings."""

    now = now or timezone.now()
    priced = price_cart(
        lines,
        slabs_by_variant(lines),
        flash_sale_by_product({line.product_id for line in lines}, now),
        get_settings_snapshot(),
        now,
        is_authenticated=is_authenticated,
        coupon_code=coupon_code or None,
        find_coupon=find_coupon,
        check_payable=check_payable,
    )
    _log_quote(priced, coupon_code=coupon_code)
    return priced


def quote_cart(*, cart, is_authenticated: bool, check_payable: bool = True, now=None) -> PricedCart:
    """Reprice a stored cart from scratch, including its applied coupon."""

    return price_lines(
        cart_line_items(cart),
        is_authenticated=is_authenticated,
        coupon_code=cart.coupon_code or None,
        check_payable=check_payable,
        now=now,
    )


def line_items_from_request(items: Iterable[dict]) -> List[LineItem]:
    """Build line items from ``[{"variant_id", "quantity"}, ...]``.

    Repeated variants are merged by summing their quantities. Only variants a
    shopper could put in a cart can be quoted.
    """

    quantities: Dict[int, int] = {}
    for entry in items:
        variant_id = int(entry["variant_id"])
        quantities[variant_id] = quantities.get(variant_id, 0) + int(entry["quantity"])
    oversized = sorted(v for v, qty in quantities.items() if qty > MAX_LINE_QUANTITY)
    if oversized:
        raise QuoteError(
            f"Quantity cannot exceed {MAX_LINE_QUANTITY} per item: {', '.join(str(v) for v in oversized)}"
        )
    variants = variants_for_pricing(quantities)
    missing = sorted(set(quantities) - set(variants))
    if missing:
        raise QuoteError(f"Unknown variant ids: {', '.join(str(v) for v in missing)}")
    unavailable = sorted(v for v, variant in variants.items() if not variant.is_purchasable)
    if unavailable:
        raise QuoteError(f"Variants not available for purchase: {', '.join(str(v) for v in unavailable)}")
    unpriced = sorted(v for v, variant in variants.items() if variant.price is None)
    if unpriced:
        raise QuoteError(f"Variants without a price: {', '.join(str(v) for v in unpriced)}")
    return [build_line_item(variants[variant_id], qty) for variant_id, qty in quantities.items()]


def quote_items(
    *, items: Iterable[dict], is_authenticated: bool, coupon_code: Optional[str] = None, now=None
) -> PricedCart:
    """Price an ad-hoc basket that is not stored as a cart."""

    return price_lines(
        line_items_from_request(items),
        is_authenticated=is_authenticated,
        coupon_code=coupon_code,
        now=now,
    )


def verify_coupon(
    *, code: str, items: Iterable[dict], is_authenticated: bool, now=None
) -> Tuple[CouponApplication, PricedCart]:
    """Evaluate ``code`` against a basket without redeeming it.

    Raises the ``CouponError`` subclass describing the first failing rule.
    """

    priced = price_lines(
        line_items_from_request(items),
        is_authenticated=is_authenticated,
        coupon_code=code,
        now=now,
    )
    if priced.coupon_error is not None:
        logger.info(
            "coupon.rejected",
            extra={"event": "coupon.rejected", "coupon_code": code, "reason": priced.coupon_error.code},
        )
        raise priced.coupon_error
    application = priced.coupon
    if application is None:
        raise CouponNotFound()
    logger.info(
        "coupon.verified",
        extra={
            "event": "coupon.verified",
            "coupon_code": application.code,
            "discount": application.discount,
            "capped": application.is_discount_capped,
        },
    )
    return application, priced


def variant_pricing(
    *, variant_id: int, quantity: Optional[int] = None, is_authenticated: bool, now=None
) -> VariantPricing:
    """Unit price, provenance and MOQ for a single variant.

    Without ``quantity`` the variant is priced at its effective minimum.
    """

    now = now or timezone.now()
    variant = get_object_or_404(
        ProductVariant.objects.select_related("product", "product__brand").prefetch_related("product__categories"),
        id=variant_id,
    )
    if variant.price is None:
        raise QuoteError(f"Variant {variant_id} has no price")
    snapshot = get_settings_snapshot()
    unit_line = build_line_item(variant, 1)
    moq = resolve_moq(unit_line, snapshot.global_moq)
    line = unit_line.with_quantity(int(quantity) if quantity else moq.min_quantity)
    slabs = slabs_for_variant(variant)
    flash_sale = flash_sale_by_product({variant.product_id}, now).get(variant.product_id)
    item = price_line_item(line, slabs, flash_sale, now, moq=moq)
    return VariantPricing(
        variant=variant,
        item=item,
        slabs=slabs,
        flash_sale=flash_sale,
        moq=moq,
        redact_prices=(not is_authenticated) and snapshot.hide_prices_for_guests,
    )


def _log_quote(priced: PricedCart, *, coupon_code: Optional[str]) -> None:
    logger.info(
        "pricing.quote",
        extra={
            "event": "pricing.quote",
            "item_count": len(priced.items),
            "subtotal": priced.subtotal,
            "discount": priced.discount,
            "total": priced.total,
            "coupon_code": coupon_code or None,
            "coupon_error": priced.coupon_error.code if priced.coupon_error else None,
            "moq_violations": len(priced.moq_violations),
        },
    )
