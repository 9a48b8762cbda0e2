"""Small builders for pricing-core tests that need no database."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from pricing import values
from pricing.resolver import price_line_item

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def line(variant_id=1, product_id=None, quantity=1, base_price="10.00", **kwargs):
    return values.LineItem(
        variant_id=variant_id,
        product_id=product_id if product_id is not None else variant_id,
        quantity=quantity,
        base_price=Decimal(base_price),
        **kwargs,
    )


def priced(line_item, slabs=(), flash_sale=None, now=NOW):
    return price_line_item(line_item, slabs, flash_sale, now)


def flash_sale(product_ids, percentage="20", **kwargs):
    kwargs.setdefault("start_time", NOW - timedelta(hours=1))
    kwargs.setdefault("end_time", NOW + timedelta(hours=1))
    kwargs.setdefault("id", 1)
    return values.FlashSale(discount_percentage=Decimal(percentage), product_ids=frozenset(product_ids), **kwargs)


def coupon(code="SAVE", discount_type="PERCENTAGE", value="10", **kwargs):
    kwargs.setdefault("start_date", NOW - timedelta(days=1))
    kwargs.setdefault("end_date", NOW + timedelta(days=1))
    return values.Coupon(code=code, discount_type=discount_type, discount_value=Decimal(value), **kwargs)


def lookup(*coupons):
    by_code = {c.code: c for c in coupons}
    return by_code.get
