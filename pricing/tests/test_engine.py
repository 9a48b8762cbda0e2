import random
from decimal import Decimal

import pytest
from pricing.engine import price_cart
from pricing.exceptions import BelowMinimumError, CouponExpired
from pricing.moq import clamp_delta, effective_moq, validate_quantity
from pricing.tests.helpers import NOW, coupon, flash_sale, line, lookup
from pricing.values import (
    CouponScope,
    GlobalMOQSetting,
    PricingSlab,
    SettingsSnapshot,
    ThresholdShippingRule,
)

DEFAULTS = SettingsSnapshot()


def _price(lines, slabs=None, sales=None, settings=DEFAULTS, **kwargs):
    kwargs.setdefault("is_authenticated", True)
    return price_cart(lines, slabs or {}, sales or {}, settings, NOW, **kwargs)


def test_bulk_slab_line():
    priced = _price(
        [line(variant_id=1, quantity=12, base_price="500")],
        slabs={1: (PricingSlab(min_quantity=10, unit_price="450"),)},
    )
    item = priced.items[0]
    assert item.unit_price == Decimal("450.00")
    assert item.price_source == "SLAB"
    assert item.line_subtotal == Decimal("5400.00")


def test_flash_sale_overrides_slab():
    priced = _price(
        [line(variant_id=1, quantity=12, base_price="500")],
        slabs={1: (PricingSlab(min_quantity=10, unit_price="450"),)},
        sales={1: flash_sale([1], percentage="20")},
    )
    item = priced.items[0]
    assert item.unit_price == Decimal("400.00")
    assert item.price_source == "FLASH_SALE"


def test_whole_cart_coupon_capped():
    c = coupon(code="BIG", value="95")
    priced = _price(
        [line(variant_id=1, quantity=10, base_price="100")],
        coupon_code="big",
        find_coupon=lookup(c),
    )
    assert priced.coupon.raw_discount == Decimal("950.00")
    assert priced.discount == Decimal("900.00")
    assert priced.coupon.is_discount_capped
    assert priced.total == Decimal("100.00")


def test_category_scoped_fixed_coupon():
    c = coupon(code="C1", discount_type="FIXED_AMOUNT", value="400", scope=CouponScope(category_ids={1}))
    priced = _price(
        [
            line(variant_id=1, quantity=3, base_price="100", category_ids={1}),
            line(variant_id=2, quantity=7, base_price="100", category_ids={2}),
        ],
        coupon_code="C1",
        find_coupon=lookup(c),
    )
    assert priced.coupon.applicable_subtotal == Decimal("300.00")
    assert priced.coupon.raw_discount == Decimal("300.00")
    assert priced.discount <= Decimal("300.00")
    assert priced.total == Decimal("1000.00") - priced.discount


def test_global_moq_rejects_quantity_change():
    settings = SettingsSnapshot(global_moq=GlobalMOQSetting(is_active=True, min_quantity=5))
    item = line(quantity=4)
    with pytest.raises(BelowMinimumError) as excinfo:
        validate_quantity(item, effective_moq(item, settings.global_moq))
    assert excinfo.value.required == 5

    priced = _price([item], settings=settings)
    assert [v.variant_id for v in priced.moq_violations] == [1]
    assert not priced.checkout_ready


def test_guest_sees_redacted_but_correct_totals():
    settings = SettingsSnapshot(hide_prices_for_guests=True)
    priced = _price([line(quantity=2, base_price="25")], settings=settings, is_authenticated=False)
    assert priced.redact_prices
    assert priced.total == Decimal("50.00")


def test_rejected_coupon_is_reported_not_raised():
    c = coupon(code="OLD", start_date=NOW.replace(year=2024), end_date=NOW.replace(year=2025, month=1))
    priced = _price([line(quantity=2, base_price="25")], coupon_code="OLD", find_coupon=lookup(c))
    assert priced.coupon is None
    assert isinstance(priced.coupon_error, CouponExpired)
    assert priced.discount == Decimal("0.00")
    assert priced.total == Decimal("50.00")


def test_coupon_code_requires_lookup():
    with pytest.raises(ValueError):
        _price([line()], coupon_code="ANY")


def test_below_minimum_payable_blocks_checkout():
    priced = _price([line(quantity=1, base_price="0.50")], check_payable=True)
    assert priced.below_minimum_payable
    assert not priced.checkout_ready


def test_shipping_from_settings():
    settings = SettingsSnapshot(shipping_rule=ThresholdShippingRule(charge="9.90", free_threshold="100"))
    assert _price([line(quantity=1, base_price="50")], settings=settings).shipping == Decimal("9.90")
    assert _price([line(quantity=2, base_price="50")], settings=settings).shipping == Decimal("0.00")


def _random_cart(rng):
    lines = []
    slabs = {}
    sales = {}
    for variant_id in range(1, rng.randint(1, 5) + 1):
        base = Decimal(rng.randint(0, 100000)) / 100
        lines.append(
            line(
                variant_id=variant_id,
                quantity=rng.randint(1, 200),
                base_price=str(base),
                category_ids={rng.randint(1, 3)},
            )
        )
        if rng.random() < 0.6:
            slabs[variant_id] = (
                PricingSlab(min_quantity=10, unit_price=str(base * Decimal("0.9"))),
                PricingSlab(min_quantity=50, unit_price=str(base * Decimal("0.8"))),
            )
        if rng.random() < 0.4:
            sales[variant_id] = flash_sale([variant_id], percentage=str(rng.randint(0, 100)), id=variant_id)
    return lines, slabs, sales


def _random_coupon(rng):
    if rng.random() < 0.5:
        return coupon(code="R", value=str(rng.randint(0, 100)), scope=CouponScope(category_ids={rng.randint(1, 3)}))
    return coupon(code="R", discount_type="FIXED_AMOUNT", value=str(rng.randint(0, 200000) / 100))


def test_invariants_hold_for_random_carts():
    rng = random.Random(20250601)
    rule = ThresholdShippingRule(charge="25", free_threshold="500")
    settings = SettingsSnapshot(shipping_rule=rule)
    for _ in range(300):
        lines, slabs, sales = _random_cart(rng)
        c = _random_coupon(rng)
        priced = _price(lines, slabs, sales, settings=settings, coupon_code="R", find_coupon=lookup(c))

        for item in priced.items:
            if item.variant_id in sales:
                assert item.price_source == "FLASH_SALE"
                assert item.applied_slab is None
            elif item.price_source == "SLAB":
                assert item.flash_sale_id is None

        application = priced.coupon
        if application is not None:
            assert application.discount <= application.applicable_subtotal * Decimal("0.90")
            assert application.applicable_subtotal - application.discount >= 0
            assert application.is_discount_capped == (application.discount < application.raw_discount)
        assert priced.total >= 0

        again = _price(lines, slabs, sales, settings=settings, coupon_code="R", find_coupon=lookup(c))
        assert again.totals == priced.totals
        assert again.items == priced.items


@pytest.mark.parametrize("minimum", [1, 2, 7, 50])
def test_moq_acceptance_is_exactly_at_or_above_minimum(minimum):
    for quantity in range(1, minimum + 3):
        item = line(quantity=quantity)
        if quantity >= minimum:
            validate_quantity(item, minimum)
        else:
            with pytest.raises(BelowMinimumError):
                validate_quantity(item, minimum)
    with pytest.raises(BelowMinimumError):
        clamp_delta(minimum, -1, minimum)
