from decimal import Decimal

from pricing.coupons import apply_coupon
from pricing.tests.helpers import NOW, coupon, line, priced
from pricing.totals import compute_totals
from pricing.values import FREE_SHIPPING, ThresholdShippingRule


def _items():
    return [
        priced(line(variant_id=1, quantity=2, base_price="250.00")),
        priced(line(variant_id=2, quantity=5, base_price="100.00")),
    ]


def test_totals_without_coupon():
    totals = compute_totals(_items(), None, FREE_SHIPPING, is_authenticated=True, hide_prices_for_guests=False)
    assert totals.subtotal == Decimal("1000.00")
    assert totals.discount == Decimal("0.00")
    assert totals.shipping == Decimal("0.00")
    assert totals.total == Decimal("1000.00")
    assert not totals.redact_prices


def test_capped_coupon_leaves_ten_percent():
    items = _items()
    application = apply_coupon(coupon(value="95"), items, NOW)
    totals = compute_totals(items, application, FREE_SHIPPING, is_authenticated=True, hide_prices_for_guests=False)
    assert totals.discount == Decimal("900.00")
    assert totals.total == Decimal("100.00")


def test_shipping_is_computed_on_discounted_amount():
    items = _items()
    rule = ThresholdShippingRule(charge="40.00", free_threshold="950.00")
    application = apply_coupon(coupon(value="10"), items, NOW)
    totals = compute_totals(items, application, rule, is_authenticated=True, hide_prices_for_guests=False)
    assert totals.shipping == Decimal("40.00")
    assert totals.total == Decimal("940.00")

    no_coupon = compute_totals(items, None, rule, is_authenticated=True, hide_prices_for_guests=False)
    assert no_coupon.shipping == Decimal("0.00")


def test_guest_redaction_flag_keeps_numbers():
    totals = compute_totals(_items(), None, FREE_SHIPPING, is_authenticated=False, hide_prices_for_guests=True)
    assert totals.redact_prices
    assert totals.total == Decimal("1000.00")


def test_redaction_needs_both_guest_and_setting():
    assert not compute_totals(_items(), None, FREE_SHIPPING, True, True).redact_prices
    assert not compute_totals(_items(), None, FREE_SHIPPING, False, False).redact_prices


def test_empty_cart_totals_are_zero():
    totals = compute_totals([], None, FREE_SHIPPING, is_authenticated=True, hide_prices_for_guests=False)
    assert totals.subtotal == totals.total == Decimal("0.00")


def test_below_minimum_payable_only_when_checked():
    items = [priced(line(quantity=1, base_price="0.50"))]
    unchecked = compute_totals(items, None, FREE_SHIPPING, True, False)
    checked = compute_totals(items, None, FREE_SHIPPING, True, False, check_payable=True)
    assert not unchecked.below_minimum_payable
    assert checked.below_minimum_payable
    assert not compute_totals(
        items, None, FREE_SHIPPING, True, False, check_payable=True, min_payable_amount=Decimal("0.50")
    ).below_minimum_payable


def test_compute_totals_is_pure():
    items = _items()
    application = apply_coupon(coupon(value="33"), items, NOW)
    rule = ThresholdShippingRule(charge="15.00", free_threshold="2000.00")
    first = compute_totals(items, application, rule, False, True, check_payable=True)
    second = compute_totals(items, application, rule, False, True, check_payable=True)
    assert first == second
