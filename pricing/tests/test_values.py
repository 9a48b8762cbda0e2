from datetime import timedelta
from decimal import Decimal

import pytest
from pricing import values
from pricing.exceptions import InvalidValueError
from pricing.tests.helpers import NOW, coupon, flash_sale, line


def test_money_rounding_half_up_and_floor():
    assert values.to_money(Decimal("1.005")) == Decimal("1.01")
    assert values.to_money(Decimal("2.344")) == Decimal("2.34")
    assert values.floor_money(Decimal("899.999")) == Decimal("899.99")


@pytest.mark.parametrize("raw", ["  save10 ", "SAVE10", "Save10"])
def test_normalize_code_is_case_and_whitespace_insensitive(raw):
    assert values.normalize_code(raw) == "SAVE10"


@pytest.mark.parametrize("raw", ["", "   ", None, 10])
def test_normalize_code_rejects_blank_or_non_string(raw):
    with pytest.raises(InvalidValueError):
        values.normalize_code(raw)


def test_line_item_rejects_non_positive_quantity():
    with pytest.raises(InvalidValueError):
        line(quantity=0)
    with pytest.raises(InvalidValueError):
        line(quantity=-3)


def test_line_item_rejects_negative_price_and_bad_override():
    with pytest.raises(InvalidValueError):
        line(base_price="-1.00")
    with pytest.raises(InvalidValueError):
        line(moq_override=0)
    with pytest.raises(InvalidValueError):
        line(moq_override=5, moq_override_source="GLOBAL")


def test_line_item_accepts_float_price_without_binary_noise():
    item = values.LineItem(variant_id=1, product_id=1, quantity=1, base_price=0.1)
    assert item.base_price == Decimal("0.1")


def test_validate_slabs_orders_by_threshold_and_rejects_duplicates():
    ordered = values.validate_slabs(
        [values.PricingSlab(min_quantity=50, unit_price="8"), values.PricingSlab(min_quantity=10, unit_price="9")]
    )
    assert [s.min_quantity for s in ordered] == [10, 50]

    with pytest.raises(InvalidValueError):
        values.validate_slabs(
            [values.PricingSlab(min_quantity=10, unit_price="9"), values.PricingSlab(min_quantity=10, unit_price="8")]
        )


def test_flash_sale_window_and_percentage_are_validated():
    with pytest.raises(InvalidValueError):
        flash_sale([1], start_time=NOW, end_time=NOW)
    with pytest.raises(InvalidValueError):
        flash_sale([1], percentage="120")


def test_flash_sale_sold_out_is_not_effective():
    sale = flash_sale([1], max_quantity=5, sold_count=5)
    assert sale.is_sold_out
    assert not sale.is_effective_for(1, NOW)


def test_flash_sale_effective_window_is_inclusive():
    sale = flash_sale([1], start_time=NOW, end_time=NOW + timedelta(minutes=5))
    assert sale.is_effective_for(1, NOW)
    assert sale.is_effective_for(1, NOW + timedelta(minutes=5))
    assert not sale.is_effective_for(1, NOW + timedelta(minutes=5, seconds=1))
    assert not sale.is_effective_for(2, NOW)


def test_coupon_normalizes_code_and_validates_values():
    c = coupon(code=" summer ")
    assert c.code == "SUMMER"
    with pytest.raises(InvalidValueError):
        coupon(discount_type="BOGUS")
    with pytest.raises(InvalidValueError):
        coupon(value="101")
    with pytest.raises(InvalidValueError):
        coupon(start_date=NOW, end_date=NOW - timedelta(days=1))


def test_fixed_amount_coupon_may_exceed_one_hundred():
    c = coupon(discount_type="FIXED_AMOUNT", value="250")
    assert c.discount_value == Decimal("250")


def test_coupon_scope_matches_any_dimension():
    scope = values.CouponScope(category_ids={7}, brand_ids={3})
    assert scope.matches(line(category_ids={7, 8}))
    assert scope.matches(line(brand_id=3))
    assert not scope.matches(line(category_ids={9}, brand_id=4))
    assert values.CouponScope().matches(line())


def test_threshold_shipping_rule():
    rule = values.ThresholdShippingRule(charge="50", free_threshold="500")
    assert rule(Decimal("499.99")) == Decimal("50.00")
    assert rule(Decimal("500.00")) == Decimal("0.00")
    assert values.ThresholdShippingRule(charge="50")(Decimal("10000")) == Decimal("50.00")
    assert values.FREE_SHIPPING(Decimal("1")) == Decimal("0.00")
