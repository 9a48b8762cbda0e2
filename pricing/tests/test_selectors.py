from datetime import timedelta
from decimal import Decimal

import pytest
from catalog.tests.factories import BrandFactory, CategoryFactory, ProductFactory, ProductVariantFactory
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.utils import timezone
from pricing.models import Coupon, GlobalMOQSetting, PriceVisibilitySetting, PricingSlab, ShippingSetting
from pricing.selectors import (
    build_line_item,
    find_coupon,
    flash_sale_by_product,
    get_settings_snapshot,
    slabs_by_variant,
    slabs_for_variant,
)
from pricing.tests.factories import CouponFactory, FlashSaleFactory, PricingSlabFactory


@pytest.mark.django_db
def test_build_line_item_snapshots_catalog_data():
    category = CategoryFactory()
    brand = BrandFactory()
    product = ProductFactory(brand=brand, categories=[category])
    variant = ProductVariantFactory(product=product, price=Decimal("12.50"))

    item = build_line_item(variant, 3)
    assert item.variant_id == variant.id
    assert item.product_id == product.id
    assert item.quantity == 3
    assert item.base_price == Decimal("12.50")
    assert item.category_ids == frozenset({category.id})
    assert item.brand_id == brand.id
    assert item.moq_override is None


@pytest.mark.django_db
def test_variant_moq_overrides_product_moq():
    product = ProductFactory(min_order_quantity=10)
    inherits = ProductVariantFactory(product=product)
    own = ProductVariantFactory(product=product, min_order_quantity=3)

    assert (build_line_item(inherits, 1).moq_override, build_line_item(inherits, 1).moq_override_source) == (
        10,
        "PRODUCT",
    )
    assert (build_line_item(own, 1).moq_override, build_line_item(own, 1).moq_override_source) == (3, "VARIANT")


@pytest.mark.django_db
def test_variant_slabs_replace_product_slabs():
    product = ProductFactory()
    plain = ProductVariantFactory(product=product)
    special = ProductVariantFactory(product=product)
    PricingSlabFactory(product=product, min_quantity=10, unit_price=Decimal("9.00"))
    PricingSlabFactory(product=product, min_quantity=50, unit_price=Decimal("8.00"))
    PricingSlabFactory(product=product, variant=special, min_quantity=20, unit_price=Decimal("7.00"))

    result = slabs_by_variant([build_line_item(plain, 1), build_line_item(special, 1)])
    assert [s.min_quantity for s in result[plain.id]] == [10, 50]
    assert [(s.min_quantity, s.unit_price) for s in result[special.id]] == [(20, Decimal("7.00"))]
    assert [s.min_quantity for s in slabs_for_variant(special)] == [20]
    assert [s.min_quantity for s in slabs_for_variant(plain)] == [10, 50]


@pytest.mark.django_db
def test_slab_thresholds_are_unique_per_product():
    product = ProductFactory()
    PricingSlabFactory(product=product, min_quantity=10)
    with pytest.raises(IntegrityError):
        PricingSlabFactory(product=product, min_quantity=10)


@pytest.mark.django_db
def test_slab_variant_must_belong_to_product():
    slab = PricingSlab(product=ProductFactory(), variant=ProductVariantFactory(), min_quantity=5, unit_price=1)
    with pytest.raises(ValidationError):
        slab.clean()


@pytest.mark.django_db
def test_highest_running_flash_sale_wins():
    product = ProductFactory()
    FlashSaleFactory(products=[product], discount_percentage=Decimal("10.00"))
    best = FlashSaleFactory(products=[product], discount_percentage=Decimal("30.00"))
    FlashSaleFactory(products=[product], discount_percentage=Decimal("50.00"), is_active=False)
    FlashSaleFactory(products=[product], discount_percentage=Decimal("60.00"), max_quantity=5, sold_count=5)
    now = timezone.now()
    FlashSaleFactory(
        products=[product],
        discount_percentage=Decimal("70.00"),
        start_time=now + timedelta(hours=1),
        end_time=now + timedelta(hours=2),
    )

    result = flash_sale_by_product({product.id}, now)
    assert result[product.id].id == best.id
    assert result[product.id].discount_percentage == Decimal("30.00")


@pytest.mark.django_db
def test_no_flash_sale_for_uncovered_product():
    FlashSaleFactory(products=[ProductFactory()])
    other = ProductFactory()
    assert other.id not in flash_sale_by_product({other.id}, timezone.now())


@pytest.mark.django_db
def test_coupon_code_is_stored_canonical_and_found():
    product = ProductFactory()
    CouponFactory(code=" spring25 ", products=[product])
    assert Coupon.objects.filter(code="SPRING25").exists()

    snapshot = find_coupon("SPRING25")
    assert snapshot.code == "SPRING25"
    assert snapshot.scope.product_ids == frozenset({product.id})
    assert find_coupon("MISSING") is None


@pytest.mark.django_db
def test_coupon_model_validation():
    now = timezone.now()
    coupon = Coupon(
        code="X",
        discount_type=Coupon.TYPE_PERCENTAGE,
        discount_value=Decimal("120"),
        start_date=now,
        end_date=now - timedelta(days=1),
    )
    with pytest.raises(ValidationError) as excinfo:
        coupon.clean()
    assert set(excinfo.value.message_dict) == {"discount_value", "end_date"}


@pytest.mark.django_db
def test_settings_snapshot_defaults_and_overrides():
    snapshot = get_settings_snapshot()
    assert not snapshot.global_moq.is_active
    assert not snapshot.hide_prices_for_guests
    assert snapshot.shipping_rule(Decimal("10")) == Decimal("0.00")
    assert snapshot.min_payable_amount == Decimal("1.00")

    GlobalMOQSetting.objects.filter(pk=1).update(is_active=True, min_quantity=6)
    PriceVisibilitySetting.objects.filter(pk=1).update(hide_prices_for_guests=True)
    ShippingSetting.objects.filter(pk=1).update(shipping_charge=Decimal("5.00"), free_shipping_threshold=Decimal("50"))

    snapshot = get_settings_snapshot()
    assert snapshot.global_moq.min_quantity == 6
    assert snapshot.hide_prices_for_guests
    assert snapshot.shipping_rule(Decimal("10")) == Decimal("5.00")
    assert snapshot.shipping_rule(Decimal("50")) == Decimal("0.00")


@pytest.mark.django_db
def test_settings_are_singletons():
    first = ShippingSetting.load()
    first.shipping_charge = Decimal("3.00")
    first.save()
    second = ShippingSetting.load()
    assert second.pk == first.pk == 1
    assert second.shipping_charge == Decimal("3.00")
    assert ShippingSetting.objects.count() == 1
