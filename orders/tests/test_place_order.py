from datetime import timedelta
from decimal import Decimal

import pytest
from cart.models import Cart, CartItem
from cart.selectors import get_active_cart_for_user
from cart.services import add_item, apply_coupon
from cart.tests.factories import UserFactory
from catalog.tests.factories import ProductVariantFactory
from django.utils import timezone
from orders.models import Order, OrderItem
from orders.services import CheckoutError, place_order
from pricing.models import Coupon, FlashSale, GlobalMOQSetting, ShippingSetting
from pricing.tests.factories import CouponFactory, FlashSaleFactory, PricingSlabFactory


def _cart_with(user, variant, quantity):
    cart = get_active_cart_for_user(user=user)
    add_item(cart=cart, variant_id=variant.id, quantity=quantity)
    return cart


@pytest.mark.django_db
def test_place_order_snapshots_prices_and_provenance():
    user = UserFactory()
    variant = ProductVariantFactory(price=Decimal("500.00"))
    slab = PricingSlabFactory(product=variant.product, min_quantity=10, unit_price=Decimal("450.00"))
    ShippingSetting.objects.update_or_create(
        pk=1, defaults={"shipping_charge": Decimal("25.00"), "free_shipping_threshold": Decimal("10000.00")}
    )
    cart = _cart_with(user, variant, 12)

    order = place_order(cart=cart, user=user)

    assert order.number == f"ORD-{order.id:06d}"
    assert order.subtotal == Decimal("5400.00")
    assert order.discount == Decimal("0.00")
    assert order.shipping == Decimal("25.00")
    assert order.total == Decimal("5425.00")
    item = OrderItem.objects.get(order=order)
    assert item.unit_price == Decimal("450.00")
    assert item.base_price == Decimal("500.00")
    assert item.line_total == Decimal("5400.00")
    assert item.price_source == "SLAB"
    assert item.variant_sku == variant.sku

    # Later price changes do not rewrite the order
    slab.unit_price = Decimal("1.00")
    slab.save()
    order.refresh_from_db()
    assert order.subtotal == Decimal("5400.00")


@pytest.mark.django_db
def test_place_order_redeems_coupon_once():
    user = UserFactory()
    variant = ProductVariantFactory(price=Decimal("100.00"))
    coupon = CouponFactory(code="ONE", discount_value=Decimal("10.00"), max_uses=1)
    cart = _cart_with(user, variant, 2)
    apply_coupon(cart=cart, code="ONE", is_authenticated=True)

    order = place_order(cart=cart, user=user)

    coupon.refresh_from_db()
    assert coupon.uses_so_far == 1
    assert order.coupon_id == coupon.id
    assert order.coupon_code == "ONE"
    assert order.discount == Decimal("20.00")
    assert order.total == Decimal("180.00")

    # Second shopper: the coupon is exhausted
    other = UserFactory()
    other_cart = _cart_with(other, variant, 1)
    other_cart.coupon_code = "ONE"
    other_cart.save()
    with pytest.raises(CheckoutError) as excinfo:
        place_order(cart=other_cart, user=other)
    assert excinfo.value.code == "uses_exhausted"
    assert Order.objects.filter(user=other).count() == 0


@pytest.mark.django_db
def test_coupon_exhausted_between_quote_and_redeem_rolls_back(monkeypatch):
    user = UserFactory()
    variant = ProductVariantFactory(price=Decimal("100.00"))
    sale = FlashSaleFactory(products=[variant.product], discount_percentage=Decimal("10.00"), max_quantity=50)
    coupon = CouponFactory(code="RACE", max_uses=1)
    cart = _cart_with(user, variant, 2)
    apply_coupon(cart=cart, code="RACE", is_authenticated=True)

    # Another checkout takes the last use after this cart was priced
    import orders.services as order_services

    real_redeem = order_services._redeem_coupon

    def redeem_after_competitor(coupon_id):
        Coupon.objects.filter(id=coupon_id).update(uses_so_far=1)
        real_redeem(coupon_id)

    monkeypatch.setattr(order_services, "_redeem_coupon", redeem_after_competitor)

    with pytest.raises(CheckoutError) as excinfo:
        place_order(cart=cart, user=user)
    assert excinfo.value.code == "uses_exhausted"

    cart.refresh_from_db()
    sale.refresh_from_db()
    coupon.refresh_from_db()
    assert cart.status == Cart.STATUS_ACTIVE
    assert CartItem.objects.filter(cart=cart).count() == 1
    assert sale.sold_count == 0
    assert coupon.uses_so_far == 0
    assert not Order.objects.filter(user=user).exists()


@pytest.mark.django_db
def test_flash_sale_units_are_claimed():
    user = UserFactory()
    variant = ProductVariantFactory(price=Decimal("100.00"))
    sale = FlashSaleFactory(products=[variant.product], discount_percentage=Decimal("25.00"), max_quantity=10)
    cart = _cart_with(user, variant, 4)

    order = place_order(cart=cart, user=user)

    sale.refresh_from_db()
    assert sale.sold_count == 4
    item = order.items.get()
    assert item.price_source == "FLASH_SALE"
    assert item.unit_price == Decimal("75.00")
    assert item.flash_sale_id == sale.id


@pytest.mark.django_db
def test_sold_out_flash_sale_falls_back_to_regular_price():
    user = UserFactory()
    variant = ProductVariantFactory(price=Decimal("100.00"))
    FlashSaleFactory(products=[variant.product], discount_percentage=Decimal("25.00"), max_quantity=3, sold_count=3)
    cart = _cart_with(user, variant, 2)

    order = place_order(cart=cart, user=user)

    assert order.items.get().price_source == "DEFAULT"
    assert order.subtotal == Decimal("200.00")
    assert FlashSale.objects.get().sold_count == 3


@pytest.mark.django_db
def test_flash_sale_never_sells_past_its_cap():
    user = UserFactory()
    variant = ProductVariantFactory(price=Decimal("100.00"))
    sale = FlashSaleFactory(products=[variant.product], discount_percentage=Decimal("20.00"), max_quantity=10, sold_count=9)
    cart = _cart_with(user, variant, 5)

    with pytest.raises(CheckoutError) as excinfo:
        place_order(cart=cart, user=user)
    assert excinfo.value.code == "flash_sale_sold_out"
    assert excinfo.value.context["flash_sale_id"] == sale.id

    sale.refresh_from_db()
    cart.refresh_from_db()
    assert sale.sold_count == 9
    assert cart.status == Cart.STATUS_ACTIVE
    assert not Order.objects.filter(user=user).exists()


@pytest.mark.django_db
def test_flash_sale_can_sell_its_last_units():
    user = UserFactory()
    variant = ProductVariantFactory(price=Decimal("100.00"))
    sale = FlashSaleFactory(products=[variant.product], discount_percentage=Decimal("20.00"), max_quantity=10, sold_count=7)
    cart = _cart_with(user, variant, 3)

    order = place_order(cart=cart, user=user)

    sale.refresh_from_db()
    assert sale.sold_count == 10
    assert order.items.get().unit_price == Decimal("80.00")


@pytest.mark.django_db
def test_lapsed_coupon_blocks_checkout():
    user = UserFactory()
    variant = ProductVariantFactory()
    coupon = CouponFactory(code="BRIEF")
    cart = _cart_with(user, variant, 1)
    apply_coupon(cart=cart, code="BRIEF", is_authenticated=True)
    now = timezone.now()
    Coupon.objects.filter(id=coupon.id).update(start_date=now - timedelta(days=3), end_date=now - timedelta(days=1))

    with pytest.raises(CheckoutError) as excinfo:
        place_order(cart=cart, user=user)
    assert excinfo.value.code == "expired"
    assert excinfo.value.context["coupon_code"] == "BRIEF"


@pytest.mark.django_db
def test_moq_raised_after_add_blocks_checkout():
    user = UserFactory()
    variant = ProductVariantFactory()
    cart = _cart_with(user, variant, 2)
    GlobalMOQSetting.objects.update_or_create(pk=1, defaults={"is_active": True, "min_quantity": 5})

    with pytest.raises(CheckoutError) as excinfo:
        place_order(cart=cart, user=user)
    assert excinfo.value.code == "below_minimum"
    assert excinfo.value.context["violations"] == [{"variant_id": variant.id, "quantity": 2, "required": 5}]


@pytest.mark.django_db
def test_empty_inactive_and_unpayable_carts_are_rejected():
    user = UserFactory()
    cart = get_active_cart_for_user(user=user)
    with pytest.raises(CheckoutError) as excinfo:
        place_order(cart=cart, user=user)
    assert excinfo.value.code == "empty_cart"

    add_item(cart=cart, variant_id=ProductVariantFactory(price=Decimal("0.40")).id, quantity=1)
    with pytest.raises(CheckoutError) as excinfo:
        place_order(cart=cart, user=user)
    assert excinfo.value.code == "below_minimum_payable"
    assert excinfo.value.as_response()["total"] == "0.40"

    Cart.objects.filter(id=cart.id).update(status=Cart.STATUS_ABANDONED)
    with pytest.raises(CheckoutError) as excinfo:
        place_order(cart=cart, user=user)
    assert excinfo.value.code == "cart_inactive"
