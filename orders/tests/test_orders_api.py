from decimal import Decimal

import pytest
from cart.selectors import get_active_cart_for_user
from cart.services import add_item, apply_coupon
from cart.tests.factories import UserFactory
from catalog.tests.factories import ProductVariantFactory
from orders.services import place_order
from pricing.tests.factories import CouponFactory
from rest_framework.test import APIClient


def _place(user, *, price="10.00", quantity=1, coupon_code=None):
    cart = get_active_cart_for_user(user=user)
    add_item(cart=cart, variant_id=ProductVariantFactory(price=Decimal(price)).id, quantity=quantity)
    if coupon_code:
        apply_coupon(cart=cart, code=coupon_code, is_authenticated=True)
    return place_order(cart=cart, user=user)


@pytest.mark.django_db
def test_order_list_only_shows_own_orders():
    user = UserFactory()
    mine = _place(user)
    _place(UserFactory())
    client = APIClient()
    client.force_authenticate(user=user)

    resp = client.get("/api/v1/orders/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 1
    assert body["results"][0]["id"] == mine.id


@pytest.mark.django_db
def test_order_detail_shows_frozen_prices():
    user = UserFactory()
    CouponFactory(code="TENOFF", discount_value=Decimal("10.00"))
    order = _place(user, price="50.00", quantity=4, coupon_code="TENOFF")
    client = APIClient()
    client.force_authenticate(user=user)

    body = client.get(f"/api/v1/orders/{order.id}/").json()
    assert body["subtotal"] == "200.00"
    assert body["discount"] == "20.00"
    assert body["total"] == "180.00"
    assert body["coupon_code"] == "TENOFF"
    assert body["items"][0]["unit_price"] == "50.00"
    assert body["items"][0]["price_source"] == "DEFAULT"


@pytest.mark.django_db
def test_order_detail_of_other_user_is_404():
    order = _place(UserFactory())
    client = APIClient()
    client.force_authenticate(user=UserFactory())
    assert client.get(f"/api/v1/orders/{order.id}/").status_code == 404


@pytest.mark.django_db
def test_order_list_filters_by_coupon():
    user = UserFactory()
    CouponFactory(code="PROMO")
    with_coupon = _place(user, coupon_code="PROMO")
    _place(user)
    client = APIClient()
    client.force_authenticate(user=user)

    body = client.get("/api/v1/orders/", {"coupon": "promo"}).json()
    assert [o["id"] for o in body["results"]] == [with_coupon.id]


@pytest.mark.django_db
def test_orders_require_authentication():
    assert APIClient().get("/api/v1/orders/").status_code in (401, 403)
