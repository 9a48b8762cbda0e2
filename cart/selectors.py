"""Selectors for read-only cart queries."""

from typing import Optional

from pricing.services import quote_cart
from pricing.values import PricedCart

from .models import Cart, CartItem


def get_active_cart_for_user(*, user) -> Cart:
    """Return the user's active cart, creating it if missing."""

    cart, _ = Cart.objects.get_or_create(user=user, session_id=None, status=Cart.STATUS_ACTIVE)
    return cart


def get_active_cart_for_session(*, session_id: str) -> Cart:
    """Return the guest session's active cart, creating it if missing."""

    cart, _ = Cart.objects.get_or_create(user=None, session_id=session_id, status=Cart.STATUS_ACTIVE)
    return cart


def find_cart_item(*, cart: Cart, item_id: int) -> Optional[CartItem]:
    return CartItem.objects.filter(id=item_id, cart=cart).first()


def price_cart_for(*, cart: Cart, is_authenticated: bool) -> PricedCart:
    """Reprice the cart from scratch, including the minimum payable check."""

    return quote_cart(cart=cart, is_authenticated=is_authenticated, check_payable=True)
