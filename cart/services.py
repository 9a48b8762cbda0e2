"""Cart services: mutations guarded by the minimum order quantity gate.

Every quantity written to a cart line must meet the line's effective MOQ.
A quantity below it is rejected with ``BelowMinimumError``; it is never
raised to the minimum on the shopper's behalf.
"""

import logging

from catalog.models import ProductVariant
from django.db import transaction
from django.shortcuts import get_object_or_404
from pricing.exceptions import CouponNotFound, InvalidValueError
from pricing.moq import clamp_delta, effective_moq, validate_quantity
from pricing.selectors import build_line_item, cart_line_items, get_settings_snapshot
from pricing.services import price_lines
from pricing.values import MAX_LINE_QUANTITY, PricedCart, normalize_code

from .models import Cart, CartItem
from .selectors import get_active_cart_for_session, get_active_cart_for_user


class CartError(Exception):
    """Raised for cart mutation failures."""


logger = logging.getLogger("storefront.cart")


def _owner_extra(cart: Cart) -> dict:
    return {"cart_id": cart.id, "user_id": cart.user_id, "session_id": cart.session_id, "guest": cart.is_guest}


def _purchasable_variant(variant_id: int) -> ProductVariant:
    variant = get_object_or_404(
        ProductVariant.objects.select_related("product").prefetch_related("product__categories"),
        id=variant_id,
    )
    if not variant.is_purchasable:
        raise CartError("Variant is not available for purchase.")
    return variant


def _minimum_for(variant: ProductVariant) -> int:
    return effective_moq(build_line_item(variant, 1), get_settings_snapshot().global_moq)


def _ensure_active(cart: Cart) -> None:
    if cart.status != Cart.STATUS_ACTIVE:
        raise CartError("Cart is no longer active.")


def _ensure_within_limit(quantity: int) -> None:
    if quantity > MAX_LINE_QUANTITY:
        raise CartError(f"Quantity cannot exceed {MAX_LINE_QUANTITY} per item.")


@transaction.atomic
def add_item(*, cart: Cart, variant_id: int, quantity: int) -> CartItem:
    """Add a variant to the cart.

    Adding a variant already in the cart increases that line's quantity; the
    resulting quantity must meet the effective MOQ.
    """

    if quantity <= 0:
        raise CartError("Quantity must be positive")
    _ensure_active(cart)
    variant = _purchasable_variant(variant_id)
    item = CartItem.objects.select_for_update().filter(cart=cart, variant=variant).first()
    new_quantity = int(quantity) + (int(item.quantity) if item else 0)
    _ensure_within_limit(new_quantity)
    validate_quantity(build_line_item(variant, new_quantity), _minimum_for(variant))

    if item is None:
        item = CartItem.objects.create(cart=cart, variant=variant, quantity=new_quantity)
        event = "cart.item_added"
    else:
        item.quantity = new_quantity
        item.save(update_fields=["quantity", "updated_at"])
        event = "cart.item_updated"
    cart.save(update_fields=["updated_at"])
    logger.info(
        event,
        extra={"event": event, "variant_id": variant.id, "quantity": new_quantity, **_owner_extra(cart)},
    )
    return item


@transaction.atomic
def update_item_quantity(*, cart: Cart, item_id: int, quantity: int) -> CartItem:
    """Set a cart line to an absolute quantity."""

    if quantity <= 0:
        raise CartError("Quantity must be positive")
    _ensure_within_limit(quantity)
    _ensure_active(cart)
    item = get_object_or_404(
        CartItem.objects.select_for_update().select_related("variant", "variant__product"),
        id=item_id,
        cart=cart,
    )
    validate_quantity(build_line_item(item.variant, quantity), _minimum_for(item.variant))
    item.quantity = quantity
    item.save(update_fields=["quantity", "updated_at"])
    logger.info(
        "cart.item_updated",
        extra={"event": "cart.item_updated", "variant_id": item.variant_id, "quantity": quantity, **_owner_extra(cart)},
    )
    return item


@transaction.atomic
def adjust_item_quantity(*, cart: Cart, item_id: int, delta: int) -> CartItem:
    """Change a cart line by ``delta`` units (negative to decrease)."""

    _ensure_active(cart)
    item = get_object_or_404(
        CartItem.objects.select_for_update().select_related("variant", "variant__product"),
        id=item_id,
        cart=cart,
    )
    new_quantity = clamp_delta(item.quantity, delta, _minimum_for(item.variant))
    _ensure_within_limit(new_quantity)
    item.quantity = new_quantity
    item.save(update_fields=["quantity", "updated_at"])
    logger.info(
        "cart.item_updated",
        extra={
            "event": "cart.item_updated",
            "variant_id": item.variant_id,
            "quantity": item.quantity,
            "delta": delta,
            **_owner_extra(cart),
        },
    )
    return item


@transaction.atomic
def remove_item(*, cart: Cart, item_id: int) -> None:
    """Remove an item from the cart."""

    deleted, _ = CartItem.objects.filter(id=item_id, cart=cart).delete()
    if not deleted:
        return
    logger.info("cart.item_removed", extra={"event": "cart.item_removed", "item_id": item_id, **_owner_extra(cart)})


@transaction.atomic
def clear_cart(*, cart: Cart) -> None:
    """Delete every item and drop the applied coupon."""

    CartItem.objects.filter(cart=cart).delete()
    cart.coupon_code = ""
    cart.save(update_fields=["coupon_code", "updated_at"])
    logger.info("cart.cleared", extra={"event": "cart.cleared", **_owner_extra(cart)})


@transaction.atomic
def abandon_cart(*, cart: Cart) -> None:
    """Empty the cart and mark it abandoned."""

    CartItem.objects.filter(cart=cart).delete()
    cart.status = Cart.STATUS_ABANDONED
    cart.coupon_code = ""
    cart.save(update_fields=["status", "coupon_code", "updated_at"])
    logger.info("cart.abandoned", extra={"event": "cart.abandoned", **_owner_extra(cart)})


@transaction.atomic
def apply_coupon(*, cart: Cart, code: str, is_authenticated: bool) -> PricedCart:
    """Attach a coupon to the cart if it applies right now.

    The code is stored only when it evaluates successfully; otherwise the
    ``CouponError`` describing the failure is raised and the cart keeps its
    previous coupon.
    """

    _ensure_active(cart)
    try:
        canonical = normalize_code(code)
    except InvalidValueError:
        raise CouponNotFound()
    priced = price_lines(
        cart_line_items(cart),
        is_authenticated=is_authenticated,
        coupon_code=canonical,
        check_payable=True,
    )
    if priced.coupon_error is not None:
        logger.info(
            "cart.coupon_rejected",
            extra={
                "event": "cart.coupon_rejected",
                "coupon_code": canonical,
                "reason": priced.coupon_error.code,
                **_owner_extra(cart),
            },
        )
        raise priced.coupon_error
    cart.coupon_code = canonical
    cart.save(update_fields=["coupon_code", "updated_at"])
    logger.info(
        "cart.coupon_applied",
        extra={
            "event": "cart.coupon_applied",
            "coupon_code": canonical,
            "discount": priced.discount,
            **_owner_extra(cart),
        },
    )
    return priced


@transaction.atomic
def remove_coupon(*, cart: Cart) -> None:
    if not cart.coupon_code:
        return
    code = cart.coupon_code
    cart.coupon_code = ""
    cart.save(update_fields=["coupon_code", "updated_at"])
    logger.info("cart.coupon_removed", extra={"event": "cart.coupon_removed", "coupon_code": code, **_owner_extra(cart)})


@transaction.atomic
def merge_guest_cart_to_user(*, session_id: str, user) -> Cart:
    """Merge a guest session cart into the user's active cart.

    Quantities of a variant present in both carts are summed, up to the
    per-line limit. The guest
    coupon carries over when the user's cart has none.
    """

    dest = get_active_cart_for_user(user=user)
    src = get_active_cart_for_session(session_id=session_id)
    if src.id == dest.id:
        return dest
    target = {}
    for item in dest.items.all():
        target[item.variant_id] = target.get(item.variant_id, 0) + int(item.quantity)
    for item in src.items.all():
        target[item.variant_id] = target.get(item.variant_id, 0) + int(item.quantity)

    for variant_id, qty in target.items():
        CartItem.objects.update_or_create(
            cart=dest, variant_id=variant_id, defaults={"quantity": min(qty, MAX_LINE_QUANTITY)}
        )
    if not dest.coupon_code and src.coupon_code:
        dest.coupon_code = src.coupon_code
    dest.save(update_fields=["coupon_code", "updated_at"])

    src_id = src.id
    src.delete()
    logger.info(
        "cart.merged",
        extra={
            "event": "cart.merged",
            "src_cart_id": src_id,
            "dest_cart_id": dest.id,
            "user_id": getattr(user, "id", None),
            "session_id": session_id,
        },
    )
    return dest


def checkout_cart(*, cart: Cart, user):
    """Place an order for the cart. Returns the created order."""

    from orders.services import place_order

    _ensure_active(cart)
    order = place_order(cart=cart, user=user)
    logger.info(
        "cart.checked_out",
        extra={"event": "cart.checked_out", "order_id": int(order.id), **_owner_extra(cart)},
    )
    return order
