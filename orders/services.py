import hashlib
import json
import logging
from collections import Counter
from datetime import timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Tuple

from cart.models import Cart, CartItem
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone
from pricing.models import Coupon, FlashSale
from pricing.services import quote_cart

from .models import IdempotencyKey, Order, OrderItem

logger = logging.getLogger("storefront.orders")


class CheckoutError(Exception):
    """Raised when a cart cannot be turned into an order."""

    def __init__(self, message: str, *, code: str = "checkout_error", context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.context = context or {}

    def as_response(self) -> Dict[str, Any]:
        return {"detail": str(self), "code": self.code, **self.context}


def _redeem_coupon(coupon_id: int) -> None:
    """Record one use of the coupon, unless its limit was reached meanwhile."""

    updated = (
        Coupon.objects.filter(id=coupon_id, is_active=True)
        .filter(Q(max_uses__isnull=True) | Q(uses_so_far__lt=F("max_uses")))
        .update(uses_so_far=F("uses_so_far") + 1)
    )
    if not updated:
        raise CheckoutError("Coupon usage limit exceeded.", code="uses_exhausted")


def _claim_flash_sale_units(flash_sale_id: int, quantity: int) -> None:
    """Claim ``quantity`` units of the sale; all of them must fit under its cap."""

    updated = (
        FlashSale.objects.filter(id=flash_sale_id, is_active=True)
        .filter(Q(max_quantity__isnull=True) | Q(sold_count__lte=F("max_quantity") - quantity))
        .update(sold_count=F("sold_count") + quantity)
    )
    if not updated:
        raise CheckoutError(
            "Flash sale has sold out; please review your cart.",
            code="flash_sale_sold_out",
            context={"flash_sale_id": flash_sale_id},
        )


@transaction.atomic
def place_order(*, cart: Cart, user) -> Order:
    """Reprice ``cart`` and persist it as an order.

    Runs in one transaction: any rejection rolls back coupon redemption and
    flash-sale claims made so far.
    """

    cart = Cart.objects.select_for_update().get(pk=cart.pk)
    if cart.status != Cart.STATUS_ACTIVE:
        raise CheckoutError("Cart is no longer active.", code="cart_inactive")

    priced = quote_cart(cart=cart, is_authenticated=True, check_payable=True)
    if not priced.items:
        raise CheckoutError("Cart is empty.", code="empty_cart")
    if priced.moq_violations:
        raise CheckoutError(
            "Some items are below their minimum order quantity.",
            code="below_minimum",
            context={
                "violations": [
                    {"variant_id": item.variant_id, "quantity": item.quantity, "required": item.min_quantity}
                    for item in priced.moq_violations
                ]
            },
        )
    if priced.coupon_error is not None:
        raise CheckoutError(
            priced.coupon_error.message,
            code=priced.coupon_error.code,
            context={"coupon_code": cart.coupon_code, **priced.coupon_error.context()},
        )
    if priced.below_minimum_payable:
        raise CheckoutError(
            "Order total is below the minimum payable amount.",
            code="below_minimum_payable",
            context={"total": str(priced.total)},
        )

    coupon = priced.coupon
    if coupon is not None:
        _redeem_coupon(coupon.coupon_id)
    claims = Counter()
    for item in priced.items:
        if item.flash_sale_id is not None:
            claims[item.flash_sale_id] += item.quantity
    for flash_sale_id, quantity in sorted(claims.items()):
        _claim_flash_sale_units(flash_sale_id, quantity)

    order = Order.objects.create(
        user=user,
        cart=cart,
        email=getattr(user, "email", None) or None,
        subtotal=priced.subtotal,
        discount=priced.discount,
        shipping=priced.shipping,
        total=priced.total,
        coupon_id=coupon.coupon_id if coupon else None,
        coupon_code=coupon.code if coupon else "",
    )
    variants = {
        ci.variant_id: ci.variant
        for ci in CartItem.objects.select_related("variant", "variant__product").filter(cart=cart)
    }
    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                variant=variants[item.variant_id],
                product_title=variants[item.variant_id].product.title,
                variant_sku=variants[item.variant_id].sku,
                quantity=item.quantity,
                base_price=item.base_price,
                unit_price=item.unit_price,
                line_total=item.line_subtotal,
                price_source=item.price_source,
                flash_sale_id=item.flash_sale_id,
            )
            for item in priced.items
        ]
    )
    # Generate user-friendly order number (unique)
    order.number = f"ORD-{int(order.id):06d}"
    order.save(update_fields=["number"])

    CartItem.objects.filter(cart=cart).delete()
    cart.status = Cart.STATUS_ORDERED
    cart.save(update_fields=["status", "updated_at"])

    if coupon is not None:
        logger.info(
            "coupon.redeemed",
            extra={
                "event": "coupon.redeemed",
                "coupon_code": coupon.code,
                "order_id": order.id,
                "discount": coupon.discount,
                "capped": coupon.is_discount_capped,
            },
        )
    logger.info(
        "order.placed",
        extra={
            "event": "order.placed",
            "order_id": order.id,
            "user_id": order.user_id,
            "cart_id": cart.id,
            "subtotal": order.subtotal,
            "discount": order.discount,
            "shipping": order.shipping,
            "total": order.total,
            "item_count": len(priced.items),
        },
    )
    return order


def with_idempotency(
    *,
    key: str,
    user,
    path: str,
    method: str,
    handler: Callable[[], Tuple[dict, int]],
    request_hash: Optional[str] = None,
) -> Tuple[dict, int]:
    """Run handler idempotently and persist its response for the given key and scope.

    - Scope is derived from the caller: for authenticated users, "user:<id>"; otherwise "anon".
    - If a record exists and the stored `request_hash` differs from the provided one, returns 409.
    - If a record exists but response is not yet stored, returns 409 to indicate in-progress.
    """

    scope = f"user:{getattr(user, 'id', None)}" if getattr(user, "id", None) else "anon"
    method = str(method).upper()
    path = str(path)

    try:
        with transaction.atomic():
            idem = IdempotencyKey.objects.create(
                key=key,
                user=user if getattr(user, "id", None) else None,
                scope=scope,
                path=path,
                method=method,
                request_hash=request_hash,
                expires_at=timezone.now() + timedelta(hours=24),
            )
    except IntegrityError:
        idem = IdempotencyKey.objects.get(key=key, scope=scope, path=path, method=method)
        if idem.request_hash and request_hash and idem.request_hash != request_hash:
            return {"detail": "Idempotency key reused with different request payload"}, 409
        if idem.response_json is not None and idem.response_code is not None:
            return idem.response_json, int(idem.response_code)
        return {"detail": "Request in progress"}, 409

    body, code = handler()
    IdempotencyKey.objects.filter(id=idem.id).update(response_json=_json_safe(body), response_code=code)
    return body, code


def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def compute_request_hash(data: Optional[dict]) -> Optional[str]:
    """Canonical SHA256 of the request body, or None for an empty body."""

    if not data:
        return None
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
