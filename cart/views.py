"""DRF views for cart operations.

Each endpoint exists twice: for the authenticated user's cart and for a guest
cart identified by the `X-Session-Id` header. The two share one
implementation and differ only in how the cart is looked up.
"""

from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from orders.serializers import OrderSerializer
from orders.services import CheckoutError, compute_request_hash, with_idempotency
from pricing.exceptions import CouponError, CouponNotFound, MOQError
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .selectors import find_cart_item, get_active_cart_for_session, get_active_cart_for_user, price_cart_for
from .serializers import AddItemSerializer, ApplyCouponSerializer, CartReadSerializer, UpdateItemQuantitySerializer
from .services import (
    CartError,
    abandon_cart,
    add_item,
    adjust_item_quantity,
    apply_coupon,
    checkout_cart,
    clear_cart,
    merge_guest_cart_to_user,
    remove_coupon,
    remove_item,
    update_item_quantity,
)

SESSION_HEADER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=True,
    description="Guest session identifier",
    type=str,
)
MutationError = inline_serializer(
    name="CartMutationError",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField(required=False)},
)
NotFoundError = inline_serializer(name="NotFoundError", fields={"detail": rf_serializers.CharField()})
ItemCreated = inline_serializer(name="CartItemCreatedResponse", fields={"id": rf_serializers.IntegerField()})


class MissingSessionId(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Missing X-Session-Id."
    default_code = "missing_session_id"


def mutation_error_response(exc) -> Response:
    """Translate an expected cart failure into a 400 response."""

    if isinstance(exc, MOQError):
        body = {"detail": str(exc), "code": exc.code, **exc.context()}
    elif isinstance(exc, CouponError):
        body = {"detail": exc.message, "code": exc.code, **exc.context()}
    else:
        body = {"detail": str(exc)}
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


def _is_authenticated(request) -> bool:
    return bool(getattr(request.user, "is_authenticated", False))


class UserCartMixin:
    permission_classes = [IsAuthenticated]

    def get_cart(self, request):
        return get_active_cart_for_user(user=request.user)


class GuestCartMixin:
    permission_classes = [AllowAny]

    def get_cart(self, request):
        session_id = request.headers.get("X-Session-Id")
        if not session_id:
            raise MissingSessionId()
        return get_active_cart_for_session(session_id=session_id)


def cart_response(request, cart, status_code=status.HTTP_200_OK) -> Response:
    priced = price_cart_for(cart=cart, is_authenticated=_is_authenticated(request))
    return Response(CartReadSerializer.from_cart(cart=cart, priced=priced).data, status=status_code)


class CartDetailView(UserCartMixin, APIView):
    """Return the active cart, repriced from scratch."""

    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get active cart",
        description=(
            "Returns the active cart with per-line unit prices and their source (DEFAULT, SLAB or "
            "FLASH_SALE), the coupon outcome and totals. Money fields are null when prices are "
            "hidden from guests."
        ),
        responses={200: CartReadSerializer},
        examples=[
            OpenApiExample(
                "Cart",
                value={
                    "id": 1,
                    "status": "active",
                    "coupon_code": "SAVE10",
                    "items": [
                        {
                            "id": 10,
                            "variant_id": 100,
                            "product_id": 7,
                            "quantity": 50,
                            "base_price": "10.00",
                            "unit_price": "8.00",
                            "line_subtotal": "400.00",
                            "price_source": "SLAB",
                            "applied_slab": {"min_quantity": 50, "unit_price": "8.00"},
                            "flash_sale_id": None,
                            "min_quantity": 1,
                            "moq_source": "DEFAULT",
                            "meets_minimum": True,
                        }
                    ],
                    "subtotal": "400.00",
                    "discount": "40.00",
                    "shipping": "0.00",
                    "total": "360.00",
                    "coupon": {
                        "code": "SAVE10",
                        "discount": "40.00",
                        "raw_discount": "40.00",
                        "applicable_subtotal": "400.00",
                        "matched_item_count": 1,
                        "is_discount_capped": False,
                    },
                    "coupon_error": None,
                    "moq_violations": [],
                    "redact_prices": False,
                    "below_minimum_payable": False,
                    "checkout_ready": True,
                },
            )
        ],
    )
    def get(self, request):
        return cart_response(request, self.get_cart(request))


class GuestCartDetailView(GuestCartMixin, CartDetailView):
    @extend_schema(tags=["Cart Endpoints"], summary="Get guest cart", parameters=[SESSION_HEADER])
    def get(self, request):
        return super().get(request)


class CartAddItemView(UserCartMixin, APIView):
    """Add an item to the cart."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add item to cart",
        description=(
            "Adds a product variant to the cart. Adding a variant already present increases its "
            "quantity. The resulting quantity must meet the minimum order quantity."
        ),
        request=AddItemSerializer,
        responses={
            201: ItemCreated,
            400: MutationError,
            404: NotFoundError,
        },
        examples=[
            OpenApiExample("Added", value={"id": 10}, response_only=True, status_codes=["201"]),
            OpenApiExample(
                "Below minimum",
                value={"detail": "Minimum order quantity is 10 units.", "code": "below_minimum", "required": 10},
                response_only=True,
                status_codes=["400"],
            ),
        ],
    )
    def post(self, request):
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = self.get_cart(request)
        try:
            item = add_item(cart=cart, **serializer.validated_data)
        except (CartError, MOQError) as exc:
            return mutation_error_response(exc)
        return Response({"id": item.id}, status=status.HTTP_201_CREATED)


class GuestCartAddItemView(GuestCartMixin, CartAddItemView):
    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add item to guest cart",
        request=AddItemSerializer,
        parameters=[SESSION_HEADER],
        responses={201: ItemCreated, 400: MutationError},
    )
    def post(self, request):
        return super().post(request)


class CartItemUpdateView(UserCartMixin, APIView):
    """Change a cart item's quantity."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Update cart item quantity",
        description=(
            "Send `quantity` to set an absolute value or `delta` to increase/decrease. A result below "
            "the minimum order quantity is rejected, never clamped."
        ),
        request=UpdateItemQuantitySerializer,
        responses={
            200: inline_serializer(
                name="CartItemUpdatedResponse",
                fields={"id": rf_serializers.IntegerField(), "quantity": rf_serializers.IntegerField()},
            ),
            400: MutationError,
            404: NotFoundError,
        },
        examples=[
            OpenApiExample("Decrease", value={"delta": -5}, request_only=True),
            OpenApiExample("Updated", value={"id": 10, "quantity": 45}, response_only=True),
        ],
    )
    def patch(self, request, item_id: int):
        cart = self.get_cart(request)
        if find_cart_item(cart=cart, item_id=item_id) is None:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        serializer = UpdateItemQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            if "delta" in serializer.validated_data:
                item = adjust_item_quantity(cart=cart, item_id=item_id, delta=serializer.validated_data["delta"])
            else:
                item = update_item_quantity(
                    cart=cart, item_id=item_id, quantity=serializer.validated_data["quantity"]
                )
        except (CartError, MOQError) as exc:
            return mutation_error_response(exc)
        return Response({"id": item.id, "quantity": item.quantity}, status=status.HTTP_200_OK)


class GuestCartItemUpdateView(GuestCartMixin, CartItemUpdateView):
    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Update guest cart item quantity",
        request=UpdateItemQuantitySerializer,
        parameters=[SESSION_HEADER],
    )
    def patch(self, request, item_id: int):
        return super().patch(request, item_id)


class CartItemDeleteView(UserCartMixin, APIView):
    """Remove an item from the cart."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Delete cart item",
        responses={204: None, 404: NotFoundError},
    )
    def delete(self, request, item_id: int):
        cart = self.get_cart(request)
        if find_cart_item(cart=cart, item_id=item_id) is None:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        remove_item(cart=cart, item_id=item_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class GuestCartItemDeleteView(GuestCartMixin, CartItemDeleteView):
    @extend_schema(tags=["Cart Endpoints"], summary="Delete guest cart item", parameters=[SESSION_HEADER])
    def delete(self, request, item_id: int):
        return super().delete(request, item_id)


class CartClearView(UserCartMixin, APIView):
    """Clear the active cart: delete items and drop the coupon."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Clear cart",
        responses={200: inline_serializer(name="CartStatusCleared", fields={"status": rf_serializers.CharField()})},
        examples=[OpenApiExample("Cleared", value={"status": "cleared"})],
    )
    def post(self, request):
        clear_cart(cart=self.get_cart(request))
        return Response({"status": "cleared"}, status=status.HTTP_200_OK)


class GuestCartClearView(GuestCartMixin, CartClearView):
    @extend_schema(tags=["Cart Endpoints"], summary="Clear guest cart", parameters=[SESSION_HEADER])
    def post(self, request):
        return super().post(request)


class CartCouponView(UserCartMixin, APIView):
    """Apply or remove the cart's coupon."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Apply coupon",
        description=(
            "Evaluates the code against the current cart. It is stored only if it applies; otherwise "
            "400 (or 404 for an unknown code) is returned with the reason and the cart is unchanged."
        ),
        request=ApplyCouponSerializer,
        responses={200: CartReadSerializer, 400: MutationError, 404: MutationError},
        examples=[
            OpenApiExample(
                "Expired",
                value={
                    "detail": "This coupon has expired.",
                    "code": "expired",
                    "ended_at": "2025-01-31T23:59:59+00:00",
                },
                response_only=True,
                status_codes=["400"],
            )
        ],
    )
    def post(self, request):
        serializer = ApplyCouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = self.get_cart(request)
        try:
            priced = apply_coupon(
                cart=cart, code=serializer.validated_data["code"], is_authenticated=_is_authenticated(request)
            )
        except CouponNotFound as exc:
            return Response({"detail": exc.message, "code": exc.code}, status=status.HTTP_404_NOT_FOUND)
        except (CouponError, CartError) as exc:
            return mutation_error_response(exc)
        return Response(CartReadSerializer.from_cart(cart=cart, priced=priced).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Cart Endpoints"], summary="Remove coupon", responses={204: None})
    def delete(self, request):
        remove_coupon(cart=self.get_cart(request))
        return Response(status=status.HTTP_204_NO_CONTENT)


class GuestCartCouponView(GuestCartMixin, CartCouponView):
    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Apply coupon to guest cart",
        request=ApplyCouponSerializer,
        parameters=[SESSION_HEADER],
    )
    def post(self, request):
        return super().post(request)

    @extend_schema(tags=["Cart Endpoints"], summary="Remove coupon from guest cart", parameters=[SESSION_HEADER])
    def delete(self, request):
        return super().delete(request)


class CartCheckoutView(UserCartMixin, APIView):
    """Place an order for the active cart."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Checkout cart",
        description=(
            "Reprices the cart, redeems the coupon and places an order. Rejected when the cart is "
            "empty, a line is below its minimum order quantity, the coupon no longer applies or the "
            "total is below the minimum payable amount."
        ),
        parameters=[
            OpenApiParameter(
                name="Idempotency-Key",
                location=OpenApiParameter.HEADER,
                required=False,
                description="When provided, checkout becomes idempotent for this user+path+method",
                type=str,
            )
        ],
        responses={201: OrderSerializer, 400: MutationError, 409: MutationError},
        examples=[
            OpenApiExample(
                "Coupon exhausted",
                value={"detail": "Coupon usage limit exceeded.", "code": "uses_exhausted"},
                response_only=True,
                status_codes=["400"],
            )
        ],
    )
    def post(self, request):
        cart = self.get_cart(request)

        def _checkout_handler():
            try:
                order = checkout_cart(cart=cart, user=request.user)
            except CheckoutError as exc:
                return exc.as_response(), 400
            except CartError as exc:
                return {"detail": str(exc)}, 400
            return OrderSerializer(order).data, 201

        idem_key = request.headers.get("Idempotency-Key")
        if idem_key:
            body, code = with_idempotency(
                key=idem_key,
                user=request.user,
                path=str(request.path),
                method=str(request.method),
                handler=_checkout_handler,
                request_hash=compute_request_hash(request.data),
            )
            return Response(body, status=code)
        body, code = _checkout_handler()
        return Response(body, status=code)


class CartAbandonView(UserCartMixin, APIView):
    """Abandon the active cart."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Abandon cart",
        responses={200: inline_serializer(name="CartStatusAbandoned", fields={"status": rf_serializers.CharField()})},
        examples=[OpenApiExample("Abandoned", value={"status": "abandoned"})],
    )
    def post(self, request):
        abandon_cart(cart=self.get_cart(request))
        return Response({"status": "abandoned"}, status=status.HTTP_200_OK)


class MergeGuestCartView(APIView):
    """Authenticated endpoint to merge a guest cart into the user's cart."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Merge guest cart into user cart",
        description="Provide X-Session-Id header; quantities of shared variants are summed.",
        parameters=[SESSION_HEADER],
        responses={
            200: inline_serializer(name="CartStatusMerged", fields={"status": rf_serializers.CharField()}),
            400: MutationError,
        },
        examples=[OpenApiExample("Merged", value={"status": "merged"})],
    )
    def post(self, request):
        session_id = request.headers.get("X-Session-Id")
        if not session_id:
            raise MissingSessionId()
        try:
            merge_guest_cart_to_user(session_id=session_id, user=request.user)
        except CartError as exc:
            return mutation_error_response(exc)
        return Response({"status": "merged"}, status=status.HTTP_200_OK)
