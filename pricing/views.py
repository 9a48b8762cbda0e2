"""DRF views for price quotes, coupon checks and variant pricing."""

from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle
from rest_framework.views import APIView

from .exceptions import CouponError, CouponNotFound
from .serializers import (
    CouponApplicationSerializer,
    CouponVerifySerializer,
    PricedCartSerializer,
    QuoteRequestSerializer,
    VariantPricingQuerySerializer,
    VariantPricingSerializer,
    coupon_error_payload,
)
from .services import QuoteError, quote_items, variant_pricing, verify_coupon
from .throttling import PricingScopedRateThrottle

ErrorResponse = inline_serializer(
    name="PricingError",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField(required=False)},
)


def _is_authenticated(request) -> bool:
    return bool(getattr(request.user, "is_authenticated", False))


class QuoteView(APIView):
    """Price an arbitrary basket without storing it."""

    permission_classes = [AllowAny]
    throttle_scope = "pricing"
    throttle_classes = [PricingScopedRateThrottle, UserRateThrottle, AnonRateThrottle]

    @extend_schema(
        tags=["Pricing Endpoints"],
        summary="Quote a basket",
        description=(
            "Resolves unit prices (flash sale, then bulk slab, then base price), evaluates an optional "
            "coupon and returns totals. A rejected coupon is reported in `coupon_error` and no discount "
            "is applied. Money fields are null when prices are hidden from guests."
        ),
        request=QuoteRequestSerializer,
        responses={200: PricedCartSerializer, 400: ErrorResponse},
        examples=[
            OpenApiExample(
                "Quote request",
                value={"items": [{"variant_id": 12, "quantity": 10}], "coupon_code": "SAVE10"},
                request_only=True,
            )
        ],
    )
    def post(self, request):
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            priced = quote_items(
                items=serializer.validated_data["items"],
                coupon_code=serializer.validated_data.get("coupon_code") or None,
                is_authenticated=_is_authenticated(request),
            )
        except QuoteError as exc:
            return Response({"detail": str(exc), "code": "invalid_items"}, status=status.HTTP_400_BAD_REQUEST)
        return Response(PricedCartSerializer.from_priced(priced).data, status=status.HTTP_200_OK)


class CouponVerifyView(APIView):
    """Check whether a coupon applies to a basket."""

    permission_classes = [AllowAny]
    throttle_scope = "coupon_verify"
    throttle_classes = [PricingScopedRateThrottle, UserRateThrottle, AnonRateThrottle]

    @extend_schema(
        tags=["Pricing Endpoints"],
        summary="Verify coupon",
        description=(
            "Evaluates a coupon code against the given items without redeeming it. Unknown codes return "
            "404; any other rejection returns 400 with a machine-readable `code`."
        ),
        request=CouponVerifySerializer,
        responses={
            200: inline_serializer(
                name="CouponVerifyResponse",
                fields={
                    "valid": rf_serializers.BooleanField(),
                    "coupon": CouponApplicationSerializer(),
                    "total": rf_serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True),
                },
            ),
            400: ErrorResponse,
            404: ErrorResponse,
        },
        examples=[
            OpenApiExample(
                "Below minimum",
                value={
                    "detail": "Minimum order amount of 500.00 required.",
                    "code": "below_min_order",
                    "required": "500.00",
                    "applicable_subtotal": "420.00",
                    "matched_item_count": 2,
                },
                response_only=True,
                status_codes=["400"],
            )
        ],
    )
    def post(self, request):
        serializer = CouponVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            application, priced = verify_coupon(
                code=serializer.validated_data["code"],
                items=serializer.validated_data["items"],
                is_authenticated=_is_authenticated(request),
            )
        except QuoteError as exc:
            return Response({"detail": str(exc), "code": "invalid_items"}, status=status.HTTP_400_BAD_REQUEST)
        except CouponNotFound as exc:
            return Response(coupon_error_payload(exc), status=status.HTTP_404_NOT_FOUND)
        except CouponError as exc:
            return Response(coupon_error_payload(exc), status=status.HTTP_400_BAD_REQUEST)
        context = {"redact_prices": priced.redact_prices}
        return Response(
            {
                "valid": True,
                "coupon": CouponApplicationSerializer(application, context=context).data,
                "total": None if priced.redact_prices else str(priced.total),
            },
            status=status.HTTP_200_OK,
        )


class VariantPricingView(APIView):
    """Unit price breakdown for a single variant."""

    permission_classes = [AllowAny]
    throttle_scope = "pricing"
    throttle_classes = [PricingScopedRateThrottle, UserRateThrottle, AnonRateThrottle]

    @extend_schema(
        tags=["Pricing Endpoints"],
        summary="Variant pricing",
        description=(
            "Returns the unit price at the requested quantity with its source, the bulk slabs, any "
            "running flash sale and the effective minimum order quantity. Without `quantity`, the "
            "variant is priced at its minimum order quantity."
        ),
        parameters=[
            OpenApiParameter(name="quantity", location=OpenApiParameter.QUERY, required=False, type=int),
        ],
        responses={200: VariantPricingSerializer, 400: ErrorResponse, 404: ErrorResponse},
    )
    def get(self, request, variant_id: int):
        query = VariantPricingQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        try:
            pricing = variant_pricing(
                variant_id=variant_id,
                quantity=query.validated_data.get("quantity"),
                is_authenticated=_is_authenticated(request),
            )
        except QuoteError as exc:
            return Response({"detail": str(exc), "code": "unpriced"}, status=status.HTTP_400_BAD_REQUEST)
        return Response(VariantPricingSerializer.from_pricing(pricing).data, status=status.HTTP_200_OK)
