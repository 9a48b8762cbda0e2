"""Orders API endpoints: the authenticated user's order history."""

from django.http import Http404
from django_filters import rest_framework as filters
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from rest_framework import generics
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated

from .models import Order
from .serializers import OrderSerializer


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"


class OrderFilterSet(filters.FilterSet):
    start = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    end = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")
    coupon = filters.CharFilter(field_name="coupon_code", lookup_expr="iexact")

    class Meta:
        model = Order
        fields = ["status", "number", "start", "end", "coupon"]


class OrderListView(generics.ListAPIView):
    """List the authenticated user's orders with basic filters."""

    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = DefaultPagination
    filter_backends = [filters.DjangoFilterBackend]
    filterset_class = OrderFilterSet
    throttle_scope = "orders"

    def get_queryset(self):
        return Order.objects.filter(user_id=self.request.user.id).order_by("-id").prefetch_related("items")

    @extend_schema(
        tags=["Orders"],
        summary="List orders",
        description="List current user's orders with optional filters and pagination.",
        parameters=[
            OpenApiParameter(name="status", description="Order status filter", required=False, type=str),
            OpenApiParameter(name="number", description="Order number exact match", required=False, type=str),
            OpenApiParameter(name="start", description="Created at >= start (ISO)", required=False, type=str),
            OpenApiParameter(name="end", description="Created at <= end (ISO)", required=False, type=str),
            OpenApiParameter(name="coupon", description="Coupon code used", required=False, type=str),
            OpenApiParameter(name="page", description="Page number", required=False, type=int),
            OpenApiParameter(name="page_size", description="Items per page", required=False, type=int),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderDetailView(generics.RetrieveAPIView):
    """Retrieve a single order for the authenticated user."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders"
    serializer_class = OrderSerializer

    def get_queryset(self):
        return Order.objects.filter(user_id=self.request.user.id).prefetch_related("items")

    def get_object(self):
        try:
            return self.get_queryset().get(id=int(self.kwargs["order_id"]))
        except (Order.DoesNotExist, ValueError):
            raise Http404("Not found.")

    @extend_schema(
        tags=["Orders"],
        summary="Get order detail",
        description="Retrieve a single order with the prices frozen at checkout.",
        examples=[
            OpenApiExample(
                "Order",
                value={
                    "id": 123,
                    "number": "ORD-000123",
                    "status": "pending",
                    "email": "user@example.com",
                    "created_at": "2025-01-01T12:00:00Z",
                    "items": [
                        {
                            "id": 10,
                            "variant": 555,
                            "product_title": "Cotton T-Shirt",
                            "variant_sku": "TS-RED-M",
                            "quantity": 50,
                            "base_price": "10.00",
                            "unit_price": "8.00",
                            "line_total": "400.00",
                            "price_source": "SLAB",
                            "flash_sale": None,
                        }
                    ],
                    "subtotal": "400.00",
                    "discount": "40.00",
                    "shipping": "0.00",
                    "total": "360.00",
                    "coupon_code": "SAVE10",
                },
            )
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)
