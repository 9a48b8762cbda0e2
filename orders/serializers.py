"""DRF serializers for Orders.

Order money fields are the values frozen at placement time.
"""

from rest_framework import serializers

from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    """API representation of an order line item and its price provenance."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "variant",
            "product_title",
            "variant_sku",
            "quantity",
            "base_price",
            "unit_price",
            "line_total",
            "price_source",
            "flash_sale",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "status",
            "email",
            "created_at",
            "items",
            "subtotal",
            "discount",
            "shipping",
            "total",
            "coupon_code",
        ]
        read_only_fields = fields
