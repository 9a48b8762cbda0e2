"""Cart serializers for read and write operations."""

from pricing.serializers import PricedCartSerializer, PricedLineItemSerializer
from pricing.values import MAX_LINE_QUANTITY
from rest_framework import serializers


class CartLineSerializer(PricedLineItemSerializer):
    """A priced cart line, carrying the cart item id used by item endpoints."""

    id = serializers.SerializerMethodField()

    def get_id(self, obj):
        return self.context.get("item_ids", {}).get(obj.variant_id)


class CartReadSerializer(PricedCartSerializer):
    """Read serializer for the cart summary, items and totals."""

    id = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()
    coupon_code = serializers.SerializerMethodField()
    items = CartLineSerializer(many=True)

    @classmethod
    def from_cart(cls, *, cart, priced):
        return cls(
            priced,
            context={
                "cart": cart,
                "item_ids": {item.variant_id: item.id for item in cart.items.all()},
                "redact_prices": priced.redact_prices,
            },
        )

    def get_id(self, obj):
        return self.context["cart"].id

    def get_status(self, obj):
        return self.context["cart"].status

    def get_coupon_code(self, obj):
        return self.context["cart"].coupon_code or None


class AddItemSerializer(serializers.Serializer):
    """Write serializer for adding an item to the cart."""

    variant_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_LINE_QUANTITY)


class UpdateItemQuantitySerializer(serializers.Serializer):
    """Set an absolute `quantity` or apply a relative `delta`, not both."""

    quantity = serializers.IntegerField(min_value=1, max_value=MAX_LINE_QUANTITY, required=False)
    delta = serializers.IntegerField(required=False)

    def validate(self, attrs):
        has_quantity = "quantity" in attrs
        has_delta = "delta" in attrs
        if has_quantity == has_delta:
            raise serializers.ValidationError("Provide exactly one of `quantity` or `delta`.")
        if has_delta and attrs["delta"] == 0:
            raise serializers.ValidationError({"delta": "Must not be zero."})
        return attrs


class ApplyCouponSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64)
