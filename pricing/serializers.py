"""Serializers for pricing requests and priced-cart responses.

Response serializers render the frozen pricing values directly. When the
``redact_prices`` context flag is set, every money field renders as ``null``.
"""

from rest_framework import serializers

from .values import MAX_LINE_QUANTITY


def _money(**kwargs):
    return serializers.DecimalField(max_digits=20, decimal_places=2, allow_null=True, **kwargs)


class RedactedMoneyMixin:
    """Blank out ``money_fields`` when the response is rendered for a guest."""

    money_fields = ()

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if self.context.get("redact_prices"):
            for name in self.money_fields:
                if name in data:
                    data[name] = None
        return data


class SlabSerializer(RedactedMoneyMixin, serializers.Serializer):
    money_fields = ("unit_price",)

    min_quantity = serializers.IntegerField()
    unit_price = _money()


class FlashSaleSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField(allow_null=True)
    name = serializers.CharField()
    discount_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    end_time = serializers.DateTimeField()
    remaining_quantity = serializers.SerializerMethodField()

    def get_remaining_quantity(self, obj):
        if obj.max_quantity is None:
            return None
        return max(obj.max_quantity - obj.sold_count, 0)


class PricedLineItemSerializer(RedactedMoneyMixin, serializers.Serializer):
    money_fields = ("base_price", "unit_price", "line_subtotal")

    variant_id = serializers.IntegerField()
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField()
    base_price = _money()
    unit_price = _money()
    line_subtotal = _money()
    price_source = serializers.CharField()
    applied_slab = SlabSerializer(allow_null=True)
    flash_sale_id = serializers.IntegerField(allow_null=True)
    min_quantity = serializers.IntegerField()
    moq_source = serializers.CharField()
    meets_minimum = serializers.BooleanField()


class CouponApplicationSerializer(RedactedMoneyMixin, serializers.Serializer):
    money_fields = ("discount", "raw_discount", "applicable_subtotal")

    code = serializers.CharField()
    discount = _money()
    raw_discount = _money()
    applicable_subtotal = _money()
    matched_item_count = serializers.IntegerField()
    is_discount_capped = serializers.BooleanField()


def coupon_error_payload(exc) -> dict:
    """Flat error body for a ``CouponError``: detail, code and its context."""

    return {"detail": exc.message, "code": exc.code, **exc.context()}


class PricedCartSerializer(RedactedMoneyMixin, serializers.Serializer):
    """Read serializer for a fully priced basket."""

    money_fields = ("subtotal", "discount", "shipping", "total")

    items = PricedLineItemSerializer(many=True)
    subtotal = _money()
    discount = _money()
    shipping = _money()
    total = _money()
    coupon = CouponApplicationSerializer(allow_null=True)
    coupon_error = serializers.SerializerMethodField()
    moq_violations = serializers.SerializerMethodField()
    redact_prices = serializers.BooleanField()
    below_minimum_payable = serializers.BooleanField()
    checkout_ready = serializers.BooleanField()

    @classmethod
    def from_priced(cls, priced):
        return cls(priced, context={"redact_prices": priced.redact_prices})

    def get_coupon_error(self, obj):
        if obj.coupon_error is None:
            return None
        return coupon_error_payload(obj.coupon_error)

    def get_moq_violations(self, obj):
        return [
            {"variant_id": item.variant_id, "quantity": item.quantity, "required": item.min_quantity}
            for item in obj.moq_violations
        ]


class VariantPricingSerializer(RedactedMoneyMixin, serializers.Serializer):
    money_fields = ("base_price", "unit_price", "line_subtotal")

    variant_id = serializers.IntegerField(source="variant.id")
    sku = serializers.CharField(source="variant.sku")
    quantity = serializers.IntegerField(source="item.quantity")
    base_price = _money(source="item.base_price")
    unit_price = _money(source="item.unit_price")
    line_subtotal = _money(source="item.line_subtotal")
    price_source = serializers.CharField(source="item.price_source")
    slabs = SlabSerializer(many=True)
    flash_sale = FlashSaleSummarySerializer(allow_null=True)
    min_order_quantity = serializers.IntegerField(source="moq.min_quantity")
    moq_source = serializers.CharField(source="moq.source")
    redact_prices = serializers.BooleanField()

    @classmethod
    def from_pricing(cls, pricing):
        return cls(pricing, context={"redact_prices": pricing.redact_prices})


class QuoteItemSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_LINE_QUANTITY)


class QuoteRequestSerializer(serializers.Serializer):
    """Write serializer for an ad-hoc price quote."""

    items = QuoteItemSerializer(many=True, allow_empty=True, max_length=200)
    coupon_code = serializers.CharField(max_length=64, required=False, allow_blank=True)


class CouponVerifySerializer(serializers.Serializer):
    """Write serializer for checking a coupon against a basket."""

    code = serializers.CharField(max_length=64, trim_whitespace=True)
    items = QuoteItemSerializer(many=True, allow_empty=False, max_length=200)


class VariantPricingQuerySerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_LINE_QUANTITY, required=False)
